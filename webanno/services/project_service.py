"""
Project service.

Manages projects, per-project permissions, guideline files and constraint
sets. Removing a project publishes BeforeProjectRemovedEvent first so that
other services can remove the data they own (e.g. source documents) before
the project itself disappears.
"""

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from webanno.db import (
    AnnotationPreference, ConstraintSet, Project, ProjectPermission, User,
)
from webanno.errors import NotFoundError, ValidationFailedError
from webanno.events import BeforeProjectRemovedEvent, EventPublisher
from webanno.services.storage import RepositoryLayout
from webanno.services.user_service import UserService

logger = logging.getLogger(__name__)

# Permission levels
PERMISSION_ADMIN = "admin"
PERMISSION_CURATOR = "curator"
PERMISSION_USER = "user"
PERMISSION_LEVELS = [PERMISSION_ADMIN, PERMISSION_CURATOR, PERMISSION_USER]

SCRIPT_DIRECTIONS = ("LTR", "RTL")


def safe_file_name(file_name: Optional[str]) -> str:
    """Reduce a client-supplied file name to a plain base name."""
    name = Path((file_name or "").replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        raise ValidationFailedError(f"Invalid file name [{file_name}]")
    return name


class ProjectService:
    """Service for projects, permissions, guidelines and constraints."""

    def __init__(self, db: Session, layout: RepositoryLayout, publisher: EventPublisher):
        self.db = db
        self.layout = layout
        self.publisher = publisher

    # =========================================================================
    # Projects
    # =========================================================================

    def create_project(
        self,
        name: str,
        description: Optional[str] = None,
        creator: Optional[User] = None,
        disable_export: bool = False,
        script_direction: str = "LTR",
    ) -> Project:
        """
        Create a new project.

        The creator (if given) receives all permission levels in the project.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationFailedError("Project name must not be empty")
        if script_direction not in SCRIPT_DIRECTIONS:
            raise ValidationFailedError(f"Invalid script direction [{script_direction}]")
        if self.exists_project(name):
            raise ValidationFailedError(f"Project [{name}] already exists")

        project = Project(
            name=name,
            description=description,
            disable_export=disable_export,
            script_direction=script_direction,
        )
        self.db.add(project)
        self.db.flush()

        if creator is not None:
            for level in PERMISSION_LEVELS:
                self.db.add(ProjectPermission(
                    project_id=project.id, username=creator.username, level=level,
                ))

        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Created project: {project.id} ({project.name})")
        return project

    def exists_project(self, name: str) -> bool:
        return self.db.query(Project).filter(Project.name == name).first() is not None

    def get_project(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if project is None:
            raise NotFoundError(f"Project [{project_id}] does not exist")
        return project

    def list_projects(self) -> List[Project]:
        return self.db.query(Project).order_by(Project.name).all()

    def list_accessible_projects(self, user: User) -> List[Project]:
        """Projects the user has any permission in (all projects for administrators)."""
        if UserService.is_admin(user):
            return self.list_projects()
        return (
            self.db.query(Project)
            .join(ProjectPermission, ProjectPermission.project_id == Project.id)
            .filter(ProjectPermission.username == user.username)
            .distinct()
            .order_by(Project.name)
            .all()
        )

    def update_project(self, project: Project, **changes) -> Project:
        if "name" in changes and changes["name"] != project.name:
            if self.exists_project(changes["name"]):
                raise ValidationFailedError(f"Project [{changes['name']}] already exists")
        if "script_direction" in changes and changes["script_direction"] not in SCRIPT_DIRECTIONS:
            raise ValidationFailedError(f"Invalid script direction [{changes['script_direction']}]")
        for key in ("name", "description", "disable_export", "script_direction"):
            if key in changes and changes[key] is not None:
                setattr(project, key, changes[key])
        self.db.commit()
        self.db.refresh(project)
        return project

    def remove_project(self, project: Project) -> None:
        """
        Remove a project with everything it owns.

        Listeners of BeforeProjectRemovedEvent run first; if one of them fails,
        the project is left in place.
        """
        project_id = project.id
        logger.info(f"Removing project: {project_id} ({project.name})")

        self.publisher.publish(BeforeProjectRemovedEvent(project))

        self.db.query(AnnotationPreference).filter(
            AnnotationPreference.project_id == project_id
        ).delete(synchronize_session=False)
        self.db.delete(project)
        self.db.commit()

        project_dir = self.layout.project_dir(project_id)
        if project_dir.exists():
            shutil.rmtree(project_dir)

        logger.info(f"Removed project: {project_id}")

    # =========================================================================
    # Permissions
    # =========================================================================

    def set_permission(self, project: Project, username: str, levels: Iterable[str]) -> List[str]:
        """Replace the permission levels of a user in a project."""
        levels = sorted(set(levels))
        for level in levels:
            if level not in PERMISSION_LEVELS:
                raise ValidationFailedError(f"Invalid permission level [{level}]")

        self.db.query(ProjectPermission).filter(
            ProjectPermission.project_id == project.id,
            ProjectPermission.username == username,
        ).delete(synchronize_session=False)
        for level in levels:
            self.db.add(ProjectPermission(project_id=project.id, username=username, level=level))
        self.db.commit()

        logger.info(f"Permissions of {username} in project {project.id}: {levels}")
        return levels

    def list_permissions(self, project: Project, username: Optional[str] = None) -> List[ProjectPermission]:
        query = self.db.query(ProjectPermission).filter(ProjectPermission.project_id == project.id)
        if username is not None:
            query = query.filter(ProjectPermission.username == username)
        return query.order_by(ProjectPermission.username, ProjectPermission.level).all()

    def list_project_users_with_level(self, project: Project, level: str) -> List[str]:
        return [
            p.username for p in self.db.query(ProjectPermission).filter(
                ProjectPermission.project_id == project.id,
                ProjectPermission.level == level,
            ).order_by(ProjectPermission.username).all()
        ]

    def has_permission(self, project: Project, user: Optional[User], level: str) -> bool:
        if user is None:
            return False
        return self.db.query(ProjectPermission).filter(
            ProjectPermission.project_id == project.id,
            ProjectPermission.username == user.username,
            ProjectPermission.level == level,
        ).first() is not None

    def is_admin(self, project: Project, user: Optional[User]) -> bool:
        """Project manager (or global administrator)."""
        return UserService.is_admin(user) or self.has_permission(project, user, PERMISSION_ADMIN)

    def is_curator(self, project: Project, user: Optional[User]) -> bool:
        return UserService.is_admin(user) or self.has_permission(project, user, PERMISSION_CURATOR)

    def is_annotator(self, project: Project, user: Optional[User]) -> bool:
        return UserService.is_admin(user) or self.has_permission(project, user, PERMISSION_USER)

    # =========================================================================
    # Guidelines
    # =========================================================================

    def create_guideline(self, project: Project, file_path: Path, file_name: str) -> Path:
        """Copy a guideline file into the project's guideline storage."""
        name = safe_file_name(file_name)
        guideline_dir = self.layout.guideline_dir(project.id)
        guideline_dir.mkdir(parents=True, exist_ok=True)
        target = guideline_dir / name
        shutil.copyfile(file_path, target)
        logger.info(f"Imported guideline [{name}] into project {project.id}")
        return target

    def list_guidelines(self, project: Project) -> List[str]:
        guideline_dir = self.layout.guideline_dir(project.id)
        if not guideline_dir.exists():
            return []
        return sorted(p.name for p in guideline_dir.iterdir() if p.is_file())

    def get_guideline_file(self, project: Project, file_name: str) -> Path:
        path = self.layout.guideline_dir(project.id) / safe_file_name(file_name)
        if not path.is_file():
            raise NotFoundError(f"Guideline [{file_name}] does not exist in project [{project.id}]")
        return path

    def remove_guideline(self, project: Project, file_name: str) -> None:
        self.get_guideline_file(project, file_name).unlink()
        logger.info(f"Removed guideline [{file_name}] from project {project.id}")

    # =========================================================================
    # Constraints
    # =========================================================================

    def create_constraint_set(self, project: Project, name: str, rules: str) -> ConstraintSet:
        constraint_set = ConstraintSet(project_id=project.id, name=name, rules=rules)
        self.db.add(constraint_set)
        self.db.commit()
        self.db.refresh(constraint_set)
        return constraint_set

    def list_constraint_sets(self, project: Project) -> List[ConstraintSet]:
        return self.db.query(ConstraintSet).filter(
            ConstraintSet.project_id == project.id
        ).order_by(ConstraintSet.name).all()

    def remove_constraint_set(self, project: Project, constraint_set_id: int) -> None:
        constraint_set = self.db.query(ConstraintSet).filter(
            ConstraintSet.project_id == project.id,
            ConstraintSet.id == constraint_set_id,
        ).first()
        if constraint_set is None:
            raise NotFoundError(
                f"Constraint set [{constraint_set_id}] does not exist in project [{project.id}]"
            )
        self.db.delete(constraint_set)
        self.db.commit()
