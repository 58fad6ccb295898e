"""
Project router.

Endpoints:
- GET / - List projects accessible to the user
- POST / - Create project (with the default layers from config.yaml)
- GET /{project_id} - Get project
- PATCH /{project_id} - Update project
- DELETE /{project_id} - Remove project with all its documents
- GET/PUT /{project_id}/permissions[/{username}] - Project permissions
- POST/GET /{project_id}/guidelines, GET/DELETE /{project_id}/guidelines/{name}
- GET/POST /{project_id}/constraints, DELETE /{project_id}/constraints/{id}
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from webanno.config import get_default_layers, load_app_config
from webanno.db import Project, User
from webanno.errors import WebAnnoError
from webanno.routers.auth import get_current_user, require_admin
from webanno.routers.dependencies import (
    get_project_or_404, get_services, require_project_admin, require_project_member,
    to_http_exception,
)
from webanno.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Request / Response Models
# =============================================================================

class ProjectCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    disable_export: bool = False
    script_direction: str = "LTR"
    create_default_layers: bool = True


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    disable_export: Optional[bool] = None
    script_direction: Optional[str] = None


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    mode: str
    disable_export: bool
    script_direction: str
    created_at: Optional[str] = None


class PermissionRequest(BaseModel):
    levels: List[str]


class ConstraintSetRequest(BaseModel):
    name: str
    rules: str = ""


def project_to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        mode=project.mode,
        disable_export=project.disable_export,
        script_direction=project.script_direction,
        created_at=project.created_at.isoformat() if project.created_at else None,
    )


# =============================================================================
# Projects
# =============================================================================

@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """List projects the user has access to."""
    return [project_to_response(p) for p in services.projects.list_accessible_projects(user)]


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    request: ProjectCreateRequest,
    user: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Create a project; the creator becomes its manager."""
    try:
        project = services.projects.create_project(
            request.name,
            description=request.description,
            creator=user,
            disable_export=request.disable_export,
            script_direction=request.script_direction,
        )
        if request.create_default_layers:
            services.schema.create_default_layers(project, get_default_layers(load_app_config()))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return project_to_response(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    return project_to_response(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    request: ProjectUpdateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        project = services.projects.update_project(project, **request.model_dump(exclude_none=True))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return project_to_response(project)


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Remove a project, its documents, layers, permissions and files."""
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    services.projects.remove_project(project)
    return {"message": f"Project [{project_id}] removed"}


# =============================================================================
# Permissions
# =============================================================================

@router.get("/{project_id}/permissions")
async def list_permissions(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    permissions = {}
    for permission in services.projects.list_permissions(project):
        permissions.setdefault(permission.username, []).append(permission.level)
    return permissions


@router.put("/{project_id}/permissions/{username}")
async def set_permission(
    project_id: int,
    username: str,
    request: PermissionRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        services.users.get_or_fail(username)
        levels = services.projects.set_permission(project, username, request.levels)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"username": username, "levels": levels}


# =============================================================================
# Guidelines
# =============================================================================

@router.post("/{project_id}/guidelines")
async def import_guidelines(
    project_id: int,
    files: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Upload guideline files.

    Files that cannot be stored are reported in ``errors``; the others are
    imported regardless.
    """
    # Project id 0 stands for a project that was not saved yet
    project = None
    if project_id:
        project = get_project_or_404(services, project_id)
        require_project_admin(services, project, user)

    try:
        result = services.guidelines.import_guidelines(project, files or [])
    except WebAnnoError as e:
        raise to_http_exception(e)
    return result.to_dict()


@router.get("/{project_id}/guidelines")
async def list_guidelines(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    return services.projects.list_guidelines(project)


@router.get("/{project_id}/guidelines/{file_name}")
async def get_guideline(
    project_id: int,
    file_name: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    try:
        path = services.projects.get_guideline_file(project, file_name)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return FileResponse(path, filename=path.name)


@router.delete("/{project_id}/guidelines/{file_name}")
async def remove_guideline(
    project_id: int,
    file_name: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        services.projects.remove_guideline(project, file_name)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"message": f"Guideline [{file_name}] removed"}


# =============================================================================
# Constraints
# =============================================================================

@router.get("/{project_id}/constraints")
async def list_constraints(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    return services.documents.load_constraints(project)


@router.post("/{project_id}/constraints", status_code=201)
async def create_constraint_set(
    project_id: int,
    request: ConstraintSetRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    constraint_set = services.projects.create_constraint_set(project, request.name, request.rules)
    return {"id": constraint_set.id, "name": constraint_set.name, "rules": constraint_set.rules}


@router.delete("/{project_id}/constraints/{constraint_set_id}")
async def remove_constraint_set(
    project_id: int,
    constraint_set_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        services.projects.remove_constraint_set(project, constraint_set_id)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"message": f"Constraint set [{constraint_set_id}] removed"}
