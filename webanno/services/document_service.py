"""
Document repository service.

Source documents are registered in the database and their text is kept in
the filesystem repository. Every annotator works on an own annotation
document: a database record tracking its state plus a JSON file holding
the AnnotatedDocument, created lazily from the source text on first access.
"""

import logging
import shutil
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from annotation_model import AnnotatedDocument, UpgradeReport, upgrade_document

from webanno.db import (
    AnnotationDocument, ConstraintSet, Project, ProjectPermission, SourceDocument, User,
)
from webanno.errors import InvalidStateTransitionError, NotFoundError, ValidationFailedError
from webanno.events import (
    AnnotationStateChangedEvent, BeforeDocumentRemovedEvent, DocumentStateChangedEvent,
    EventPublisher,
)
from webanno.services.annotation_schema_service import AnnotationSchemaService
from webanno.services.storage import RepositoryLayout, write_text_atomic
from webanno.states import (
    AnnotationDocumentState, AnnotationDocumentStateTransition, SourceDocumentState,
    SourceDocumentStateTransition,
)

logger = logging.getLogger(__name__)

# Permission level of annotators (see project_service)
ANNOTATOR_LEVEL = "user"


def _username(user: Union[User, str]) -> str:
    return user if isinstance(user, str) else user.username


class DocumentService:
    """Service for source documents and per-user annotation documents."""

    def __init__(
        self,
        db: Session,
        layout: RepositoryLayout,
        publisher: EventPublisher,
        schema_service: AnnotationSchemaService,
    ):
        self.db = db
        self.layout = layout
        self.publisher = publisher
        self.schema_service = schema_service

    # =========================================================================
    # Source documents
    # =========================================================================

    def list_source_documents(self, project: Project) -> List[SourceDocument]:
        return self.db.query(SourceDocument).filter(
            SourceDocument.project_id == project.id
        ).order_by(SourceDocument.name).all()

    def get_source_document(self, project_id: int, document_id: int) -> SourceDocument:
        document = self.db.query(SourceDocument).filter(
            SourceDocument.project_id == project_id,
            SourceDocument.id == document_id,
        ).first()
        if document is None:
            raise NotFoundError(f"Document [{document_id}] does not exist in project [{project_id}]")
        return document

    def exists_source_document(self, project: Project, name: str) -> bool:
        return self.db.query(SourceDocument).filter(
            SourceDocument.project_id == project.id,
            SourceDocument.name == name,
        ).first() is not None

    def create_source_document(self, document: SourceDocument) -> SourceDocument:
        """Save a source document record."""
        self.db.add(document)
        self.db.commit()
        self.db.refresh(document)
        return document

    def upload_source_document(
        self,
        project: Project,
        name: str,
        text: str,
        format: str = "text",
    ) -> SourceDocument:
        """
        Register a new source document and store its text.

        Args:
            project: Target project
            name: Document name, unique within the project
            text: Document text
            format: Import format of the document

        Returns:
            The created source document
        """
        if not name:
            raise ValidationFailedError("Document name must not be empty")
        if self.exists_source_document(project, name):
            raise ValidationFailedError(f"Document [{name}] already exists in project [{project.id}]")

        document = self.create_source_document(SourceDocument(
            project_id=project.id,
            name=name,
            format=format,
            state=SourceDocumentState.NEW.value,
        ))
        try:
            write_text_atomic(self.layout.source_file(project.id, document.id), text)
        except OSError:
            self.db.delete(document)
            self.db.commit()
            raise

        logger.info(f"Uploaded document [{name}] ({len(text)} chars) to project {project.id}")
        return document

    def read_source_text(self, document: SourceDocument) -> str:
        path = self.layout.source_file(document.project_id, document.id)
        return path.read_text(encoding="utf-8")

    def remove_source_document(self, document: SourceDocument) -> None:
        """Remove a source document together with its annotation documents and files."""
        project_id, document_id = document.project_id, document.id
        self.publisher.publish(BeforeDocumentRemovedEvent(document))

        self.db.delete(document)
        self.db.commit()

        document_dir = self.layout.document_dir(project_id, document_id)
        if document_dir.exists():
            shutil.rmtree(document_dir)

        logger.info(f"Removed document {document_id} from project {project_id}")

    # =========================================================================
    # Annotation documents
    # =========================================================================

    def get_annotation_document(
        self, document: SourceDocument, user: Union[User, str]
    ) -> Optional[AnnotationDocument]:
        return self.db.query(AnnotationDocument).filter(
            AnnotationDocument.document_id == document.id,
            AnnotationDocument.user == _username(user),
        ).first()

    def create_annotation_document(self, annotation_document: AnnotationDocument) -> AnnotationDocument:
        """Save an annotation document record."""
        self.db.add(annotation_document)
        self.db.commit()
        self.db.refresh(annotation_document)
        return annotation_document

    def create_or_get_annotation_document(
        self, document: SourceDocument, user: Union[User, str]
    ) -> AnnotationDocument:
        annotation_document = self.get_annotation_document(document, user)
        if annotation_document is None:
            annotation_document = self.create_annotation_document(AnnotationDocument(
                project_id=document.project_id,
                document_id=document.id,
                name=document.name,
                user=_username(user),
                state=AnnotationDocumentState.NEW.value,
            ))
            logger.info(f"Created annotation document of [{document.name}] for {_username(user)}")
        return annotation_document

    def list_annotation_documents(self, document: SourceDocument) -> List[AnnotationDocument]:
        return self.db.query(AnnotationDocument).filter(
            AnnotationDocument.document_id == document.id
        ).order_by(AnnotationDocument.user).all()

    def list_annotatable_documents(self, project: Project, user: Union[User, str]) -> List[SourceDocument]:
        """Documents of the project the user may annotate, ordered by name."""
        ignored = {
            a.document_id for a in self.db.query(AnnotationDocument).filter(
                AnnotationDocument.project_id == project.id,
                AnnotationDocument.user == _username(user),
                AnnotationDocument.state == AnnotationDocumentState.IGNORE.value,
            ).all()
        }
        return [d for d in self.list_source_documents(project) if d.id not in ignored]

    def is_annotation_finished(self, document: SourceDocument, user: Union[User, str]) -> bool:
        annotation_document = self.get_annotation_document(document, user)
        return (
            annotation_document is not None
            and annotation_document.state == AnnotationDocumentState.FINISHED.value
        )

    def read_annotation_document(self, annotation_document: AnnotationDocument) -> AnnotatedDocument:
        """
        Read the working copy of an annotation document.

        When no working copy was written yet, a fresh one is created from the
        source text (but not written).

        Raises:
            OSError: if the files cannot be read
            AnnotationError: if the stored working copy is corrupt
        """
        path = self.layout.annotation_file(
            annotation_document.project_id, annotation_document.document_id, annotation_document.user
        )
        if path.exists():
            return AnnotatedDocument.from_json(path.read_text(encoding="utf-8"))

        logger.info(
            f"No working copy of document {annotation_document.document_id} for "
            f"{annotation_document.user} yet, creating it from the source text"
        )
        return AnnotatedDocument.from_text(self.read_source_text(annotation_document.document))

    def write_annotation_document(
        self, document: AnnotatedDocument, annotation_document: AnnotationDocument
    ) -> None:
        path = self.layout.annotation_file(
            annotation_document.project_id, annotation_document.document_id, annotation_document.user
        )
        write_text_atomic(path, document.to_json())

        now = datetime.utcnow()
        annotation_document.timestamp = now
        annotation_document.document.timestamp = now
        self.db.commit()

    def upgrade_annotation_document(self, document: AnnotatedDocument, project: Project) -> UpgradeReport:
        """Align a working copy with the project's current layers and features."""
        report = upgrade_document(document, self.schema_service.get_layer_schemas(project))
        if report.changed:
            logger.info(f"Upgraded annotation document: {report.to_dict()}")
        return report

    def reset_annotation_document(self, annotation_document: AnnotationDocument) -> AnnotatedDocument:
        """Discard all annotations of a working copy by recreating it from the source text."""
        document = AnnotatedDocument.from_text(self.read_source_text(annotation_document.document))
        self.write_annotation_document(document, annotation_document)
        logger.info(
            f"Reset annotation document {annotation_document.document_id} of {annotation_document.user}"
        )
        return document

    # =========================================================================
    # States
    # =========================================================================

    def set_source_document_state(
        self, document: SourceDocument, transition: SourceDocumentStateTransition
    ) -> SourceDocument:
        if document.state != transition.source.value:
            raise InvalidStateTransitionError(
                f"Document [{document.name}] is in state [{document.state}], "
                f"cannot apply {transition.name}"
            )
        previous = document.state
        document.state = SourceDocumentStateTransition.transition(transition).value
        self.db.commit()

        logger.info(f"Document {document.id}: {previous} -> {document.state}")
        self.publisher.publish(DocumentStateChangedEvent(document, previous, document.state))
        return document

    def set_annotation_document_state(
        self, annotation_document: AnnotationDocument, transition: AnnotationDocumentStateTransition
    ) -> AnnotationDocument:
        """
        Apply a state transition to an annotation document.

        Finishing the last open annotation document of a source document
        finishes annotation of the source document; reopening one moves the
        source document back into annotation.
        """
        if annotation_document.state != transition.source.value:
            raise InvalidStateTransitionError(
                f"Annotation document [{annotation_document.name}] of user "
                f"[{annotation_document.user}] is in state [{annotation_document.state}], "
                f"cannot apply {transition.name}"
            )
        previous = annotation_document.state
        annotation_document.state = AnnotationDocumentStateTransition.transition(transition).value
        self.db.commit()

        logger.info(
            f"Annotation document {annotation_document.id} ({annotation_document.user}): "
            f"{previous} -> {annotation_document.state}"
        )
        self.publisher.publish(
            AnnotationStateChangedEvent(annotation_document, previous, annotation_document.state)
        )

        document = annotation_document.document
        if (
            transition == AnnotationDocumentStateTransition.ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED
            and document.state == SourceDocumentState.ANNOTATION_IN_PROGRESS.value
            and self._all_annotators_finished(document)
        ):
            self.set_source_document_state(
                document, SourceDocumentStateTransition.ANNOTATION_IN_PROGRESS_TO_ANNOTATION_FINISHED
            )
        elif (
            transition == AnnotationDocumentStateTransition.ANNOTATION_FINISHED_TO_ANNOTATION_IN_PROGRESS
            and document.state == SourceDocumentState.ANNOTATION_FINISHED.value
        ):
            self.set_source_document_state(
                document, SourceDocumentStateTransition.ANNOTATION_FINISHED_TO_ANNOTATION_IN_PROGRESS
            )

        return annotation_document

    def _all_annotators_finished(self, document: SourceDocument) -> bool:
        states = {a.user: a.state for a in self.list_annotation_documents(document)}
        for permission in self.db.query(ProjectPermission).filter(
            ProjectPermission.project_id == document.project_id,
            ProjectPermission.level == ANNOTATOR_LEVEL,
        ).all():
            states.setdefault(permission.username, AnnotationDocumentState.NEW.value)

        active = [s for s in states.values() if s != AnnotationDocumentState.IGNORE.value]
        return bool(active) and all(s == AnnotationDocumentState.FINISHED.value for s in active)

    # =========================================================================
    # Constraints
    # =========================================================================

    def load_constraints(self, project: Project) -> List[Dict[str, Any]]:
        """Constraint rules of a project, in name order."""
        return [
            {"id": c.id, "name": c.name, "rules": c.rules}
            for c in self.db.query(ConstraintSet).filter(
                ConstraintSet.project_id == project.id
            ).order_by(ConstraintSet.name).all()
        ]
