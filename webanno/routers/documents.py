"""
Document router.

Endpoints:
- GET / - List source documents of a project
- POST / - Upload a plain text document
- DELETE /{document_id} - Remove a document with its annotations
- POST /{document_id}/state - Apply a source document state transition
- POST /{document_id}/annotators/{username}/state - Apply an annotation document state transition
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from webanno.db import SourceDocument, User
from webanno.errors import WebAnnoError
from webanno.routers.auth import get_current_user
from webanno.routers.dependencies import (
    get_project_or_404, get_services, require_project_admin, require_project_member,
    to_http_exception,
)
from webanno.services import Services
from webanno.states import AnnotationDocumentStateTransition, SourceDocumentStateTransition

logger = logging.getLogger(__name__)

router = APIRouter()


class DocumentResponse(BaseModel):
    id: int
    name: str
    format: str
    state: str
    timestamp: Optional[str] = None


class TransitionRequest(BaseModel):
    transition: str


def document_to_response(document: SourceDocument) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        name=document.name,
        format=document.format,
        state=document.state,
        timestamp=document.timestamp.isoformat() if document.timestamp else None,
    )


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    return [document_to_response(d) for d in services.documents.list_source_documents(project)]


@router.post("", response_model=DocumentResponse, status_code=201)
async def upload_document(
    project_id: int,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Upload a UTF-8 plain text document."""
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)

    content = await file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail=f"Document [{file.filename}] is not UTF-8 text")

    try:
        document = services.documents.upload_source_document(project, file.filename, text)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return document_to_response(document)


@router.delete("/{document_id}")
async def delete_document(
    project_id: int,
    document_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        document = services.documents.get_source_document(project.id, document_id)
    except WebAnnoError as e:
        raise to_http_exception(e)
    services.documents.remove_source_document(document)
    return {"message": f"Document [{document_id}] removed"}


@router.post("/{document_id}/state", response_model=DocumentResponse)
async def transition_document(
    project_id: int,
    document_id: int,
    request: TransitionRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    if not services.projects.is_curator(project, user):
        require_project_admin(services, project, user)
    try:
        transition = SourceDocumentStateTransition[request.transition]
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown transition [{request.transition}]")
    try:
        document = services.documents.get_source_document(project.id, document_id)
        document = services.documents.set_source_document_state(document, transition)
    except WebAnnoError as e:
        raise to_http_exception(e)
    return document_to_response(document)


@router.post("/{document_id}/annotators/{username}/state")
async def transition_annotation_document(
    project_id: int,
    document_id: int,
    username: str,
    request: TransitionRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Change the state of an annotator's document, e.g. to ignore or re-open it."""
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        transition = AnnotationDocumentStateTransition[request.transition]
    except KeyError:
        raise HTTPException(status_code=400, detail=f"Unknown transition [{request.transition}]")
    try:
        document = services.documents.get_source_document(project.id, document_id)
        annotator = services.users.get_or_fail(username)
        annotation_document = services.documents.create_or_get_annotation_document(document, annotator)
        annotation_document = services.documents.set_annotation_document_state(
            annotation_document, transition
        )
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"document_id": document_id, "user": username, "state": annotation_document.state}
