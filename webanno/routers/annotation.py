"""
Annotation editor router.

All actions operate on the document the user opened with POST .../open and
return the rendered editor state (or the changed annotation).

Endpoints (under /{project_id}/{document_id}):
- POST /open - Open document
- GET / - Render visible window
- POST /page/{next|previous|first|last}, POST /page/goto - Paging
- POST /document/{next|previous} - Switch document
- POST /script-direction - Toggle LTR/RTL
- POST /preferences - Change editor preferences
- POST /finish, POST /reset - Finish or reset the document (require confirmation)
- POST /spans, POST /relations, POST /features, POST /select - Editing
- DELETE /annotations/{annotation_id} - Delete annotation
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from webanno.db import User
from webanno.errors import ValidationFailedError, WebAnnoError
from webanno.routers.auth import get_current_user
from webanno.routers.dependencies import get_services, to_http_exception
from webanno.services import Services
from webanno.services.annotation_workspace import AnnotationWorkspace

logger = logging.getLogger(__name__)

router = APIRouter()


class GotoRequest(BaseModel):
    sentence: int


class ConfirmRequest(BaseModel):
    confirmed: bool = False


class SpanRequest(BaseModel):
    layer: str
    begin: int
    end: int
    features: Optional[Dict[str, Any]] = None


class RelationRequest(BaseModel):
    layer: str
    source: int
    target: int
    features: Optional[Dict[str, Any]] = None


class FeatureValueRequest(BaseModel):
    annotation_id: int
    feature: str
    value: Any = None


class SelectRequest(BaseModel):
    annotation_id: int


def _workspace(services: Services, user: User) -> AnnotationWorkspace:
    return AnnotationWorkspace(services, user, services.states.get(user.username))


def _open_workspace(services: Services, user: User, project_id: int, document_id: int) -> AnnotationWorkspace:
    """Workspace of the user, which must have the given document open."""
    workspace = _workspace(services, user)
    state = workspace.state
    if state.project_id != project_id or state.document_id != document_id:
        raise to_http_exception(ValidationFailedError("Please open a document first!"))
    return workspace


def _run(action, *args, **kwargs):
    try:
        return action(*args, **kwargs)
    except WebAnnoError as e:
        raise to_http_exception(e)


@router.post("/{project_id}/{document_id}/open")
async def open_document(
    project_id: int,
    document_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Open a document for annotation."""
    return _run(_workspace(services, user).open, project_id, document_id)


@router.get("/{project_id}/{document_id}")
async def render(
    project_id: int,
    document_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.render)


@router.post("/{project_id}/{document_id}/page/goto")
async def goto_page(
    project_id: int,
    document_id: int,
    request: GotoRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.goto_page, request.sentence)


@router.post("/{project_id}/{document_id}/page/{direction}")
async def page(
    project_id: int,
    document_id: int,
    direction: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    actions = {
        "next": workspace.next_page,
        "previous": workspace.previous_page,
        "first": workspace.first_page,
        "last": workspace.last_page,
    }
    if direction not in actions:
        raise HTTPException(status_code=404, detail=f"Unknown page action [{direction}]")
    return _run(actions[direction])


@router.post("/{project_id}/{document_id}/document/{direction}")
async def switch_document(
    project_id: int,
    document_id: int,
    direction: str,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    actions = {
        "next": workspace.next_document,
        "previous": workspace.previous_document,
    }
    if direction not in actions:
        raise HTTPException(status_code=404, detail=f"Unknown document action [{direction}]")
    return _run(actions[direction])


@router.post("/{project_id}/{document_id}/script-direction")
async def toggle_script_direction(
    project_id: int,
    document_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.toggle_script_direction)


@router.post("/{project_id}/{document_id}/preferences")
async def change_preferences(
    project_id: int,
    document_id: int,
    request: Dict[str, Any],
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.complete_preferences_change, request)


@router.post("/{project_id}/{document_id}/finish")
async def finish_document(
    project_id: int,
    document_id: int,
    request: ConfirmRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Finish the document; answers 409 with the confirmation question unless confirmed."""
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.finish_document, confirmed=request.confirmed)


@router.post("/{project_id}/{document_id}/reset")
async def reset_document(
    project_id: int,
    document_id: int,
    request: ConfirmRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.reset_document, confirmed=request.confirmed)


@router.post("/{project_id}/{document_id}/spans", status_code=201)
async def create_span(
    project_id: int,
    document_id: int,
    request: SpanRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.create_span, request.layer, request.begin, request.end, request.features)


@router.post("/{project_id}/{document_id}/relations", status_code=201)
async def create_relation(
    project_id: int,
    document_id: int,
    request: RelationRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.create_relation, request.layer, request.source, request.target, request.features)


@router.post("/{project_id}/{document_id}/features")
async def set_feature(
    project_id: int,
    document_id: int,
    request: FeatureValueRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.set_feature, request.annotation_id, request.feature, request.value)


@router.post("/{project_id}/{document_id}/select")
async def select_annotation(
    project_id: int,
    document_id: int,
    request: SelectRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return _run(workspace.select_annotation, request.annotation_id)


@router.delete("/{project_id}/{document_id}/annotations/{annotation_id}")
async def delete_annotation(
    project_id: int,
    document_id: int,
    annotation_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    workspace = _open_workspace(services, user, project_id, document_id)
    return {"deleted": _run(workspace.delete_annotation, annotation_id)}
