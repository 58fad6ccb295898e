"""
Annotation layer router.

Endpoints:
- GET /feature-supports - Registered feature supports in priority order
- GET / - List layers with their features
- POST / - Create layer
- PATCH/DELETE /{layer_id} - Update/remove layer
- POST /{layer_id}/features - Create feature
- PATCH/DELETE /{layer_id}/features/{feature_id} - Update/remove feature
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from webanno.db import AnnotationFeature, AnnotationLayer, User
from webanno.errors import WebAnnoError
from webanno.feature.support import LINK_NONE, MULTI_VALUE_NONE
from webanno.routers.auth import get_current_user
from webanno.routers.dependencies import (
    get_project_or_404, get_services, require_project_admin, require_project_member,
    to_http_exception,
)
from webanno.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


class LayerCreateRequest(BaseModel):
    name: str
    type: str = "span"
    ui_name: Optional[str] = None
    attach_layer: Optional[str] = None
    read_only: bool = False


class LayerUpdateRequest(BaseModel):
    ui_name: Optional[str] = None
    enabled: Optional[bool] = None
    read_only: Optional[bool] = None


class FeatureCreateRequest(BaseModel):
    name: str
    type: str = "string"
    ui_name: Optional[str] = None
    multi_value_mode: str = MULTI_VALUE_NONE
    link_mode: str = LINK_NONE
    tags: Optional[List[str]] = None
    tags_creatable: bool = True
    required: bool = False
    visible: bool = True


class FeatureUpdateRequest(BaseModel):
    ui_name: Optional[str] = None
    tags: Optional[List[str]] = None
    tags_creatable: Optional[bool] = None
    required: Optional[bool] = None
    enabled: Optional[bool] = None
    visible: Optional[bool] = None


def feature_to_dict(feature: AnnotationFeature) -> Dict[str, Any]:
    return {
        "id": feature.id,
        "name": feature.name,
        "ui_name": feature.ui_name,
        "type": feature.type,
        "multi_value_mode": feature.multi_value_mode,
        "link_mode": feature.link_mode,
        "tags": feature.tags,
        "tags_creatable": feature.tags_creatable,
        "required": feature.required,
        "enabled": feature.enabled,
        "visible": feature.visible,
    }


def layer_to_dict(layer: AnnotationLayer) -> Dict[str, Any]:
    return {
        "id": layer.id,
        "name": layer.name,
        "ui_name": layer.ui_name,
        "type": layer.type,
        "attach_layer": layer.attach_layer.name if layer.attach_layer else None,
        "enabled": layer.enabled,
        "read_only": layer.read_only,
        "features": [feature_to_dict(f) for f in layer.features],
    }


@router.get("/feature-supports")
async def list_feature_supports(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Feature supports in the order they are asked to handle a feature."""
    return [
        {"id": s.support_id, "order": s.order, "types": s.feature_types()}
        for s in services.registry.get_feature_supports()
    ]


@router.get("")
async def list_layers(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_member(services, project, user)
    return [layer_to_dict(layer) for layer in services.schema.list_layers(project)]


@router.post("", status_code=201)
async def create_layer(
    project_id: int,
    request: LayerCreateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        attach_layer = None
        if request.attach_layer:
            attach_layer = services.schema.get_layer_by_name(project, request.attach_layer)
        layer = services.schema.create_layer(
            project,
            request.name,
            type=request.type,
            ui_name=request.ui_name,
            attach_layer=attach_layer,
            read_only=request.read_only,
        )
    except WebAnnoError as e:
        raise to_http_exception(e)
    return layer_to_dict(layer)


@router.patch("/{layer_id}")
async def update_layer(
    project_id: int,
    layer_id: int,
    request: LayerUpdateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        layer = services.schema.get_layer(project, layer_id)
        layer = services.schema.update_layer(layer, **request.model_dump(exclude_none=True))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return layer_to_dict(layer)


@router.delete("/{layer_id}")
async def remove_layer(
    project_id: int,
    layer_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        services.schema.remove_layer(services.schema.get_layer(project, layer_id))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"message": f"Layer [{layer_id}] removed"}


@router.post("/{layer_id}/features", status_code=201)
async def create_feature(
    project_id: int,
    layer_id: int,
    request: FeatureCreateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        layer = services.schema.get_layer(project, layer_id)
        feature = services.schema.create_feature(layer, **request.model_dump())
    except WebAnnoError as e:
        raise to_http_exception(e)
    return feature_to_dict(feature)


@router.patch("/{layer_id}/features/{feature_id}")
async def update_feature(
    project_id: int,
    layer_id: int,
    feature_id: int,
    request: FeatureUpdateRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        feature = services.schema.get_feature_by_id(project, feature_id)
        feature = services.schema.update_feature(feature, **request.model_dump(exclude_none=True))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return feature_to_dict(feature)


@router.delete("/{layer_id}/features/{feature_id}")
async def remove_feature(
    project_id: int,
    layer_id: int,
    feature_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    project = get_project_or_404(services, project_id)
    require_project_admin(services, project, user)
    try:
        services.schema.remove_feature(services.schema.get_feature_by_id(project, feature_id))
    except WebAnnoError as e:
        raise to_http_exception(e)
    return {"message": f"Feature [{feature_id}] removed"}
