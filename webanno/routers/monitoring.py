"""
Monitoring router.

Endpoints:
- GET /projects/{project_id} - Documents x annotators progress table
- GET /icons/{state}.svg - State icon (cacheable)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from webanno.db import User
from webanno.routers.auth import get_current_user
from webanno.routers.dependencies import get_project_or_404, get_services
from webanno.services import Services
from webanno.utils.embeddable_image import ICON_CACHE_CONTROL, render_state_icon

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/projects/{project_id}")
async def get_progress(
    project_id: int,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Annotation progress of a project (curators and project managers)."""
    project = get_project_or_404(services, project_id)
    if not (services.projects.is_admin(project, user) or services.projects.is_curator(project, user)):
        raise HTTPException(
            status_code=403,
            detail=f"You have no permission to monitor project [{project_id}]",
        )
    return services.monitoring.get_progress(project)


@router.get("/icons/{state}.svg")
async def get_state_icon(state: str):
    """State icon; served with cache headers so table refreshes reuse it."""
    try:
        svg = render_state_icon(state)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown state [{state}]")
    return Response(
        content=svg,
        media_type="image/svg+xml",
        headers={"Cache-Control": ICON_CACHE_CONTROL},
    )
