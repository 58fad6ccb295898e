"""
Shared FastAPI dependencies and error translation for the routers.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from webanno.config import Settings, get_settings
from webanno.db import Project, get_db
from webanno.errors import (
    AccessDeniedError, ConfirmationRequiredError, DocumentReadError, InvalidStateTransitionError,
    NotFoundError, ValidationFailedError, WebAnnoError,
)
from webanno.services import Services, build_services

logger = logging.getLogger(__name__)

_STATUS_CODES = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AccessDeniedError, status.HTTP_403_FORBIDDEN),
    (ConfirmationRequiredError, status.HTTP_409_CONFLICT),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST),
    (DocumentReadError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def get_services(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Services:
    """Services bound to the request's database session."""
    return build_services(db, settings=settings)


def to_http_exception(error: WebAnnoError) -> HTTPException:
    """Translate a service error into an HTTP error carrying its message."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code >= 500:
        logger.error(f"{type(error).__name__}: {error}")
    else:
        logger.warning(f"{type(error).__name__}: {error}")
    return HTTPException(status_code=status_code, detail=str(error))


def get_project_or_404(services: Services, project_id: int) -> Project:
    try:
        return services.projects.get_project(project_id)
    except NotFoundError as e:
        raise to_http_exception(e)


def require_project_admin(services: Services, project: Project, user) -> None:
    if not services.projects.is_admin(project, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You have no permission to manage project [{project.id}]",
        )


def require_project_member(services: Services, project: Project, user) -> None:
    projects = services.projects
    if not (projects.is_admin(project, user) or projects.is_curator(project, user)
            or projects.is_annotator(project, user)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You have no permission to access project [{project.id}]",
        )
