"""
User management router (administrators only).

Endpoints:
- GET / - List users
- POST / - Create user
- GET /me - Current user
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr

from webanno.db import User
from webanno.errors import WebAnnoError
from webanno.routers.auth import get_current_user, require_admin, user_to_dict
from webanno.routers.dependencies import get_services, to_http_exception
from webanno.services import Services
from webanno.services.user_service import ROLE_USER

logger = logging.getLogger(__name__)

router = APIRouter()


class UserCreateRequest(BaseModel):
    username: str
    password: str
    email: Optional[EmailStr] = None
    roles: List[str] = [ROLE_USER]


class UserResponse(BaseModel):
    username: str
    email: Optional[str] = None
    enabled: bool
    roles: List[str]


@router.get("", response_model=List[UserResponse])
async def list_users(
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """List all users."""
    return [UserResponse(**user_to_dict(u)) for u in services.users.list_users()]


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    request: UserCreateRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Create a new user."""
    try:
        user = services.users.create_user(
            request.username, request.password, email=request.email, roles=request.roles
        )
    except WebAnnoError as e:
        raise to_http_exception(e)
    return UserResponse(**user_to_dict(user))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get the authenticated user."""
    return UserResponse(**user_to_dict(user))
