"""
Authentication router.

JWT bearer tokens issued for users of the user directory.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from webanno.config import Settings, get_settings
from webanno.db import User
from webanno.routers.dependencies import get_services
from webanno.services import Services
from webanno.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter()

security = HTTPBearer(auto_error=False)


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    user: dict


def create_jwt_token(username: str, roles: list, settings: Settings) -> str:
    """Create a JWT token for authenticated user."""
    payload = {
        "sub": username,
        "roles": roles,
        "exp": datetime.utcnow() + timedelta(hours=settings.jwt_expiration_hours),
        "iat": datetime.utcnow(),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_jwt_token(token: str, settings: Settings) -> Optional[dict]:
    """Verify and decode a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    services: Services = Depends(get_services),
) -> User:
    """Resolve the user of the bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_jwt_token(credentials.credentials, services.settings)
    user = services.users.get(payload["sub"]) if payload else None
    if user is None or not user.enabled:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not UserService.is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
    return user


def user_to_dict(user: User) -> dict:
    return {
        "username": user.username,
        "email": user.email,
        "enabled": user.enabled,
        "roles": list(user.roles or []),
    }


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings),
):
    """Authenticate user and return JWT token."""
    user = services.users.authenticate(request.username, request.password)
    if user is None:
        logger.warning(f"Failed login attempt for user: {request.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    token = create_jwt_token(user.username, list(user.roles or []), settings)
    logger.info(f"User logged in: {user.username}")

    return LoginResponse(token=token, user=user_to_dict(user))


@router.post("/logout")
async def logout(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """
    Logout user (client-side token removal).

    The user's editor state is discarded.
    """
    services.states.discard(user.username)
    return {"message": "Logged out successfully"}
