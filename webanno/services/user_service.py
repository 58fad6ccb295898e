"""
User directory service.

Users have a global role set (ROLE_ADMIN, ROLE_USER). Passwords are hashed
with passlib (pbkdf2_sha256).
"""

import logging
import re
from typing import List, Optional

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from webanno.db import User
from webanno.errors import NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"

_USERNAME = re.compile(r"^[A-Za-z0-9_.@-]+$")


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    try:
        return pwd_context.verify(password, stored)
    except ValueError:
        # Unrecognised hash format
        return False


class UserService:
    """Service for managing application users."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def create_user(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        roles: Optional[List[str]] = None,
    ) -> User:
        if not _USERNAME.match(username or ""):
            raise ValidationFailedError(f"Invalid username [{username}]")
        if self.exists(username):
            raise ValidationFailedError(f"User [{username}] already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            email=email,
            enabled=True,
            roles=list(roles or [ROLE_USER]),
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Created user: {username} (roles: {user.roles})")
        return user

    def get(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get_or_fail(self, username: str) -> User:
        user = self.get(username)
        if user is None:
            raise NotFoundError(f"User [{username}] does not exist")
        return user

    def exists(self, username: str) -> bool:
        return self.get(username) is not None

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.username).all()

    def set_enabled(self, user: User, enabled: bool) -> User:
        user.enabled = enabled
        self.db.commit()
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials are valid and the account is enabled."""
        user = self.get(username)
        if user is None or not user.enabled:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def ensure_admin(self, username: str, password: str) -> User:
        """Create the bootstrap administrator unless it exists already."""
        user = self.get(username)
        if user is not None:
            return user
        logger.info(f"Creating bootstrap administrator: {username}")
        return self.create_user(username, password, roles=[ROLE_ADMIN, ROLE_USER])

    @staticmethod
    def is_admin(user: Optional[User]) -> bool:
        return user is not None and ROLE_ADMIN in (user.roles or [])
