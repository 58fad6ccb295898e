#!/usr/bin/env python3
"""
Initialize the WebAnno database schema and the bootstrap administrator.

Tables are created if they do not exist yet. DATABASE_URL, ADMIN_USERNAME
and ADMIN_PASSWORD are read from the .env file in this directory.

Usage:
    python init_schema.py
"""

import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env before the settings are created
env_path = Path(__file__).parent / ".env"
load_dotenv(env_path)

from webanno.config import settings  # noqa: E402
from webanno.db import get_session_factory, init_schema  # noqa: E402
from webanno.services.user_service import UserService  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("init_schema")


def main():
    logger.info(f"Initializing schema at {settings.database_url}")
    init_schema()

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        UserService(db).ensure_admin(settings.admin_username, settings.admin_password)
    finally:
        db.close()

    settings.repository_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Schema initialized")


if __name__ == "__main__":
    main()
