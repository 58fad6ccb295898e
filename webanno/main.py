"""
FastAPI application entry point for WebAnno.

Provides REST API for:
- Users, projects, permissions, guidelines and constraints
- Source documents and annotation layers
- The annotation editor (open, page, edit, finish)
- Monitoring and export
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webanno import __version__
from webanno.config import settings
from webanno.db import get_session_factory, init_schema
from webanno.services.user_service import UserService


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger(__name__)


def _ensure_admin():
    """Create the bootstrap administrator on first start."""
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        UserService(db).ensure_admin(settings.admin_username, settings.admin_password)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting WebAnno application...")

    # Ensure directories exist
    for dir_path in [settings.repository_dir, settings.exports_dir, settings.tmp_dir]:
        Path(dir_path).mkdir(parents=True, exist_ok=True)

    # Initialize database schema
    try:
        init_schema()
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise

    _ensure_admin()

    logger.info("WebAnno application started")
    yield

    # Shutdown
    logger.info("Shutting down WebAnno application...")


# Create FastAPI application
app = FastAPI(
    title="WebAnno",
    description="Collaborative web-based annotation of text documents",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }


# Import and include routers
from webanno.routers import annotation, auth, documents, export, layers, monitoring, projects, users
app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/v1/users", tags=["users"])
app.include_router(projects.router, prefix="/api/v1/projects", tags=["projects"])
app.include_router(documents.router, prefix="/api/v1/projects/{project_id}/documents", tags=["documents"])
app.include_router(layers.router, prefix="/api/v1/projects/{project_id}/layers", tags=["layers"])
app.include_router(annotation.router, prefix="/api/v1/annotate", tags=["annotation"])
app.include_router(monitoring.router, prefix="/api/v1/monitoring", tags=["monitoring"])
app.include_router(export.router, prefix="/api/v1/export", tags=["export"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "webanno.main:app",
        host="0.0.0.0",
        port=8080,
        reload=settings.debug,
    )
