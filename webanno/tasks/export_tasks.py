"""
Celery tasks for project export.

The archive is written into the exports directory of the repository; the
task result carries its path so the API can serve it once the task is done.
"""

import logging

from webanno.celery_app import celery_app
from webanno.config import get_settings
from webanno.db import get_session_factory
from webanno.services import build_services

logger = logging.getLogger(__name__)


def run_project_export(db, project_id: int, settings=None) -> dict:
    """Export a project within an existing database session."""
    settings = settings or get_settings()
    services = build_services(db, settings=settings)
    project = services.projects.get_project(project_id)
    archive = services.export.export_project(project, settings.exports_dir)
    return {
        "project_id": project_id,
        "archive": str(archive),
        "file_name": archive.name,
        "size": archive.stat().st_size,
    }


@celery_app.task(
    name="webanno.tasks.export_tasks.export_project_task",
    bind=True,
    max_retries=2,
    default_retry_delay=30,
)
def export_project_task(self, project_id: int):
    """
    Export a project as a zip archive.

    Args:
        project_id: Project to export

    Returns:
        Archive summary (path, file name, size)
    """
    logger.info(f"Starting export task for project {project_id}")

    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        result = run_project_export(db, project_id)
        logger.info(f"Export task for project {project_id} completed: {result['file_name']}")
        return result
    except OSError as e:
        logger.error(f"Export task for project {project_id} failed: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()
