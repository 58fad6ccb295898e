"""
Celery application configuration for background task processing.

Uses Redis as the message broker. Project exports run as tasks so that
building large archives does not block API requests.
"""

from celery import Celery

from webanno.config import settings


# Create Celery application
celery_app = Celery(
    "webanno",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["webanno.tasks.export_tasks"],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue task if worker dies
    task_time_limit=1800,
    task_soft_time_limit=1500,

    # Result backend settings
    result_expires=86400,  # Results expire after 24 hours

    # Worker settings
    worker_prefetch_multiplier=1,

    task_routes={
        "webanno.tasks.export_tasks.*": {"queue": "export"},
    },
)


def get_celery_app() -> Celery:
    """Get the Celery application instance."""
    return celery_app
