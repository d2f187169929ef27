"""
Celery application for durable-cache maintenance.

Only one periodic job exists: sweeping expired translation rows. Run a beat
scheduler plus a worker consuming the ``maintenance`` queue.
"""

from celery import Celery
from celery.signals import setup_logging

from lingomesh.core.config import settings
from lingomesh.core.logging import configure_logging, get_logger

logger = get_logger(__name__)

CLEANUP_TASK = "lingomesh.workers.tasks.cleanup_expired_translations_task"
MAINTENANCE_QUEUE = "maintenance"

celery_app = Celery(
    "lingomesh",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["lingomesh.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Redelivered if the worker dies mid-sweep
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=settings.cache_sweep_interval_seconds * 24,
    broker_connection_retry_on_startup=True,
    task_routes={CLEANUP_TASK: {"queue": MAINTENANCE_QUEUE}},
    beat_schedule={
        "cleanup-expired-translations": {
            "task": CLEANUP_TASK,
            "schedule": float(settings.cache_sweep_interval_seconds),
            "options": {"queue": MAINTENANCE_QUEUE},
        },
    },
)


@setup_logging.connect
def setup_celery_logging(**kwargs):
    """Replace Celery's logging setup with the application's formatters."""
    configure_logging()
    logger.info("Celery logging configured")
