"""
Celery tasks for durable cache maintenance.
"""

from celery import Task

from lingomesh.core.db import session_scope
from lingomesh.core.logging import get_logger
from lingomesh.services.translation_cache_repository import TranslationCacheRepository
from lingomesh.workers.celery_app import CLEANUP_TASK, celery_app

logger = get_logger(__name__)


class BaseTask(Task):
    """Base task class that logs failures with task context."""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            f"Task {self.name} failed: {exc}",
            exc_info=True,
            extra={"task_id": task_id, "task_args": args, "task_kwargs": kwargs},
        )


@celery_app.task(
    bind=True,
    base=BaseTask,
    name=CLEANUP_TASK,
    max_retries=3,
    default_retry_delay=60,
)
def cleanup_expired_translations_task(self) -> dict:
    """
    Delete durable cache rows past their expiry.

    Readers already ignore expired rows; this bounds storage growth.

    Returns:
        dict: Number of rows deleted
    """
    logger.info("Starting expired translation cleanup")
    try:
        with session_scope() as session:
            deleted = TranslationCacheRepository(session).delete_expired()
    except Exception as exc:
        logger.warning(f"Expired translation cleanup failed, retrying: {exc}")
        raise self.retry(exc=exc)

    return {"status": "success", "deleted": deleted}
