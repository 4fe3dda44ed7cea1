"""Single entry point for sending background tasks"""

from typing import Any, List, Optional

import structlog

from tablebook.config import settings

logger = structlog.get_logger()


def enqueue(task_name: str, args: Optional[List[Any]] = None, countdown: Optional[int] = None) -> bool:
    """Send a task by name. Returns False when the queue is disabled or unreachable."""
    if not settings.task_queue_enabled:
        logger.debug("Task queue disabled, task not sent", task=task_name)
        return False

    try:
        from tablebook.jobs.celery_app import celery_app

        celery_app.send_task(task_name, args=args or [], countdown=countdown)
    except Exception as e:
        logger.error("Failed to enqueue task", task=task_name, error=str(e))
        return False

    logger.info("Task enqueued", task=task_name, countdown=countdown)
    return True
