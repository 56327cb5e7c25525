"""Keyword monitoring tasks.

The periodic entry point of the pipeline. Runs on the monitoring lane and
fans out one search job per keyword rule and subreddit.
"""

import logging
from dataclasses import asdict
from typing import Any, Optional

from redwatch_worker.celery_app import app

logger = logging.getLogger(__name__)


def _get_db_session() -> Any:
    """Get database session for task execution."""
    from redwatch_core.infra.db import get_sync_session_factory

    return get_sync_session_factory()()


@app.task(
    bind=True,
    name="monitor.run_all",
    max_retries=2,
    default_retry_delay=60,
    soft_time_limit=300,
    time_limit=360,
)
def run_all(self, batch_size: Optional[int] = None) -> dict:
    """Dispatch search jobs for every user with a linked Reddit account.

    Args:
        batch_size: Users loaded per query. Defaults to the
            monitor_batch_size setting.

    Returns:
        dict: Run summary (users processed/skipped/failed, jobs enqueued).
    """
    db = None

    try:
        from redwatch_core.config import get_settings
        from redwatch_worker.wiring import build_monitor_service

        db = _get_db_session()
        service = build_monitor_service(db)
        summary = service.dispatch_all(batch_size or get_settings().monitor_batch_size)

        return {"status": "success", **summary.to_dict()}

    except Exception as exc:
        logger.error(f"Failed to run keyword monitoring: {exc}", exc_info=True)

        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60)
        return {
            "status": "failed",
            "error": str(exc),
        }

    finally:
        if db:
            db.close()


@app.task(
    bind=True,
    name="monitor.run_user",
    max_retries=2,
    default_retry_delay=60,
    soft_time_limit=300,
    time_limit=360,
)
def run_user(self, user_id: Optional[int] = None, email: Optional[str] = None) -> dict:
    """Dispatch search jobs for one user, looked up by id or email.

    Returns:
        dict: status plus the per-user dispatch counts.
    """
    if user_id is None and not email:
        return {"status": "error", "error": "user_id or email is required"}

    db = None

    try:
        from redwatch_worker.wiring import build_monitor_service

        db = _get_db_session()
        service = build_monitor_service(db)
        if user_id is not None:
            dispatch = service.dispatch_user_id(user_id)
        else:
            dispatch = service.dispatch_email(email)

        if dispatch is None:
            return {
                "status": "not_found",
                "user_id": user_id,
                "email": email,
            }
        if dispatch.skipped_reason:
            return {"status": "skipped", **asdict(dispatch)}
        return {"status": "success", **asdict(dispatch)}

    except Exception as exc:
        logger.error(f"Failed to run keyword monitoring for user {user_id or email}: {exc}", exc_info=True)

        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60)
        return {
            "status": "failed",
            "error": str(exc),
        }

    finally:
        if db:
            db.close()
