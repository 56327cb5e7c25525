"""Enrichment tasks on the post_processing lane.

One task per candidate post: confirm it through the Reddit API, match it
against its keyword rule, analyze it and store the mention. Reddit outages
and unexpected errors are retried with backoff; jobs that exhaust their
attempts are written to the failure log by EnrichmentTask.on_failure.
"""

from typing import Any, Optional

from celery import Task

from redwatch_core.observability import JobContext, get_logger

from redwatch_worker.celery_app import app
from redwatch_worker.util.retry import TASK_RETRY, retry_countdown

logger = get_logger(__name__)
dead_letter_logger = get_logger("redwatch_worker.dead_letter")


def _get_db_session() -> Any:
    """Get database session for task execution."""
    from redwatch_core.infra.db import get_sync_session_factory

    return get_sync_session_factory()()


class EnrichmentTask(Task):
    """Base task that records permanently failed jobs."""

    def on_failure(self, exc, task_id, args, kwargs, einfo) -> None:
        context = JobContext(
            task=self.name,
            credential_id=kwargs.get("credential_id"),
            keyword_id=kwargs.get("keyword_id"),
            post_id=kwargs.get("post_id"),
            extra={"task_id": task_id},
        )
        dead_letter_logger.error(
            f"Enrichment job failed permanently: {type(exc).__name__}: {exc}",
            context=context,
            retries=self.request.retries,
        )


@app.task(
    bind=True,
    base=EnrichmentTask,
    name="enrich.process_post",
    max_retries=TASK_RETRY.max_retries,
    soft_time_limit=240,
    time_limit=300,
)
def process_post(
    self,
    credential_id: int,
    keyword_id: int,
    post_id: str,
    subreddit: Optional[str] = None,
) -> dict:
    """Enrich one candidate post.

    Args:
        credential_id: Linked account whose token authorizes the lookup.
        keyword_id: Keyword rule the candidate was found for.
        post_id: Reddit post id, with or without the t3_ prefix.
        subreddit: Subreddit the search page reported, if any.

    Returns:
        dict: The enrichment result (status, post_id, mention_id, reason).
    """
    from redwatch_core.domain.jobs import EnrichmentJob
    from redwatch_worker.wiring import build_enrichment_service

    job = EnrichmentJob(
        credential_id=credential_id,
        keyword_id=keyword_id,
        post_id=post_id,
        subreddit=subreddit,
    )
    db = None

    try:
        db = _get_db_session()
        service = build_enrichment_service(db)
        return service.process(job).to_dict()

    except Exception as exc:
        if db:
            db.rollback()

        if self.request.retries < self.max_retries:
            countdown = retry_countdown(self.request.retries)
            logger.warning(
                f"Retrying enrichment in {countdown:.0f}s: {type(exc).__name__}: {exc}",
                context=JobContext(
                    task=self.name,
                    credential_id=credential_id,
                    keyword_id=keyword_id,
                    post_id=post_id,
                ),
                attempt=self.request.retries + 1,
            )
            raise self.retry(exc=exc, countdown=countdown)
        raise

    finally:
        if db:
            db.close()
