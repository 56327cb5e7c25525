"""Search lane tasks.

Each task renders one Reddit search page, extracts candidate posts and
hands every valid candidate to the post_processing lane. Rendering is the
expensive step, so this lane is meant to run with --concurrency=1.
"""

import logging
from typing import Optional

from redwatch_worker.celery_app import app

logger = logging.getLogger(__name__)


@app.task(
    bind=True,
    name="search.scrape_keyword",
    max_retries=1,
    default_retry_delay=120,
    soft_time_limit=600,
    time_limit=660,
)
def scrape_keyword(
    self,
    keyword: str,
    user_id: int,
    credential_id: int,
    keyword_id: int,
    subreddit: Optional[str] = None,
) -> dict:
    """Scrape one search page for a keyword rule.

    Args:
        keyword: Search term from the rule.
        user_id: Owner of the rule.
        credential_id: Linked account the enrichment jobs will use.
        keyword_id: The rule being searched.
        subreddit: Restrict the search to one subreddit; None for site-wide.

    Returns:
        dict: status, the search URL and candidate/job counts.
    """
    try:
        from redwatch_core.config import get_settings
        from redwatch_core.domain.jobs import SearchJob
        from redwatch_core.providers.reddit import build_search_url
        from redwatch_core.scraping import ProcessingContext, RedditPostProcessor
        from redwatch_worker.wiring import build_job_queue, build_spider

        settings = get_settings()
        job = SearchJob(
            keyword=keyword,
            user_id=user_id,
            credential_id=credential_id,
            keyword_id=keyword_id,
            subreddit=subreddit,
        )

        url = build_search_url(
            job.keyword,
            subreddit=job.subreddit,
            sort=settings.search_sort,
            time_filter=settings.search_time_filter,
            base_url=settings.reddit_search_base_url,
        )
        logger.info(f"Searching {url} for keyword rule {job.keyword_id}")

        candidates = build_spider(settings).crawl(url)

        processor = RedditPostProcessor(
            queue=build_job_queue(),
            context=ProcessingContext(
                user_id=job.user_id,
                credential_id=job.credential_id,
                keyword_id=job.keyword_id,
            ),
        )
        jobs = processor.process_all(candidates)

        return {
            "status": "success",
            "url": url,
            "keyword_id": job.keyword_id,
            "candidates": len(candidates),
            "enqueued": len(jobs),
        }

    except ValueError as exc:
        # Bad sort/time filter settings; retrying will not help
        logger.error(f"Invalid search for keyword rule {keyword_id}: {exc}")
        return {"status": "error", "keyword_id": keyword_id, "error": str(exc)}

    except Exception as exc:
        logger.error(
            f"Search failed for keyword rule {keyword_id}: {exc}",
            exc_info=True,
        )

        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=120)
        return {
            "status": "failed",
            "keyword_id": keyword_id,
            "error": str(exc),
        }
