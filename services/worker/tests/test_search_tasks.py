"""Unit tests for search lane tasks."""

from unittest.mock import MagicMock, patch

import pytest


def _candidate(post_id, title="A post"):
    from redwatch_core.scraping import CandidateItem

    return CandidateItem(post_id=post_id, title=title, subreddit="python", subreddit_id="t5_2qh0y")


@pytest.fixture
def spider():
    return MagicMock()


@pytest.fixture
def collecting_queue():
    from redwatch_core.domain.jobs import CollectingJobQueue

    return CollectingJobQueue()


@pytest.fixture
def patched_search(spider, collecting_queue):
    with patch("redwatch_worker.wiring.build_spider", return_value=spider), patch(
        "redwatch_worker.wiring.build_job_queue", return_value=collecting_queue
    ):
        yield spider


SEARCH_KWARGS = {
    "keyword": "standing desk",
    "user_id": 1,
    "credential_id": 2,
    "keyword_id": 3,
}


class TestScrapeKeyword:
    """Tests for search.scrape_keyword."""

    def test_task_is_registered(self, mock_celery_app):
        from redwatch_worker.tasks.search import scrape_keyword

        assert scrape_keyword.name == "search.scrape_keyword"

    def test_enqueues_one_job_per_valid_candidate(
        self, mock_celery_app, patched_search, collecting_queue
    ):
        from redwatch_worker.tasks.search import scrape_keyword

        patched_search.crawl.return_value = [
            _candidate("t3_aaa"),
            _candidate("t3_bbb"),
            _candidate("t3_ccc", title="   "),
        ]

        result = scrape_keyword.apply(kwargs=SEARCH_KWARGS).get()

        assert result["status"] == "success"
        assert result["candidates"] == 3
        assert result["enqueued"] == 2

        jobs = [queued.job for queued in collecting_queue.enrichment_jobs]
        assert [job.post_id for job in jobs] == ["t3_aaa", "t3_bbb"]
        assert all(job.credential_id == 2 and job.keyword_id == 3 for job in jobs)
        assert all(1 <= queued.countdown <= 3 for queued in collecting_queue.enrichment_jobs)

    def test_builds_subreddit_search_url(self, mock_celery_app, patched_search):
        from redwatch_worker.tasks.search import scrape_keyword

        patched_search.crawl.return_value = []

        result = scrape_keyword.apply(kwargs={**SEARCH_KWARGS, "subreddit": "python"}).get()

        url = patched_search.crawl.call_args.args[0]
        assert "/svc/shreddit/r/python/search/" in url
        assert "q=standing+desk" in url
        assert result["url"] == url
        assert result["enqueued"] == 0

    def test_site_wide_search_url(self, mock_celery_app, patched_search):
        from redwatch_worker.tasks.search import scrape_keyword

        patched_search.crawl.return_value = []

        scrape_keyword.apply(kwargs=SEARCH_KWARGS).get()

        url = patched_search.crawl.call_args.args[0]
        assert "/svc/shreddit/search/" in url

    def test_unexpected_error_retried_then_reported(self, mock_celery_app, patched_search):
        from redwatch_worker.tasks.search import scrape_keyword

        patched_search.crawl.side_effect = RuntimeError("browser crashed")

        result = scrape_keyword.apply(kwargs=SEARCH_KWARGS).get()

        assert result["status"] == "failed"
        assert patched_search.crawl.call_count == scrape_keyword.max_retries + 1
