"""Reddit search spider: download, render, extract.

Usage:
    spider = RedditSearchSpider(
        downloader=PageDownloader(middleware=[RenderingMiddleware(PlaywrightRenderer(), options)]),
    )
    candidates = spider.crawl(build_search_url("widget", subreddit="smallbusiness"))
"""

import logging
from typing import Optional

from redwatch_core.domain.errors import ExtractionError
from redwatch_core.scraping.downloader import PageDownloader
from redwatch_core.scraping.extraction import CandidateItem, SearchExtractor

logger = logging.getLogger(__name__)


class RedditSearchSpider:
    """Crawls one search page per call."""

    def __init__(
        self,
        downloader: PageDownloader,
        extractor: Optional[SearchExtractor] = None,
    ):
        self.downloader = downloader
        self.extractor = extractor or SearchExtractor()

    def crawl(self, url: str) -> list[CandidateItem]:
        """Fetch url and return its candidates. Never raises for bad markup."""
        response = self.downloader.fetch(url)

        if not response.body:
            logger.warning(f"Empty response for {url} (status {response.status})")
            return []

        try:
            candidates = self.extractor.extract(response.body)
        except ExtractionError as e:
            logger.error(f"Failed to parse {url}: {e}")
            return []

        logger.info(f"Extracted {len(candidates)} candidates from {url}")
        return candidates
