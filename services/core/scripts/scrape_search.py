#!/usr/bin/env python3
"""Dry-run one search scrape and print the candidates it would enqueue.

Nothing is written and no jobs are sent; the enrichment jobs are collected
in memory and printed.

Run this inside the container:
    docker exec redwatch-core python /app/scripts/scrape_search.py "standing desk" --subreddit officedesign
"""

import argparse
import json

from redwatch_core.config import get_settings
from redwatch_core.domain.jobs import CollectingJobQueue
from redwatch_core.observability import configure_logging
from redwatch_core.providers.reddit import build_search_url
from redwatch_core.scraping import (
    PageDownloader,
    PlaywrightRenderer,
    ProcessingContext,
    RedditPostProcessor,
    RedditSearchSpider,
    RenderingMiddleware,
    RenderOptions,
)


def main():
    parser = argparse.ArgumentParser(description="Scrape one Reddit search page")
    parser.add_argument("keyword", help="Search term")
    parser.add_argument("--subreddit", help="Restrict the search to one subreddit")
    parser.add_argument("--no-render", action="store_true", help="Skip the headless browser")
    parser.add_argument("--credential-id", type=int, default=1, help="Credential id stamped on the jobs")
    parser.add_argument("--keyword-id", type=int, default=1, help="Keyword rule id stamped on the jobs")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=False, service_name="scrape-search")

    options = RenderOptions.from_settings(settings)
    middleware = [] if args.no_render else [RenderingMiddleware(PlaywrightRenderer(), options)]
    spider = RedditSearchSpider(
        PageDownloader(
            middleware=middleware,
            user_agent=options.user_agent,
            timeout=settings.reddit_api_timeout,
        )
    )

    url = build_search_url(
        args.keyword,
        subreddit=args.subreddit,
        sort=settings.search_sort,
        time_filter=settings.search_time_filter,
        base_url=settings.reddit_search_base_url,
    )
    print(f"Scraping {url}")

    candidates = spider.crawl(url)
    queue = CollectingJobQueue()
    processor = RedditPostProcessor(
        queue=queue,
        context=ProcessingContext(
            user_id=None, credential_id=args.credential_id, keyword_id=args.keyword_id
        ),
    )
    processor.process_all(candidates)

    for queued in queue.enrichment_jobs:
        print(json.dumps({"countdown": queued.countdown, **queued.job.to_payload()}))

    print(f"{len(candidates)} candidates, {len(queue.enrichment_jobs)} enrichment jobs")


if __name__ == "__main__":
    main()
