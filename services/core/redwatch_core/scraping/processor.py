"""Item processing between extraction and enrichment.

Cleans each candidate, drops the ones that cannot be verified, and hands
the rest to the enrichment lane as explicit EnrichmentJobs.
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from redwatch_core.domain.jobs import EnrichmentJob, JobQueue
from redwatch_core.domain.models import utcnow
from redwatch_core.domain.services.keyword_match import normalize_whitespace
from redwatch_core.scraping.extraction import CandidateItem

logger = logging.getLogger(__name__)

NECESSARY_FIELDS = ("title", "post_id", "subreddit", "subreddit_id")
ENRICHMENT_DELAY_RANGE = (1, 3)


@dataclass(frozen=True)
class ProcessingContext:
    """Identifiers of the search job that produced the candidates."""

    user_id: Optional[int]
    credential_id: Optional[int]
    keyword_id: Optional[int]


def clean_candidate(candidate: CandidateItem, scraped_at: datetime) -> dict[str, Any]:
    """Keep the necessary fields, whitespace-normalized and non-empty."""
    raw = candidate.to_dict()
    cleaned: dict[str, Any] = {}

    for name in NECESSARY_FIELDS:
        value = raw.get(name)
        if isinstance(value, str):
            value = normalize_whitespace(value)
        if value:
            cleaned[name] = value

    cleaned["scraped_at"] = scraped_at.isoformat()
    return cleaned


class RedditPostProcessor:
    """Turns search candidates into enrichment jobs."""

    def __init__(
        self,
        queue: JobQueue,
        context: ProcessingContext,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
        delay_range: tuple[int, int] = ENRICHMENT_DELAY_RANGE,
    ):
        self.queue = queue
        self.context = context
        self.rng = rng or random.Random()
        self.clock = clock
        self.delay_range = delay_range

    def process(self, candidate: CandidateItem) -> Optional[EnrichmentJob]:
        """Enqueue one enrichment job for a valid candidate.

        Returns:
            The enqueued job, or None if the candidate was dropped.
        """
        data = clean_candidate(candidate, self.clock())

        if not data.get("title") or not data.get("post_id"):
            return None

        if not self.context.credential_id or not self.context.keyword_id:
            logger.error(
                f"Missing credential_id or keyword_id for post {data['post_id']} "
                f"(user {self.context.user_id}, credential {self.context.credential_id}, "
                f"keyword {self.context.keyword_id})"
            )
            return None

        job = EnrichmentJob(
            credential_id=self.context.credential_id,
            keyword_id=self.context.keyword_id,
            post_id=data["post_id"],
            subreddit=data.get("subreddit"),
        )
        self.queue.enqueue_enrichment(job, countdown=self.rng.randint(*self.delay_range))
        return job

    def process_all(self, candidates: list[CandidateItem]) -> list[EnrichmentJob]:
        jobs = []
        for candidate in candidates:
            job = self.process(candidate)
            if job is not None:
                jobs.append(job)
        return jobs
