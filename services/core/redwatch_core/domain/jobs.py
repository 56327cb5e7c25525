"""Job objects passed between pipeline stages.

Stages never reach for a global queue. Each one receives a JobQueue and
hands it explicit, serializable job objects.

Usage:
    queue = CollectingJobQueue()
    queue.enqueue_enrichment(
        EnrichmentJob(credential_id=1, keyword_id=2, post_id="abc123"),
        countdown=2,
    )
    assert queue.enrichment_jobs[0].job.post_id == "abc123"
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Protocol


@dataclass(frozen=True)
class SearchJob:
    """Render and scrape one search page for one keyword rule."""

    keyword: str
    user_id: int
    credential_id: int
    keyword_id: int
    subreddit: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "SearchJob":
        return cls(
            keyword=payload["keyword"],
            user_id=int(payload["user_id"]),
            credential_id=int(payload["credential_id"]),
            keyword_id=int(payload["keyword_id"]),
            subreddit=payload.get("subreddit"),
        )


@dataclass(frozen=True)
class EnrichmentJob:
    """Confirm, match, analyze and persist one candidate post."""

    credential_id: int
    keyword_id: int
    post_id: str
    subreddit: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "EnrichmentJob":
        return cls(
            credential_id=int(payload["credential_id"]),
            keyword_id=int(payload["keyword_id"]),
            post_id=str(payload["post_id"]),
            subreddit=payload.get("subreddit"),
        )


class JobQueue(Protocol):
    """Where stages put follow-up work."""

    def enqueue_search(self, job: SearchJob, countdown: float = 0) -> None: ...

    def enqueue_enrichment(self, job: EnrichmentJob, countdown: float = 0) -> None: ...


@dataclass
class QueuedJob:
    """A job captured by CollectingJobQueue together with its delay."""

    job: Any
    countdown: float


@dataclass
class CollectingJobQueue:
    """In-memory JobQueue that records what would have been enqueued."""

    search_jobs: list[QueuedJob] = field(default_factory=list)
    enrichment_jobs: list[QueuedJob] = field(default_factory=list)

    def enqueue_search(self, job: SearchJob, countdown: float = 0) -> None:
        self.search_jobs.append(QueuedJob(job=job, countdown=countdown))

    def enqueue_enrichment(self, job: EnrichmentJob, countdown: float = 0) -> None:
        self.enrichment_jobs.append(QueuedJob(job=job, countdown=countdown))
