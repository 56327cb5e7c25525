"""Celery-backed JobQueue.

Pipeline stages in redwatch_core only know the JobQueue protocol. This
adapter turns their job objects into send_task calls on the right lane.
"""

from celery import Celery

from redwatch_core.domain.jobs import EnrichmentJob, SearchJob

from redwatch_worker.celery_app import POST_PROCESSING_QUEUE, SEARCH_QUEUE

SEARCH_TASK = "search.scrape_keyword"
ENRICH_TASK = "enrich.process_post"


class CeleryJobQueue:
    """Enqueues pipeline jobs as Celery tasks by name."""

    def __init__(self, app: Celery):
        self.app = app

    def enqueue_search(self, job: SearchJob, countdown: float = 0) -> None:
        self.app.send_task(
            SEARCH_TASK,
            kwargs=job.to_payload(),
            countdown=countdown,
            queue=SEARCH_QUEUE,
        )

    def enqueue_enrichment(self, job: EnrichmentJob, countdown: float = 0) -> None:
        self.app.send_task(
            ENRICH_TASK,
            kwargs=job.to_payload(),
            countdown=countdown,
            queue=POST_PROCESSING_QUEUE,
        )
