"""Redwatch Worker Tasks."""

# Import all tasks to register them with Celery
from redwatch_worker.tasks import enrichment  # noqa: F401
from redwatch_worker.tasks import monitoring  # noqa: F401
from redwatch_worker.tasks import search  # noqa: F401
