"""Celery application configuration for Redwatch Worker."""

import os

from celery import Celery
from celery.signals import setup_logging, worker_process_init

# Celery configuration from environment
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/2")
MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "3600"))

# Lanes
MONITORING_QUEUE = "monitoring"
SEARCH_QUEUE = "search"
POST_PROCESSING_QUEUE = "post_processing"

app = Celery(
    "redwatch_worker",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=[
        "redwatch_worker.tasks.monitoring",
        "redwatch_worker.tasks.search",
        "redwatch_worker.tasks.enrichment",
    ],
)

# Celery configuration
app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Time limits (seconds), overridden per lane on the tasks
    task_soft_time_limit=300,
    task_time_limit=600,
    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=2,
    # Queue routing
    task_routes={
        "monitor.*": {"queue": MONITORING_QUEUE},
        "search.*": {"queue": SEARCH_QUEUE},
        "enrich.*": {"queue": POST_PROCESSING_QUEUE},
    },
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
)

# Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "monitor-keywords-periodic": {
        "task": "monitor.run_all",
        "schedule": MONITOR_INTERVAL_SECONDS,
        "args": (),
    },
}


@setup_logging.connect
def _configure_logging(**kwargs) -> None:
    """Keep Celery from replacing the root logger with its own handlers."""
    from redwatch_core.config import get_settings
    from redwatch_core.observability import configure_logging

    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        service_name="redwatch-worker",
    )


@worker_process_init.connect
def _reset_db_pool(**kwargs) -> None:
    """Forked pool processes must not share the parent's connections."""
    from redwatch_core.infra.db import reset_session_factory

    reset_session_factory()


if __name__ == "__main__":
    app.start()
