"""Service factories for task bodies.

This is the only place in the worker that reads settings. Tasks call a
factory with an open session and get a fully wired service back; tests
patch these factories.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import Session

from redwatch_core.config import Settings, get_settings
from redwatch_core.domain.jobs import JobQueue
from redwatch_core.domain.services.analysis import LLMSentimentAnalyzer, TextAnalyzer
from redwatch_core.domain.services.enrichment import MentionEnrichmentService
from redwatch_core.domain.services.inference import InferenceClient, InferenceConfig
from redwatch_core.domain.services.monitoring import KeywordMonitorService
from redwatch_core.domain.services.token_manager import TokenManager
from redwatch_core.infrastructure.crypto import CryptoService
from redwatch_core.infrastructure.locks import LockProvider, build_lock_provider
from redwatch_core.providers.reddit import RedditApiClient, RedditOAuthClient
from redwatch_core.scraping import (
    PageDownloader,
    PlaywrightRenderer,
    RedditSearchSpider,
    RenderingMiddleware,
    RenderOptions,
)

from redwatch_worker.celery_app import app
from redwatch_worker.queues import CeleryJobQueue


@lru_cache
def get_lock_provider() -> LockProvider:
    """One lock provider per worker process."""
    settings = get_settings()
    return build_lock_provider(
        settings.token_lock_backend,
        settings.redis_url,
        settings.token_lock_timeout,
    )


def build_job_queue() -> JobQueue:
    return CeleryJobQueue(app)


def build_token_manager(db: Session, settings: Optional[Settings] = None) -> TokenManager:
    settings = settings or get_settings()
    oauth_client = RedditOAuthClient(
        client_id=settings.reddit_client_id or "",
        client_secret=settings.reddit_client_secret or "",
        user_agent=settings.reddit_user_agent,
        token_url=settings.reddit_token_url,
        timeout=settings.reddit_api_timeout,
    )
    return TokenManager(
        db=db,
        crypto=CryptoService(settings.encryption_key),
        oauth_client=oauth_client,
        lock_provider=get_lock_provider(),
        refresh_margin=timedelta(seconds=settings.token_refresh_margin_seconds),
    )


def build_analyzer(settings: Optional[Settings] = None) -> Optional[TextAnalyzer]:
    """LLM analyzer, or None when no inference endpoint is configured."""
    settings = settings or get_settings()
    if not settings.inference_url:
        return None

    config = InferenceConfig(
        base_url=settings.inference_url,
        model_name=settings.inference_model or "default",
        timeout=settings.inference_timeout,
        max_tokens=settings.analysis_max_tokens,
        temperature=settings.analysis_temperature,
        api_key=settings.inference_api_key,
    )
    return LLMSentimentAnalyzer(
        InferenceClient(config),
        temperature=settings.analysis_temperature,
        max_tokens=settings.analysis_max_tokens,
    )


def build_enrichment_service(
    db: Session, settings: Optional[Settings] = None
) -> MentionEnrichmentService:
    settings = settings or get_settings()
    return MentionEnrichmentService(
        db=db,
        token_manager=build_token_manager(db, settings),
        api_client=RedditApiClient(
            user_agent=settings.reddit_user_agent,
            base_url=settings.reddit_api_base_url,
            timeout=settings.reddit_api_timeout,
        ),
        analyzer=build_analyzer(settings),
    )


def build_monitor_service(
    db: Session, queue: Optional[JobQueue] = None
) -> KeywordMonitorService:
    return KeywordMonitorService(db=db, queue=queue or build_job_queue())


def build_spider(settings: Optional[Settings] = None) -> RedditSearchSpider:
    settings = settings or get_settings()
    options = RenderOptions.from_settings(settings)
    downloader = PageDownloader(
        middleware=[RenderingMiddleware(PlaywrightRenderer(), options)],
        user_agent=options.user_agent,
        timeout=settings.reddit_api_timeout,
    )
    return RedditSearchSpider(downloader)
