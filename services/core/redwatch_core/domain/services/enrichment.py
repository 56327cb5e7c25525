"""Mention enrichment service.

Turns one unverified search candidate into a stored mention:

    Fetching -> Matching -> Analyzing -> Persisting -> Done

Every gate can end the job early without writing anything. The mention
insert is the only durable write besides bookkeeping, and it happens last,
so a job abandoned half way leaves nothing behind.

Usage:
    service = MentionEnrichmentService(
        db=session,
        token_manager=token_manager,
        api_client=RedditApiClient(user_agent="Redwatch/1.0"),
        analyzer=LLMSentimentAnalyzer(inference_client),
    )

    result = service.process(EnrichmentJob(credential_id=1, keyword_id=2, post_id="abc123"))
    print(result.status)
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from redwatch_core.domain.errors import AuthError, ValidationError
from redwatch_core.domain.jobs import EnrichmentJob
from redwatch_core.domain.models import (
    MentionType,
    RedditCredential,
    RedditKeyword,
    RedditMention,
    utcnow,
)
from redwatch_core.domain.services.analysis import (
    DEFAULT_ANALYSIS,
    SentimentAnalysis,
    TextAnalyzer,
    validate_analysis,
)
from redwatch_core.domain.services.keyword_match import rule_matches
from redwatch_core.domain.services.ledger import DispatchLedger
from redwatch_core.domain.services.mentions import (
    MAX_CONTENT_LENGTH,
    MAX_REPLY_LENGTH,
    MAX_TITLE_LENGTH,
    MentionRepository,
    truncate,
    truncate_optional,
)
from redwatch_core.domain.services.token_manager import TokenManager
from redwatch_core.observability import JobContext, get_logger
from redwatch_core.providers.reddit.api import RedditApiClient, RedditPost

logger = get_logger(__name__)


class EnrichmentStatus(str, Enum):
    """How an enrichment job ended."""

    CREATED = "created"
    REDISCOVERED = "rediscovered"
    MISSING_RECORDS = "missing_records"
    AUTH_FAILED = "auth_failed"
    INVALID_POST = "invalid_post"
    NO_BODY = "no_body"
    NO_MATCH = "no_match"


@dataclass
class EnrichmentResult:
    """Outcome of one enrichment job."""

    status: EnrichmentStatus
    post_id: str
    mention_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.status == EnrichmentStatus.CREATED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "post_id": self.post_id,
            "mention_id": self.mention_id,
            "reason": self.reason,
        }


class MentionEnrichmentService:
    """Confirms, matches, analyzes and stores candidate posts."""

    def __init__(
        self,
        db: Session,
        token_manager: TokenManager,
        api_client: RedditApiClient,
        analyzer: Optional[TextAnalyzer] = None,
        mentions: Optional[MentionRepository] = None,
        ledger: Optional[DispatchLedger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the service.

        Args:
            db: SQLAlchemy session.
            token_manager: Supplies bearer tokens for the credential.
            api_client: Authoritative post lookup.
            analyzer: Sentiment/intent collaborator. Without one every
                mention gets DEFAULT_ANALYSIS.
            mentions: Mention repository (defaults to one on db).
            ledger: Dispatch ledger (defaults to one on db).
            clock: Source of the current naive-UTC time.
        """
        self.db = db
        self.token_manager = token_manager
        self.api_client = api_client
        self.analyzer = analyzer
        self.mentions = mentions or MentionRepository(db)
        self.ledger = ledger or DispatchLedger(db)
        self.clock = clock

    def process(self, job: EnrichmentJob) -> EnrichmentResult:
        """Run one enrichment job to completion.

        Returns:
            EnrichmentResult describing where the job stopped.

        Raises:
            TransientError: If Reddit could not be reached; the caller retries.
            Exception: Any unexpected failure, after logging it with context.
        """
        ctx = JobContext(
            task="enrich",
            credential_id=job.credential_id,
            keyword_id=job.keyword_id,
            post_id=job.post_id,
        )

        credential = self.db.get(RedditCredential, job.credential_id)
        rule = self.db.get(RedditKeyword, job.keyword_id)
        if credential is None or rule is None:
            # Deleted since the search ran
            logger.info("Credential or keyword rule no longer exists", context=ctx)
            return EnrichmentResult(EnrichmentStatus.MISSING_RECORDS, job.post_id)

        try:
            return self._run(job, credential, rule, ctx)
        except (AuthError, ValidationError) as e:
            status = (
                EnrichmentStatus.AUTH_FAILED
                if isinstance(e, AuthError)
                else EnrichmentStatus.INVALID_POST
            )
            logger.warning(f"Enrichment stopped: {e}", context=ctx, status=status.value)
            return EnrichmentResult(status, job.post_id, reason=str(e))
        except Exception as e:
            logger.error(
                f"Enrichment failed: {type(e).__name__}: {e}",
                context=ctx,
                exc_info=True,
            )
            raise

    def _run(
        self,
        job: EnrichmentJob,
        credential: RedditCredential,
        rule: RedditKeyword,
        ctx: JobContext,
    ) -> EnrichmentResult:
        # Fetching
        access_token = self.token_manager.get_valid_access_token(credential)
        post = self.api_client.fetch_post(access_token, job.post_id)

        # Matching
        if self.mentions.exists(post.id):
            self.mentions.reassign_keyword(post.id, rule.id)
            logger.info("Post already stored; keyword reference updated", context=ctx)
            return EnrichmentResult(EnrichmentStatus.REDISCOVERED, post.id)

        if not post.selftext:
            return EnrichmentResult(EnrichmentStatus.NO_BODY, post.id)

        text = " ".join(part for part in (post.title, post.selftext) if part)
        if not rule_matches(rule, text):
            return EnrichmentResult(EnrichmentStatus.NO_MATCH, post.id)

        # Analyzing
        persona = rule.persona
        persona_settings = persona.settings if persona else None
        persona_type = persona.user_type if persona else None
        analysis = self._analyze(text, rule.keyword, persona_settings, persona_type, ctx)

        # Persisting
        mention = self._build_mention(credential, rule, post, analysis, persona_settings, job)
        if not self.mentions.insert_or_reassign(mention):
            return EnrichmentResult(EnrichmentStatus.REDISCOVERED, post.id)

        logger.info(
            "Mention stored",
            context=ctx,
            sentiment=analysis.sentiment,
            intent=analysis.intent,
        )
        self._touch_ledger(credential, ctx)

        return EnrichmentResult(EnrichmentStatus.CREATED, post.id, mention_id=mention.id)

    def _analyze(
        self,
        text: str,
        keyword: str,
        persona_settings: Optional[dict],
        persona_type: Optional[str],
        ctx: JobContext,
    ) -> SentimentAnalysis:
        """Run the analyzer, falling back to DEFAULT_ANALYSIS on any failure."""
        if self.analyzer is None:
            return DEFAULT_ANALYSIS

        try:
            raw = self.analyzer.analyze(
                content=text,
                keyword=keyword,
                persona_settings=persona_settings,
                persona_type=persona_type,
            )
            return validate_analysis(raw)
        except Exception as e:
            logger.warning(f"Analysis failed, using defaults: {e}", context=ctx)
            return DEFAULT_ANALYSIS

    def _build_mention(
        self,
        credential: RedditCredential,
        rule: RedditKeyword,
        post: RedditPost,
        analysis: SentimentAnalysis,
        persona_settings: Optional[dict],
        job: EnrichmentJob,
    ) -> RedditMention:
        now = self.clock()
        if post.created_utc is not None:
            created_at = datetime.fromtimestamp(post.created_utc, tz=timezone.utc).replace(tzinfo=None)
        else:
            created_at = now

        return RedditMention(
            user_id=credential.user_id,
            reddit_keyword_id=rule.id,
            reddit_post_id=post.id,
            reddit_comment_id=None,
            keyword=rule.keyword,
            subreddit=post.subreddit or job.subreddit or "",
            author=post.author,
            title=truncate_optional(post.title, MAX_TITLE_LENGTH),
            content=truncate_optional(post.selftext, MAX_CONTENT_LENGTH),
            url=post.url,
            mention_type=MentionType.POST,
            upvotes=post.ups,
            downvotes=post.downs,
            comment_count=post.num_comments,
            is_stickied=post.stickied,
            is_locked=post.locked,
            sentiment=analysis.sentiment,
            sentiment_confidence=analysis.sentiment_confidence,
            intent=analysis.intent,
            intent_confidence=analysis.intent_confidence,
            suggested_reply=truncate(analysis.suggested_reply, MAX_REPLY_LENGTH),
            reddit_created_at=created_at,
            found_at=now,
            persona=persona_settings,
        )

    def _touch_ledger(self, credential: RedditCredential, ctx: JobContext) -> None:
        """Stamp last_fetched_at. Failures are logged and never undo the mention."""
        try:
            self.ledger.mark_fetched(credential.user_id, credential.id, at=self.clock())
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update dispatch ledger: {e}", context=ctx)
