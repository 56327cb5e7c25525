"""Keyword monitoring scheduler.

Fans out one search job per (keyword rule, subreddit) for every linked
account, or one site-wide search job for rules without subreddits. Jobs get
a small random delay so the search lane does not hit Reddit in a burst.

Usage:
    service = KeywordMonitorService(db=session, queue=CeleryJobQueue(app))

    summary = service.dispatch_all(batch_size=50)
    print(summary.jobs_enqueued, summary.users_failed)
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from redwatch_core.domain.jobs import JobQueue, SearchJob
from redwatch_core.domain.models import RedditCredential, RedditKeyword, User, utcnow
from redwatch_core.domain.services.ledger import DispatchLedger

logger = logging.getLogger(__name__)

SEARCH_DELAY_RANGE = (2, 5)
DEFAULT_BATCH_SIZE = 50


@dataclass
class UserDispatch:
    """What the scheduler did for one user."""

    user_id: int
    credentials: int = 0
    keywords: int = 0
    jobs_enqueued: int = 0
    skipped_reason: Optional[str] = None


@dataclass
class MonitorSummary:
    """Totals for one scheduler run over many users."""

    users_processed: int = 0
    users_skipped: int = 0
    users_failed: int = 0
    jobs_enqueued: int = 0
    failed_user_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "users_processed": self.users_processed,
            "users_skipped": self.users_skipped,
            "users_failed": self.users_failed,
            "jobs_enqueued": self.jobs_enqueued,
            "failed_user_ids": self.failed_user_ids,
        }


def target_subreddits(rule: RedditKeyword) -> list[Optional[str]]:
    """Subreddits to search for a rule; [None] means one site-wide search."""
    subreddits = [s.strip() for s in (rule.subreddits or []) if s and s.strip()]
    return subreddits or [None]


class KeywordMonitorService:
    """Enqueues search jobs for users' keyword rules."""

    def __init__(
        self,
        db: Session,
        queue: JobQueue,
        ledger: Optional[DispatchLedger] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
        delay_range: tuple[int, int] = SEARCH_DELAY_RANGE,
    ):
        self.db = db
        self.queue = queue
        self.ledger = ledger or DispatchLedger(db)
        self.rng = rng or random.Random()
        self.clock = clock
        self.delay_range = delay_range

    def dispatch_user(self, user: User) -> UserDispatch:
        """Enqueue search jobs for every keyword rule of one user."""
        result = UserDispatch(user_id=user.id)

        credentials = self._credentials_for(user)
        if not credentials:
            logger.warning(f"No Reddit credential for user {user.id}; skipping")
            result.skipped_reason = "no_credential"
            return result

        for credential in credentials:
            rules = self._rules_for(credential)
            if not rules:
                logger.warning(
                    f"No keywords for credential {credential.id} (user {user.id}); skipping"
                )
                continue

            result.credentials += 1
            result.keywords += len(rules)
            result.jobs_enqueued += self._dispatch_credential(credential, rules)

        if result.credentials == 0:
            result.skipped_reason = "no_keywords"

        return result

    def dispatch_user_id(self, user_id: int) -> Optional[UserDispatch]:
        user = self.db.get(User, user_id)
        if user is None:
            logger.warning(f"User {user_id} not found")
            return None
        return self.dispatch_user(user)

    def dispatch_email(self, email: str) -> Optional[UserDispatch]:
        user = self.db.query(User).filter(User.email == email).first()
        if user is None:
            logger.warning(f"User with email {email!r} not found")
            return None
        return self.dispatch_user(user)

    def dispatch_all(self, batch_size: int = DEFAULT_BATCH_SIZE) -> MonitorSummary:
        """Dispatch for every user with a linked account, batch by batch.

        A failure for one user is logged and does not stop the others.
        """
        summary = MonitorSummary()
        last_id = 0

        while True:
            users = self._next_batch(last_id, batch_size)
            if not users:
                break
            last_id = users[-1].id

            for user in users:
                try:
                    dispatch = self.dispatch_user(user)
                except Exception as e:
                    self.db.rollback()
                    logger.error(
                        f"Monitoring dispatch failed for user {user.id}: {e}",
                        exc_info=True,
                    )
                    summary.users_failed += 1
                    summary.failed_user_ids.append(user.id)
                    continue

                if dispatch.skipped_reason:
                    summary.users_skipped += 1
                else:
                    summary.users_processed += 1
                summary.jobs_enqueued += dispatch.jobs_enqueued

        logger.info(
            f"Monitoring run done: {summary.users_processed} users dispatched, "
            f"{summary.users_skipped} skipped, {summary.users_failed} failed, "
            f"{summary.jobs_enqueued} search jobs"
        )
        return summary

    def _next_batch(self, after_id: int, batch_size: int) -> list[User]:
        has_credential = (
            self.db.query(RedditCredential.id)
            .filter(RedditCredential.user_id == User.id)
            .exists()
        )
        return (
            self.db.query(User)
            .filter(User.id > after_id, has_credential)
            .order_by(User.id)
            .limit(batch_size)
            .all()
        )

    def _credentials_for(self, user: User) -> list[RedditCredential]:
        return (
            self.db.query(RedditCredential)
            .filter(RedditCredential.user_id == user.id)
            .order_by(RedditCredential.id)
            .all()
        )

    def _rules_for(self, credential: RedditCredential) -> list[RedditKeyword]:
        return (
            self.db.query(RedditKeyword)
            .filter(RedditKeyword.reddit_credential_id == credential.id)
            .order_by(RedditKeyword.id)
            .all()
        )

    def _dispatch_credential(
        self, credential: RedditCredential, rules: list[RedditKeyword]
    ) -> int:
        enqueued = 0
        now = self.clock()

        for rule in rules:
            for subreddit in target_subreddits(rule):
                job = SearchJob(
                    keyword=rule.keyword,
                    user_id=credential.user_id,
                    credential_id=credential.id,
                    keyword_id=rule.id,
                    subreddit=subreddit,
                )
                self.queue.enqueue_search(job, countdown=self.rng.randint(*self.delay_range))
                enqueued += 1
            rule.last_checked_at = now

        self.db.commit()
        self.ledger.mark_dispatched(credential.user_id, credential.id, at=now)

        logger.info(
            f"Enqueued {enqueued} search jobs for credential {credential.id} "
            f"(user {credential.user_id})"
        )
        return enqueued
