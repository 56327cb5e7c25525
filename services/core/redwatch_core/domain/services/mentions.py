"""Mention persistence with per-post deduplication.

reddit_mentions has a unique constraint on reddit_post_id. A post found
again, sequentially or by a concurrent worker, only moves the mention to the
keyword rule that found it last.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from redwatch_core.domain.models import RedditMention

logger = logging.getLogger(__name__)

ELLIPSIS = "..."

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 2000
MAX_REPLY_LENGTH = 1000


def truncate(value: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Cut value to exactly max_length characters, ending in an ellipsis."""
    if len(value) <= max_length:
        return value
    return value[:max_length - len(ELLIPSIS)] + ELLIPSIS


def truncate_optional(value: Optional[str], max_length: int) -> Optional[str]:
    if value is None:
        return None
    return truncate(value, max_length)


class MentionRepository:
    """Reads and writes RedditMention rows."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_post_id(self, post_id: str) -> Optional[RedditMention]:
        return (
            self.db.query(RedditMention)
            .filter(RedditMention.reddit_post_id == post_id)
            .first()
        )

    def exists(self, post_id: str) -> bool:
        return self.get_by_post_id(post_id) is not None

    def reassign_keyword(self, post_id: str, keyword_id: int) -> int:
        """Point an existing mention at another keyword rule.

        Returns:
            Number of rows updated (0 or 1).
        """
        updated = (
            self.db.query(RedditMention)
            .filter(RedditMention.reddit_post_id == post_id)
            .update(
                {RedditMention.reddit_keyword_id: keyword_id},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated

    def insert_or_reassign(self, mention: RedditMention) -> bool:
        """Insert a new mention, or reassign the existing one on conflict.

        Returns:
            True if the row was inserted, False if another writer got there
            first and the existing row was reassigned instead.

        Raises:
            IntegrityError: If the insert failed for a reason other than a
                duplicate post id.
        """
        post_id = mention.reddit_post_id
        keyword_id = mention.reddit_keyword_id

        self.db.add(mention)
        try:
            self.db.commit()
            return True
        except IntegrityError as e:
            self.db.rollback()
            if self.reassign_keyword(post_id, keyword_id):
                logger.info(f"Post {post_id} was stored concurrently; reassigned to keyword {keyword_id}")
                return False
            raise e
