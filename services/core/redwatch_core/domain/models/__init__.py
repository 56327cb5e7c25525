"""Domain models for Redwatch.

SQLAlchemy ORM models for linked Reddit accounts, keyword watch rules,
personas, discovered mentions and the dispatch ledger. Records reference
each other by integer foreign keys; timestamps are naive UTC.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Current time as naive UTC, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


# =============================================================================
# ENUMS
# =============================================================================


class PersonaType(str, PyEnum):
    """The fixed persona archetypes a user can pick from."""

    SMALL_BUSINESS = "small_business"
    MARKETING = "marketing"
    CONTENT_CREATOR = "content_creator"
    CUSTOMER_SUPPORT = "customer_support"
    MARKET_RESEARCHER = "market_researcher"
    FREELANCER = "freelancer"
    PR_CRISIS = "pr_crisis"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class MentionType:
    """Mention type values."""

    POST = "post"
    COMMENT = "comment"


class PersonaInUseError(Exception):
    """Raised when deleting a persona that keyword rules still reference."""

    pass


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """Account owner. Authentication lives outside this package."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    # Relationships
    credentials: Mapped[list["RedditCredential"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    personas: Mapped[list["Persona"]] = relationship(back_populates="user")


class RedditCredential(Base):
    """A linked Reddit account with encrypted OAuth tokens."""

    __tablename__ = "reddit_credentials"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reddit_id: Mapped[str] = mapped_column(
        String(64), nullable=False, comment="Reddit account id"
    )
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_in: Mapped[int] = mapped_column(Integer, nullable=False)
    token_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "reddit_id", name="uq_reddit_credential_user_account"),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="credentials")
    keywords: Mapped[list["RedditKeyword"]] = relationship(back_populates="credential")


class Persona(Base):
    """Tone/context profile injected into analysis prompts."""

    __tablename__ = "personas"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_type: Mapped[str] = mapped_column(
        Enum(*PersonaType.values(), name="persona_type_enum"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="personas")
    keywords: Mapped[list["RedditKeyword"]] = relationship(
        back_populates="persona", passive_deletes="all"
    )


class RedditKeyword(Base):
    """A keyword watch rule scoped to one linked account and persona."""

    __tablename__ = "reddit_keywords"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reddit_credential_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("reddit_credentials.id", ondelete="SET NULL"),
        nullable=True,
    )
    persona_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("personas.id", ondelete="RESTRICT"), nullable=False
    )
    reddit_id: Mapped[str] = mapped_column(String(64), nullable=False)
    keyword: Mapped[str] = mapped_column(String(255), nullable=False)
    # Empty or NULL means a site-wide search
    subreddits: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    scan_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    match_whole_word: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    case_sensitive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_reddit_keywords_credential", "reddit_credential_id"),
    )

    # Relationships
    credential: Mapped[Optional["RedditCredential"]] = relationship(back_populates="keywords")
    persona: Mapped["Persona"] = relationship(back_populates="keywords")
    mentions: Mapped[list["RedditMention"]] = relationship(
        back_populates="keyword_rule", passive_deletes=True
    )


class RedditMention(Base):
    """A confirmed, enriched discovery. One row per Reddit post id."""

    __tablename__ = "reddit_mentions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reddit_keyword_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reddit_keywords.id", ondelete="CASCADE"), nullable=False
    )
    reddit_post_id: Mapped[str] = mapped_column(String(32), nullable=False)
    reddit_comment_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    keyword: Mapped[str] = mapped_column(String(255), nullable=False)
    subreddit: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    title: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    mention_type: Mapped[str] = mapped_column(
        Enum("post", "comment", name="mention_type_enum"),
        nullable=False,
        default=MentionType.POST,
    )

    # Engagement snapshot at discovery time
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_stickied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Enrichment
    sentiment: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    sentiment_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    intent: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    intent_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    suggested_reply: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    persona: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON, nullable=True, comment="Persona settings used for the analysis"
    )

    reddit_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    found_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("reddit_post_id", name="uq_reddit_mentions_post"),
        Index("idx_reddit_mentions_user_found", "user_id", "found_at"),
        Index("idx_reddit_mentions_keyword_found", "reddit_keyword_id", "found_at"),
    )

    # Relationships
    keyword_rule: Mapped["RedditKeyword"] = relationship(back_populates="mentions")


class LastFetch(Base):
    """Dispatch ledger: last fan-out and last successful write per credential.

    Advisory bookkeeping for staleness checks, never read for correctness.
    """

    __tablename__ = "last_fetches"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reddit_credential_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("reddit_credentials.id", ondelete="CASCADE"), nullable=False
    )
    dispatch_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_fetched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "reddit_credential_id", name="uq_last_fetch_credential"),
    )


# =============================================================================
# MAPPER EVENTS
# =============================================================================


@event.listens_for(Persona, "before_delete")
def _guard_persona_in_use(mapper, connection, target: Persona) -> None:
    """Refuse to delete a persona that keyword rules still point at."""
    in_use = connection.scalar(
        select(func.count())
        .select_from(RedditKeyword.__table__)
        .where(RedditKeyword.__table__.c.persona_id == target.id)
    )
    if in_use:
        raise PersonaInUseError(
            "Cannot delete persona with active keyword associations. "
            "Reassign keywords first."
        )


__all__ = [
    "Base",
    "LastFetch",
    "MentionType",
    "Persona",
    "PersonaInUseError",
    "PersonaType",
    "RedditCredential",
    "RedditKeyword",
    "RedditMention",
    "User",
    "utcnow",
]
