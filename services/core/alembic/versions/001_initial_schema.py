"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates all tables for Redwatch:
- users
- reddit_credentials
- personas
- reddit_keywords
- reddit_mentions
- last_fetches
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PERSONA_TYPES = (
    "small_business",
    "marketing",
    "content_creator",
    "customer_support",
    "market_researcher",
    "freelancer",
    "pr_crisis",
)


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
    )

    # Linked Reddit accounts, tokens encrypted at rest
    op.create_table(
        "reddit_credentials",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_id", sa.String(64), nullable=False, comment="Reddit account id"),
        sa.Column("username", sa.String(128), nullable=False),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("expires_in", sa.Integer, nullable=False),
        sa.Column("token_expires_at", sa.DateTime, nullable=False),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_reddit_credential_user", ondelete="CASCADE"
        ),
        sa.UniqueConstraint("user_id", "reddit_id", name="uq_reddit_credential_user_account"),
    )

    # Personas table
    op.create_table(
        "personas",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column(
            "user_type",
            sa.Enum(*PERSONA_TYPES, name="persona_type_enum"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("settings", sa.JSON, nullable=False),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_persona_user", ondelete="CASCADE"
        ),
    )

    # Keyword watch rules
    op.create_table(
        "reddit_keywords",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_credential_id", sa.BigInteger, nullable=True),
        sa.Column("persona_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_id", sa.String(64), nullable=False),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("subreddits", sa.JSON, nullable=True),
        sa.Column("scan_comments", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("match_whole_word", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("case_sensitive", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("last_checked_at", sa.DateTime, nullable=True),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_reddit_keyword_user", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reddit_credential_id"],
            ["reddit_credentials.id"],
            name="fk_reddit_keyword_credential",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["persona_id"], ["personas.id"], name="fk_reddit_keyword_persona", ondelete="RESTRICT"
        ),
    )
    op.create_index("idx_reddit_keywords_credential", "reddit_keywords", ["reddit_credential_id"])

    # Discovered mentions, one row per Reddit post
    op.create_table(
        "reddit_mentions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_keyword_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_post_id", sa.String(32), nullable=False),
        sa.Column("reddit_comment_id", sa.String(32), nullable=True),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("subreddit", sa.String(255), nullable=True),
        sa.Column("author", sa.String(255), nullable=False, server_default=""),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column(
            "mention_type",
            sa.Enum("post", "comment", name="mention_type_enum"),
            nullable=False,
            server_default="post",
        ),
        sa.Column("upvotes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_stickied", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("sentiment", sa.String(16), nullable=True),
        sa.Column("sentiment_confidence", sa.Float, nullable=True),
        sa.Column("intent", sa.String(32), nullable=True),
        sa.Column("intent_confidence", sa.Float, nullable=True),
        sa.Column("suggested_reply", sa.Text, nullable=True),
        sa.Column(
            "persona", sa.JSON, nullable=True, comment="Persona settings used for the analysis"
        ),
        sa.Column("reddit_created_at", sa.DateTime, nullable=True),
        sa.Column("found_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_reddit_mention_user", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reddit_keyword_id"],
            ["reddit_keywords.id"],
            name="fk_reddit_mention_keyword",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("reddit_post_id", name="uq_reddit_mentions_post"),
    )
    op.create_index("idx_reddit_mentions_user_found", "reddit_mentions", ["user_id", "found_at"])
    op.create_index(
        "idx_reddit_mentions_keyword_found", "reddit_mentions", ["reddit_keyword_id", "found_at"]
    )

    # Dispatch ledger
    op.create_table(
        "last_fetches",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger, nullable=False),
        sa.Column("reddit_credential_id", sa.BigInteger, nullable=False),
        sa.Column("dispatch_at", sa.DateTime, nullable=True),
        sa.Column("last_fetched_at", sa.DateTime, nullable=True),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_last_fetch_user", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reddit_credential_id"],
            ["reddit_credentials.id"],
            name="fk_last_fetch_credential",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("user_id", "reddit_credential_id", name="uq_last_fetch_credential"),
    )


def downgrade() -> None:
    # Drop tables in reverse order of creation (respecting foreign keys)
    op.drop_table("last_fetches")
    op.drop_table("reddit_mentions")
    op.drop_table("reddit_keywords")
    op.drop_table("personas")
    op.drop_table("reddit_credentials")
    op.drop_table("users")
