"""Credential service for linked Reddit accounts.

Stores the OAuth token pair of each linked account encrypted at rest. There is
at most one credential per (user, Reddit account); linking the same account
again rotates its tokens in place.

Usage:
    crypto = CryptoService(settings.encryption_key)
    service = CredentialService(db_session, crypto)

    tokens = oauth_client.exchange_code(code, redirect_uri)
    identity = oauth_client.get_identity(tokens["access_token"])
    credential = service.store_oauth_tokens(
        user_id=user.id,
        reddit_id=identity["reddit_id"],
        username=identity["username"],
        tokens=tokens,
    )
"""

from datetime import timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from redwatch_core.domain.models import RedditCredential, utcnow
from redwatch_core.infrastructure.crypto import CryptoService


class CredentialService:
    """Service for managing encrypted Reddit credentials."""

    def __init__(self, db: Session, crypto: CryptoService):
        """Initialize the service.

        Args:
            db: SQLAlchemy database session.
            crypto: CryptoService instance for encryption/decryption.
        """
        self.db = db
        self.crypto = crypto

    def store_oauth_tokens(
        self,
        user_id: int,
        reddit_id: str,
        username: str,
        tokens: dict[str, Any],
    ) -> RedditCredential:
        """Create or update the credential for one linked account.

        Args:
            user_id: Owning user.
            reddit_id: Reddit account id.
            username: Reddit username.
            tokens: Token response with access_token, expires_in and usually
                refresh_token.

        Returns:
            The created or updated RedditCredential.
        """
        expires_in = int(tokens["expires_in"])
        access_token = self.crypto.encrypt(tokens["access_token"])
        refresh_token = self.crypto.encrypt_optional(tokens.get("refresh_token"))
        expires_at = utcnow() + timedelta(seconds=expires_in)

        credential = self.find(user_id, reddit_id)
        if credential:
            credential.username = username
            credential.access_token = access_token
            # Keep the old refresh token when the provider does not send one
            if refresh_token is not None:
                credential.refresh_token = refresh_token
            credential.expires_in = expires_in
            credential.token_expires_at = expires_at
            self.db.commit()
            self.db.refresh(credential)
            return credential

        credential = RedditCredential(
            user_id=user_id,
            reddit_id=reddit_id,
            username=username,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            token_expires_at=expires_at,
        )
        self.db.add(credential)
        self.db.commit()
        self.db.refresh(credential)
        return credential

    def get(self, credential_id: int) -> Optional[RedditCredential]:
        return self.db.get(RedditCredential, credential_id)

    def find(self, user_id: int, reddit_id: str) -> Optional[RedditCredential]:
        """Find a credential by its unique (user, account) key."""
        return (
            self.db.query(RedditCredential)
            .filter(
                RedditCredential.user_id == user_id,
                RedditCredential.reddit_id == reddit_id,
            )
            .first()
        )

    def list_for_user(self, user_id: int) -> list[RedditCredential]:
        return (
            self.db.query(RedditCredential)
            .filter(RedditCredential.user_id == user_id)
            .order_by(RedditCredential.id)
            .all()
        )

    def disconnect(self, user_id: int, reddit_id: str) -> bool:
        """Delete a linked account. Tokens are not revoked remotely.

        Returns:
            True if deleted, False if not found.
        """
        credential = self.find(user_id, reddit_id)
        if credential is None:
            return False

        self.db.delete(credential)
        self.db.commit()
        return True
