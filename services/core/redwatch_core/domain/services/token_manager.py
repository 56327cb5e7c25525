"""Access token lifecycle for linked Reddit accounts.

Guarantees callers a usable bearer token. Tokens within the refresh margin
of their expiry are refreshed first; refreshes for the same credential are
serialized through a LockProvider so concurrent workers never both spend
one refresh token.

Usage:
    manager = TokenManager(
        db=session,
        crypto=crypto,
        oauth_client=oauth_client,
        lock_provider=RedisLockProvider.from_url(settings.redis_url),
    )

    access_token = manager.get_valid_access_token(credential)
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Session

from redwatch_core.domain.errors import AuthError, RedwatchError
from redwatch_core.domain.models import RedditCredential, utcnow
from redwatch_core.infrastructure.crypto import CryptoService, DecryptionError
from redwatch_core.infrastructure.locks import LocalLockProvider, LockProvider
from redwatch_core.providers.reddit.oauth import RedditOAuthClient

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)


class TokenManager:
    """Refreshes and decrypts Reddit access tokens."""

    def __init__(
        self,
        db: Session,
        crypto: CryptoService,
        oauth_client: RedditOAuthClient,
        lock_provider: Optional[LockProvider] = None,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the manager.

        Args:
            db: SQLAlchemy session the credentials are attached to.
            crypto: CryptoService for token encryption.
            oauth_client: Client for Reddit's token endpoint.
            lock_provider: Per-credential lock source. Defaults to an
                in-process LocalLockProvider.
            refresh_margin: How long before expiry a token counts as stale.
            clock: Source of the current naive-UTC time.
        """
        self.db = db
        self.crypto = crypto
        self.oauth_client = oauth_client
        self.lock_provider = lock_provider or LocalLockProvider()
        self.refresh_margin = refresh_margin
        self.clock = clock

    def needs_refresh(self, credential: RedditCredential) -> bool:
        """True when the token expires within the refresh margin.

        A credential without a recorded expiry is never refreshed.
        """
        if credential.token_expires_at is None:
            return False
        return credential.token_expires_at - self.clock() <= self.refresh_margin

    def has_valid_tokens(self, credential: RedditCredential) -> bool:
        return bool(
            credential.access_token
            and credential.refresh_token
            and credential.token_expires_at
        )

    def refresh(self, credential: RedditCredential) -> RedditCredential:
        """Exchange the stored refresh token for a new access token.

        The credential is only mutated after Reddit has answered successfully.

        Raises:
            AuthError: If the refresh token is missing, cannot be decrypted,
                or is rejected by Reddit.
            TransientError: On network failure or 429/5xx from Reddit.
        """
        if not credential.refresh_token:
            raise AuthError(f"Credential {credential.id} has no refresh token")

        try:
            refresh_token = self.crypto.decrypt(credential.refresh_token)
        except DecryptionError as e:
            raise AuthError(f"Cannot decrypt refresh token for credential {credential.id}: {e}")

        tokens = self.oauth_client.refresh_access_token(refresh_token)

        expires_in = tokens["expires_in"]
        access_token = self.crypto.encrypt(tokens["access_token"])
        rotated = self.crypto.encrypt_optional(tokens.get("refresh_token"))

        credential.access_token = access_token
        if rotated is not None:
            credential.refresh_token = rotated
        credential.expires_in = expires_in
        credential.token_expires_at = self.clock() + timedelta(seconds=expires_in)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Refreshed Reddit token for credential {credential.id} (user {credential.user_id})")
        return credential

    def get_valid_access_token(self, credential: RedditCredential) -> str:
        """Return a decrypted access token that is not about to expire.

        Raises:
            AuthError: If refreshing or decrypting fails.
            TransientError: If Reddit or the lock backend is unavailable.
        """
        if self.needs_refresh(credential):
            credential_id = credential.id
            with self.lock_provider.lock(f"token-refresh:{credential_id}"):
                # Another holder may have refreshed while this one waited; the
                # re-read must see committed rows, not this transaction's snapshot
                self.db.commit()
                try:
                    self.db.refresh(credential, with_for_update=True)
                except InvalidRequestError:
                    raise AuthError(f"Credential {credential_id} no longer exists")
                if self.needs_refresh(credential):
                    self.refresh(credential)
                else:
                    # Release the row lock
                    self.db.commit()

        try:
            return self.crypto.decrypt(credential.access_token)
        except DecryptionError as e:
            raise AuthError(f"Cannot decrypt access token for credential {credential.id}: {e}")

    def validate_token(self, credential: RedditCredential) -> bool:
        """Check the token against Reddit's identity endpoint. Never raises."""
        if not self.has_valid_tokens(credential):
            logger.warning(f"Credential {credential.id} is missing tokens or expiry")
            return False

        try:
            access_token = self.get_valid_access_token(credential)
            self.oauth_client.get_identity(access_token)
        except RedwatchError as e:
            logger.warning(f"Token validation failed for credential {credential.id}: {e}")
            return False
        return True
