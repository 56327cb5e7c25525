"""Unit tests for TokenManager."""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from factories import create_credential, create_user
from redwatch_core.domain.errors import AuthError, TransientError
from redwatch_core.domain.models import RedditCredential
from redwatch_core.domain.services.token_manager import TokenManager
from redwatch_core.infrastructure.locks import LocalLockProvider

NOW = datetime(2024, 5, 1, 12, 0, 0)


def fixed_clock():
    return NOW


def refreshed_tokens(**overrides):
    tokens = {
        "access_token": "fresh-access",
        "refresh_token": "rotated-refresh",
        "expires_in": 3600,
    }
    tokens.update(overrides)
    return tokens


@pytest.fixture
def oauth_client():
    client = MagicMock()
    client.refresh_access_token.return_value = refreshed_tokens()
    return client


@pytest.fixture
def manager(db_session, crypto, oauth_client):
    return TokenManager(
        db=db_session,
        crypto=crypto,
        oauth_client=oauth_client,
        clock=fixed_clock,
    )


class TestNeedsRefresh:
    def test_far_from_expiry(self, manager):
        credential = SimpleNamespace(token_expires_at=NOW + timedelta(hours=1))

        assert manager.needs_refresh(credential) is False

    def test_within_margin(self, manager):
        credential = SimpleNamespace(token_expires_at=NOW + timedelta(minutes=4))

        assert manager.needs_refresh(credential) is True

    def test_already_expired(self, manager):
        credential = SimpleNamespace(token_expires_at=NOW - timedelta(minutes=1))

        assert manager.needs_refresh(credential) is True

    def test_no_expiry_never_refreshes(self, manager):
        credential = SimpleNamespace(token_expires_at=None)

        assert manager.needs_refresh(credential) is False


class TestGetValidAccessToken:
    def test_fresh_token_is_decrypted_without_refresh(self, db_session, crypto, manager, oauth_client):
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(hours=1)
        )

        assert manager.get_valid_access_token(credential) == "access-token"
        oauth_client.refresh_access_token.assert_not_called()

    def test_stale_token_is_refreshed_and_rotated(self, db_session, crypto, manager, oauth_client):
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(minutes=2)
        )

        token = manager.get_valid_access_token(credential)

        assert token == "fresh-access"
        oauth_client.refresh_access_token.assert_called_once_with("refresh-token")
        assert crypto.decrypt(credential.refresh_token) == "rotated-refresh"
        assert credential.expires_in == 3600
        assert credential.token_expires_at == NOW + timedelta(seconds=3600)

    def test_stored_tokens_stay_encrypted(self, db_session, crypto, manager):
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(minutes=2)
        )

        manager.get_valid_access_token(credential)

        assert credential.access_token != "fresh-access"
        assert credential.refresh_token != "rotated-refresh"

    def test_refresh_without_rotation_keeps_refresh_token(
        self, db_session, crypto, manager, oauth_client
    ):
        oauth_client.refresh_access_token.return_value = refreshed_tokens(refresh_token=None)
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(minutes=2)
        )

        manager.get_valid_access_token(credential)

        assert crypto.decrypt(credential.refresh_token) == "refresh-token"

    def test_undecryptable_access_token(self, db_session, crypto, manager):
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(hours=1)
        )
        credential.access_token = "not-a-fernet-token"

        with pytest.raises(AuthError):
            manager.get_valid_access_token(credential)

    def test_transient_refresh_failure_leaves_credential_untouched(
        self, db_session, crypto, manager, oauth_client
    ):
        oauth_client.refresh_access_token.side_effect = TransientError("503", status_code=503)
        user = create_user(db_session)
        expires_at = NOW + timedelta(minutes=2)
        credential = create_credential(db_session, user, crypto, expires_at=expires_at)
        stored_access = credential.access_token

        with pytest.raises(TransientError):
            manager.get_valid_access_token(credential)

        assert credential.access_token == stored_access
        assert credential.token_expires_at == expires_at


class TestRefresh:
    def test_missing_refresh_token(self, db_session, crypto, manager, oauth_client):
        user = create_user(db_session)
        credential = create_credential(db_session, user, crypto, refresh_token=None)

        with pytest.raises(AuthError, match="no refresh token"):
            manager.refresh(credential)

        oauth_client.refresh_access_token.assert_not_called()

    def test_undecryptable_refresh_token(self, db_session, crypto, manager, oauth_client):
        user = create_user(db_session)
        credential = create_credential(db_session, user, crypto)
        credential.refresh_token = "garbage"

        with pytest.raises(AuthError, match="decrypt"):
            manager.refresh(credential)

        oauth_client.refresh_access_token.assert_not_called()

    def test_commit_failure_rolls_back(self, crypto, oauth_client):
        db = MagicMock()
        db.commit.side_effect = RuntimeError("database gone")
        credential = SimpleNamespace(
            id=1,
            user_id=1,
            access_token=crypto.encrypt("old"),
            refresh_token=crypto.encrypt("refresh-token"),
            expires_in=3600,
            token_expires_at=NOW,
        )
        manager = TokenManager(db=db, crypto=crypto, oauth_client=oauth_client, clock=fixed_clock)

        with pytest.raises(RuntimeError):
            manager.refresh(credential)

        db.rollback.assert_called_once()


class TestConcurrentRefresh:
    """Two workers, each with its own session and transaction."""

    @pytest.fixture
    def stale_credential_id(self, snapshot_session_factory, crypto):
        session = snapshot_session_factory()
        user = create_user(session)
        credential = create_credential(
            session, user, crypto, expires_at=NOW + timedelta(minutes=1)
        )
        session.commit()
        credential_id = credential.id
        session.close()
        return credential_id

    def worker(self, session, crypto, oauth_client, locks):
        return TokenManager(
            db=session,
            crypto=crypto,
            oauth_client=oauth_client,
            lock_provider=locks,
            clock=fixed_clock,
        )

    def test_second_worker_sees_committed_refresh(
        self, snapshot_session_factory, crypto, oauth_client, stale_credential_id
    ):
        locks = LocalLockProvider()
        session_a = snapshot_session_factory()
        session_b = snapshot_session_factory()

        # Worker B loaded the credential before worker A refreshed it
        credential_b = session_b.get(RedditCredential, stale_credential_id)
        credential_a = session_a.get(RedditCredential, stale_credential_id)

        token_a = self.worker(session_a, crypto, oauth_client, locks).get_valid_access_token(
            credential_a
        )
        token_b = self.worker(session_b, crypto, oauth_client, locks).get_valid_access_token(
            credential_b
        )

        assert token_a == "fresh-access"
        assert token_b == "fresh-access"
        assert oauth_client.refresh_access_token.call_count == 1
        assert crypto.decrypt(credential_b.refresh_token) == "rotated-refresh"
        assert credential_b.token_expires_at == NOW + timedelta(seconds=3600)

        session_a.close()
        session_b.close()

    def test_credential_deleted_while_waiting(
        self, snapshot_session_factory, crypto, oauth_client, stale_credential_id
    ):
        locks = LocalLockProvider()
        session_a = snapshot_session_factory()
        session_b = snapshot_session_factory()

        credential_b = session_b.get(RedditCredential, stale_credential_id)
        session_a.delete(session_a.get(RedditCredential, stale_credential_id))
        session_a.commit()

        with pytest.raises(AuthError, match="no longer exists"):
            self.worker(session_b, crypto, oauth_client, locks).get_valid_access_token(
                credential_b
            )

        oauth_client.refresh_access_token.assert_not_called()
        session_a.close()
        session_b.close()


class TestValidateToken:
    def test_valid(self, db_session, crypto, manager, oauth_client):
        oauth_client.get_identity.return_value = {"username": "owner", "reddit_id": "t2_owner"}
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(hours=1)
        )

        assert manager.validate_token(credential) is True
        oauth_client.get_identity.assert_called_once_with("access-token")

    def test_rejected(self, db_session, crypto, manager, oauth_client):
        oauth_client.get_identity.side_effect = AuthError("401")
        user = create_user(db_session)
        credential = create_credential(
            db_session, user, crypto, expires_at=NOW + timedelta(hours=1)
        )

        assert manager.validate_token(credential) is False

    def test_missing_refresh_token_is_invalid(self, db_session, crypto, manager, oauth_client):
        user = create_user(db_session)
        credential = create_credential(db_session, user, crypto, refresh_token=None)

        assert manager.has_valid_tokens(credential) is False
        assert manager.validate_token(credential) is False
        oauth_client.get_identity.assert_not_called()


class TestHasValidTokens:
    def test_complete_credential(self, db_session, crypto, manager):
        user = create_user(db_session)
        credential = create_credential(db_session, user, crypto)

        assert manager.has_valid_tokens(credential) is True

    def test_no_expiry(self, manager):
        credential = SimpleNamespace(access_token="a", refresh_token="r", token_expires_at=None)

        assert manager.has_valid_tokens(credential) is False
