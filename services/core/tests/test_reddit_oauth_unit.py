"""Unit tests for the Reddit OAuth client."""

from urllib.parse import parse_qs

import httpx
import pytest

from redwatch_core.domain.errors import AuthError, TransientError, ValidationError
from redwatch_core.providers.reddit import OAuthError, RedditOAuthClient


def oauth_client(handler):
    return RedditOAuthClient(
        client_id="test_client_id",
        client_secret="test_client_secret",
        user_agent="redwatch-tests/1.0",
        transport=httpx.MockTransport(handler),
    )


def token_response(**overrides):
    payload = {
        "access_token": "new-access",
        "refresh_token": "new-refresh",
        "expires_in": 3600,
        "scope": "identity read",
        "token_type": "bearer",
    }
    payload.update(overrides)
    return payload


class TestExchangeCode:
    def test_exchange_code_returns_tokens(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=token_response())

        tokens = oauth_client(handler).exchange_code("code-1", "https://app/callback")

        assert tokens["access_token"] == "new-access"
        assert tokens["expires_in"] == 3600
        assert seen["url"] == "https://www.reddit.com/api/v1/access_token"
        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["code"] == ["code-1"]
        assert seen["form"]["redirect_uri"] == ["https://app/callback"]
        assert seen["auth"].startswith("Basic ")

    def test_error_payload_raises_oauth_error(self):
        handler = lambda r: httpx.Response(200, json={"error": "invalid_grant"})

        with pytest.raises(OAuthError, match="invalid_grant"):
            oauth_client(handler).exchange_code("bad", "https://app/callback")

    def test_bad_request_status_raises_oauth_error(self):
        handler = lambda r: httpx.Response(400, json={})

        with pytest.raises(OAuthError):
            oauth_client(handler).exchange_code("bad", "https://app/callback")


class TestRefreshAccessToken:
    def test_refresh_sends_refresh_grant(self):
        seen = {}

        def handler(request):
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json=token_response(refresh_token=None))

        tokens = oauth_client(handler).refresh_access_token("old-refresh")

        assert seen["form"]["grant_type"] == ["refresh_token"]
        assert seen["form"]["refresh_token"] == ["old-refresh"]
        assert tokens["access_token"] == "new-access"

    def test_expires_in_coerced_to_int(self):
        handler = lambda r: httpx.Response(200, json=token_response(expires_in="86400"))

        assert oauth_client(handler).refresh_access_token("rt")["expires_in"] == 86400

    def test_missing_access_token(self):
        handler = lambda r: httpx.Response(200, json=token_response(access_token=""))

        with pytest.raises(ValidationError):
            oauth_client(handler).refresh_access_token("rt")

    def test_missing_expires_in(self):
        payload = token_response()
        del payload["expires_in"]
        handler = lambda r: httpx.Response(200, json=payload)

        with pytest.raises(ValidationError):
            oauth_client(handler).refresh_access_token("rt")

    def test_revoked_refresh_token_is_auth_error(self):
        handler = lambda r: httpx.Response(401, json={"message": "Unauthorized"})

        with pytest.raises(AuthError):
            oauth_client(handler).refresh_access_token("rt")

    def test_server_error_is_transient(self):
        handler = lambda r: httpx.Response(502, text="bad gateway")

        with pytest.raises(TransientError):
            oauth_client(handler).refresh_access_token("rt")

    def test_network_failure_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientError):
            oauth_client(handler).refresh_access_token("rt")


class TestGetIdentity:
    def test_returns_username_and_id(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"name": "owner", "id": "t2_owner"})

        identity = oauth_client(handler).get_identity("access-1")

        assert identity == {"username": "owner", "reddit_id": "t2_owner"}
        assert seen["url"] == "https://oauth.reddit.com/api/v1/me"
        assert seen["auth"] == "Bearer access-1"

    def test_unexpected_payload(self):
        handler = lambda r: httpx.Response(200, json={"name": "owner"})

        with pytest.raises(ValidationError):
            oauth_client(handler).get_identity("access-1")

    def test_rejected_token(self):
        handler = lambda r: httpx.Response(403, json={})

        with pytest.raises(AuthError):
            oauth_client(handler).get_identity("access-1")
