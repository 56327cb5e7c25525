"""Reddit OAuth client.

Talks to Reddit's token endpoint and identity endpoint. Storage of the
resulting tokens is the job of CredentialService; this module never
touches the database.

Usage:
    client = RedditOAuthClient(
        client_id="...",
        client_secret="...",
        user_agent="Redwatch/1.0",
    )

    tokens = client.exchange_code(code, redirect_uri)
    identity = client.get_identity(tokens["access_token"])
    fresh = client.refresh_access_token(refresh_token)
"""

from typing import Any, Optional

import httpx

from redwatch_core.domain.errors import AuthError, ValidationError
from redwatch_core.providers.reddit.http import (
    parse_json,
    raise_for_reddit_status,
    transport_error,
)


class OAuthError(AuthError):
    """Raised when Reddit rejects a token exchange or refresh."""

    pass


class RedditOAuthClient:
    """Synchronous client for Reddit's OAuth2 endpoints."""

    TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
    IDENTITY_URL = "https://oauth.reddit.com/api/v1/me"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        user_agent: str,
        token_url: Optional[str] = None,
        identity_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            client_id: Reddit app client ID.
            client_secret: Reddit app client secret.
            user_agent: User-Agent for Reddit API requests.
            token_url: Override for the token endpoint.
            identity_url: Override for the identity endpoint.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.token_url = token_url or self.TOKEN_URL
        self.identity_url = identity_url or self.IDENTITY_URL
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _post_token(self, data: dict[str, str], action: str) -> dict[str, Any]:
        try:
            with self._client() as client:
                response = client.post(
                    self.token_url,
                    data=data,
                    auth=(self.client_id, self.client_secret),
                    headers={"User-Agent": self.user_agent},
                )
        except httpx.TransportError as e:
            raise transport_error(e, action)

        raise_for_reddit_status(response, action, client_error=OAuthError)
        payload = parse_json(response, action)

        if not isinstance(payload, dict) or "error" in payload:
            error = payload.get("error") if isinstance(payload, dict) else payload
            raise OAuthError(f"{action} failed: {error}")
        if not payload.get("access_token"):
            raise ValidationError(f"{action} response has no access_token")
        try:
            payload["expires_in"] = int(payload.get("expires_in"))
        except (TypeError, ValueError):
            raise ValidationError(f"{action} response has no usable expires_in")

        return payload

    def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Exchange an authorization code for tokens.

        Returns:
            Token response containing access_token, refresh_token,
            expires_in and scope.

        Raises:
            OAuthError: If Reddit rejects the code.
            TransientError: On network failure or 429/5xx.
        """
        return self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            },
            "Token exchange",
        )

    def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new access token.

        The response may carry a rotated refresh_token; callers must store it.

        Raises:
            OAuthError: If Reddit rejects the refresh token.
            TransientError: On network failure or 429/5xx.
        """
        return self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            "Token refresh",
        )

    def get_identity(self, access_token: str) -> dict[str, str]:
        """Get the Reddit account behind an access token.

        Returns:
            Dict with username and reddit_id.

        Raises:
            AuthError: If the token is rejected.
            TransientError: On network failure or 429/5xx.
        """
        action = "Identity lookup"
        try:
            with self._client() as client:
                response = client.get(
                    self.identity_url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "User-Agent": self.user_agent,
                    },
                )
        except httpx.TransportError as e:
            raise transport_error(e, action)

        raise_for_reddit_status(response, action)
        data = parse_json(response, action)

        if not isinstance(data, dict) or not data.get("name") or not data.get("id"):
            raise ValidationError(f"{action} returned an unexpected payload")

        return {"username": data["name"], "reddit_id": data["id"]}
