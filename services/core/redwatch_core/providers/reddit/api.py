"""Reddit API client for authoritative post lookups.

Search results scraped from the web UI are unverified. Before a post is
enriched it is looked up through the OAuth API, and only the first child of
the response is trusted, and only when its kind and echoed id match.

Usage:
    api = RedditApiClient(user_agent="Redwatch/1.0")
    post = api.fetch_post(access_token, "t3_abc123")
    print(post.title, post.selftext)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from redwatch_core.domain.errors import ValidationError
from redwatch_core.providers.reddit.http import (
    parse_json,
    raise_for_reddit_status,
    transport_error,
)

logger = logging.getLogger(__name__)

POST_KIND = "t3"
POST_PREFIX = "t3_"


def normalize_post_id(post_id: str) -> str:
    """Return the bare post id, accepting both `abc123` and `t3_abc123`.

    Raises:
        ValidationError: If nothing is left after normalization.
    """
    bare = (post_id or "").strip()
    if bare.startswith(POST_PREFIX):
        bare = bare[len(POST_PREFIX):]
    if not bare:
        raise ValidationError(f"Invalid post id: {post_id!r}")
    return bare


def fullname(post_id: str) -> str:
    """Return the prefixed `t3_` form of a post id."""
    return f"{POST_PREFIX}{normalize_post_id(post_id)}"


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class RedditPost:
    """The fields of a Reddit post the enrichment pipeline relies on."""

    id: str
    title: Optional[str]
    selftext: Optional[str]
    author: str
    subreddit: str
    permalink: str
    ups: int = 0
    downs: int = 0
    num_comments: int = 0
    stickied: bool = False
    locked: bool = False
    created_utc: Optional[float] = None

    @property
    def url(self) -> str:
        return f"https://reddit.com{self.permalink}"

    @classmethod
    def from_api_data(cls, data: dict[str, Any]) -> "RedditPost":
        """Build from the `data` object of a `t3` listing child."""
        title = (data.get("title") or "").strip() or None
        selftext = (data.get("selftext") or "").strip() or None

        created_utc = data.get("created_utc")
        try:
            created_utc = float(created_utc) if created_utc is not None else None
        except (TypeError, ValueError):
            created_utc = None

        return cls(
            id=data["id"],
            title=title,
            selftext=selftext,
            author=data.get("author") or "",
            subreddit=data.get("subreddit") or "",
            permalink=data.get("permalink") or "",
            ups=_as_int(data.get("ups")),
            downs=_as_int(data.get("downs")),
            num_comments=_as_int(data.get("num_comments")),
            stickied=bool(data.get("stickied", False)),
            locked=bool(data.get("locked", False)),
            created_utc=created_utc,
        )


class RedditApiClient:
    """Synchronous client for the bearer-authenticated Reddit API."""

    BASE_URL = "https://oauth.reddit.com"

    def __init__(
        self,
        user_agent: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            user_agent: User-Agent string for API requests.
            base_url: Override for the API origin.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.user_agent = user_agent
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _get(self, access_token: str, endpoint: str, params: dict, action: str) -> httpx.Response:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                return client.get(
                    f"{self.base_url}{endpoint}",
                    params=params,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "User-Agent": self.user_agent,
                    },
                )
        except httpx.TransportError as e:
            raise transport_error(e, action)

    def fetch_post(self, access_token: str, post_id: str) -> RedditPost:
        """Look up a single post by id.

        Args:
            access_token: A valid bearer token.
            post_id: Bare or `t3_`-prefixed post id.

        Returns:
            The post as reported by Reddit.

        Raises:
            ValidationError: If the envelope is malformed, empty, not a post,
                or describes a different post than the one requested.
            AuthError: On 401/403.
            TransientError: On network failure or 429/5xx.
        """
        expected_id = normalize_post_id(post_id)
        action = f"Post lookup for {expected_id}"

        response = self._get(
            access_token, "/api/info", {"id": f"{POST_PREFIX}{expected_id}"}, action
        )
        raise_for_reddit_status(response, action)
        payload = parse_json(response, action)

        data = payload.get("data") if isinstance(payload, dict) else None
        children = data.get("children") if isinstance(data, dict) else None
        if not isinstance(children, list):
            raise ValidationError(f"{action}: response has no children list")
        if not children:
            raise ValidationError(f"{action}: post not found")

        child = children[0]
        if not isinstance(child, dict) or child.get("kind") != POST_KIND:
            raise ValidationError(f"{action}: first child is not a post")

        post_data = child.get("data")
        if not isinstance(post_data, dict) or not post_data.get("id"):
            raise ValidationError(f"{action}: post has no id")
        if post_data["id"] != expected_id:
            raise ValidationError(
                f"{action}: response describes post {post_data['id']}"
            )

        return RedditPost.from_api_data(post_data)
