"""Reddit provider integration.

This package contains:
- OAuth token exchange and identity lookup
- The authoritative post lookup client
- Search URL construction
"""

from redwatch_core.providers.reddit.api import (
    RedditApiClient,
    RedditPost,
    fullname,
    normalize_post_id,
)
from redwatch_core.providers.reddit.oauth import OAuthError, RedditOAuthClient
from redwatch_core.providers.reddit.search import (
    SEARCH_SORTS,
    SEARCH_TIME_FILTERS,
    build_search_url,
)

__all__ = [
    "OAuthError",
    "RedditApiClient",
    "RedditOAuthClient",
    "RedditPost",
    "SEARCH_SORTS",
    "SEARCH_TIME_FILTERS",
    "build_search_url",
    "fullname",
    "normalize_post_id",
]
