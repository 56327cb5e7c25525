"""Search URL construction for Reddit's server-rendered search endpoint."""

from typing import Optional
from urllib.parse import quote, quote_plus

SEARCH_SORTS = ("relevance", "hot", "top", "new", "comments")
SEARCH_TIME_FILTERS = ("hour", "day", "week", "month", "year", "all")

DEFAULT_SEARCH_BASE_URL = "https://www.reddit.com"


def build_search_url(
    query: str,
    subreddit: Optional[str] = None,
    sort: str = "relevance",
    time_filter: str = "week",
    base_url: str = DEFAULT_SEARCH_BASE_URL,
) -> str:
    """Build the shreddit search URL for one keyword, optionally in one subreddit.

    Args:
        query: The search term.
        subreddit: Subreddit name without the `r/` prefix, or None for a
            site-wide search.
        sort: One of SEARCH_SORTS.
        time_filter: One of SEARCH_TIME_FILTERS.
        base_url: Origin of the search pages.

    Raises:
        ValueError: If sort or time_filter is not supported.
    """
    if sort not in SEARCH_SORTS:
        raise ValueError(f"Unsupported sort: {sort}")
    if time_filter not in SEARCH_TIME_FILTERS:
        raise ValueError(f"Unsupported time filter: {time_filter}")

    scope = ""
    if subreddit:
        name = subreddit.strip()
        if name.lower().startswith("r/"):
            name = name[2:]
        scope = f"r/{quote(name, safe='')}/"

    return (
        f"{base_url.rstrip('/')}/svc/shreddit/{scope}search/"
        f"?q={quote_plus(query)}&type=posts&sort={sort}&t={time_filter}"
    )
