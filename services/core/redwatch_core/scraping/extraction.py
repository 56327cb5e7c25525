"""Extraction of candidate posts from rendered search markup.

Each search result carries a `search-telemetry-tracker` element whose
`data-faceplate-tracking-context` attribute holds a JSON payload describing
the post and its subreddit. That payload is the only thing read; the visual
markup around it changes too often to rely on.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from bs4 import BeautifulSoup

from redwatch_core.domain.errors import ExtractionError

logger = logging.getLogger(__name__)

PRIMARY_SELECTOR = 'search-telemetry-tracker[data-testid="search-sdui-post"]'
FALLBACK_SELECTOR = "search-telemetry-tracker[data-faceplate-tracking-context*='\"type\":\"post\"']"
CONTEXT_ATTRIBUTE = "data-faceplate-tracking-context"

NO_TITLE = "No title"


@dataclass
class CandidateItem:
    """An unverified post surfaced by a search page."""

    post_id: str
    title: str = NO_TITLE
    subreddit: Optional[str] = None
    subreddit_id: Optional[str] = None
    url: Optional[str] = None
    score: int = 0
    num_comments: int = 0
    created_utc: Optional[Any] = None
    author: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _decode_context(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _candidate_from_context(data: dict) -> Optional[CandidateItem]:
    action_info = data.get("action_info") or {}
    if isinstance(action_info, dict) and "type" in action_info and action_info["type"] != "post":
        return None

    post = data.get("post")
    subreddit = data.get("subreddit")
    if not isinstance(post, dict) or not isinstance(subreddit, dict):
        return None

    return CandidateItem(
        post_id=post.get("id") or "",
        title=post.get("title") or NO_TITLE,
        subreddit=subreddit.get("name"),
        subreddit_id=subreddit.get("id"),
        url=post.get("permalink"),
        score=post.get("score") or 0,
        num_comments=post.get("num_comments") or 0,
        created_utc=post.get("created_utc"),
        author=post.get("author"),
    )


class SearchExtractor:
    """Parses search-result HTML into CandidateItems."""

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser

    def extract(self, html: str) -> list[CandidateItem]:
        """Return candidates in page order, first occurrence of each post id.

        Raises:
            ExtractionError: If the markup cannot be parsed at all.
        """
        try:
            soup = BeautifulSoup(html or "", self.parser)
            trackers = soup.select(PRIMARY_SELECTOR)
            if not trackers:
                trackers = soup.select(FALLBACK_SELECTOR)
        except Exception as e:
            raise ExtractionError(f"Could not parse search markup: {e}") from e

        candidates: list[CandidateItem] = []
        seen: set[str] = set()

        for tracker in trackers:
            # BeautifulSoup has already decoded HTML entities in the attribute
            data = _decode_context(tracker.get(CONTEXT_ATTRIBUTE))
            if data is None:
                continue

            candidate = _candidate_from_context(data)
            if candidate is None:
                continue

            if candidate.post_id in seen:
                continue
            seen.add(candidate.post_id)
            candidates.append(candidate)

        return candidates
