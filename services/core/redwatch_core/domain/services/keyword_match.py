"""Keyword matching for confirmed posts.

Decides whether a post's text satisfies a keyword rule:

- Whole-word rules match the full term between word boundaries.
- Other rules split the term on spaces and match if ANY sub-term appears as
  a substring, so "cat dog" matches text mentioning either animal.

Whitespace runs are collapsed in both the term and the text, and both are
lower-cased unless the rule is case sensitive.
"""

import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs to single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def keyword_matches(
    term: str,
    text: str,
    match_whole_word: bool = False,
    case_sensitive: bool = False,
    rule_id: Optional[int] = None,
) -> bool:
    """Return True if text satisfies the keyword term.

    Args:
        term: The rule's search term.
        text: Title and body of the post.
        match_whole_word: Require the whole term between word boundaries.
        case_sensitive: Compare without lower-casing.
        rule_id: Keyword rule id, only used in log messages.
    """
    search_term = normalize_whitespace(term)
    content = normalize_whitespace(text)

    if not search_term:
        return False

    if not case_sensitive:
        search_term = search_term.lower()
        content = content.lower()

    if match_whole_word:
        pattern = r"\b(" + re.escape(search_term) + r")\b"
        try:
            return re.search(pattern, content) is not None
        except re.error as e:
            logger.error(f"Keyword pattern error for rule {rule_id}: {e} (pattern {pattern!r})")
            return False

    return any(sub_term in content for sub_term in search_term.split(" "))


def rule_matches(rule, text: str) -> bool:
    """Apply a RedditKeyword rule to text."""
    return keyword_matches(
        rule.keyword,
        text,
        match_whole_word=rule.match_whole_word,
        case_sensitive=rule.case_sensitive,
        rule_id=rule.id,
    )
