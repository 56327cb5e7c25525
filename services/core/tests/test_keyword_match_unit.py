"""Unit tests for keyword matching."""

from types import SimpleNamespace

import pytest

from redwatch_core.domain.services.keyword_match import (
    keyword_matches,
    normalize_whitespace,
    rule_matches,
)


class TestNormalizeWhitespace:
    def test_collapses_runs_and_trims(self):
        assert normalize_whitespace("  a \t\n b  ") == "a b"

    def test_none_becomes_empty(self):
        assert normalize_whitespace(None) == ""


class TestSubstringMode:
    """Default rules: any space-separated sub-term as a substring."""

    def test_any_sub_term_matches(self):
        assert keyword_matches("cat dog", "I love my dog")

    def test_no_sub_term_matches(self):
        assert not keyword_matches("cat dog", "I love my hamster")

    def test_substring_inside_word(self):
        assert keyword_matches("desk", "standingdesks are great")

    def test_case_insensitive_by_default(self):
        assert keyword_matches("Python", "learning PYTHON today")

    def test_case_sensitive(self):
        assert not keyword_matches("Python", "learning python today", case_sensitive=True)
        assert keyword_matches("Python", "learning Python today", case_sensitive=True)

    def test_whitespace_in_term_normalized(self):
        assert keyword_matches("  cat   dog ", "a dog")

    def test_empty_term_never_matches(self):
        assert not keyword_matches("   ", "anything")


class TestWholeWordMode:
    """Whole-word rules: the full term between word boundaries."""

    def test_matches_whole_word(self):
        assert keyword_matches("desk", "my desk is tidy", match_whole_word=True)

    def test_rejects_partial_word(self):
        assert not keyword_matches("desk", "my desks are tidy", match_whole_word=True)

    def test_full_phrase_required(self):
        assert keyword_matches("standing desk", "a standing desk", match_whole_word=True)
        assert not keyword_matches("standing desk", "a standing chair", match_whole_word=True)

    def test_whitespace_in_text_normalized(self):
        assert keyword_matches("standing desk", "a standing \n\t desk", match_whole_word=True)

    def test_regex_metacharacters_escaped(self):
        assert keyword_matches("c.a", "we use c.a daily", match_whole_word=True)
        assert not keyword_matches("c.a", "we use cba daily", match_whole_word=True)

    def test_case_sensitive_whole_word(self):
        assert not keyword_matches(
            "Desk", "my desk", match_whole_word=True, case_sensitive=True
        )


class TestRuleMatches:
    @pytest.mark.parametrize(
        "whole_word,text,expected",
        [
            (False, "desks", True),
            (True, "desks", False),
            (True, "the desk", True),
        ],
    )
    def test_uses_rule_flags(self, whole_word, text, expected):
        rule = SimpleNamespace(
            id=1, keyword="desk", match_whole_word=whole_word, case_sensitive=False
        )

        assert rule_matches(rule, text) is expected
