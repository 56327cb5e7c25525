"""Unit tests for sentiment/intent analysis."""

import json
from unittest.mock import MagicMock

import pytest

from redwatch_core.domain.errors import AnalysisError
from redwatch_core.domain.services.analysis import (
    DEFAULT_ANALYSIS,
    DEFAULT_REPLY,
    LLMSentimentAnalyzer,
    MAX_ANALYSIS_CHARS,
    build_analysis_prompt,
    clean_content,
    fallback_reply,
    intent_priority,
    is_business_relevant,
    parse_analysis_response,
    validate_analysis,
)
from redwatch_core.domain.services.inference import ChatResponse, InferenceError, ModelInfo

VALID = {
    "sentiment": "positive",
    "sentiment_confidence": 0.9,
    "intent": "lead",
    "intent_confidence": 0.8,
    "suggested_reply": "Happy to help, what is your budget?",
}


def chat_response(content):
    return ChatResponse(
        content=content,
        model_info=ModelInfo(
            model_name="test",
            temperature=0.3,
            max_tokens=400,
            input_tokens=10,
            output_tokens=20,
            latency_ms=5,
        ),
        finish_reason="stop",
    )


class TestDefaults:
    def test_default_analysis(self):
        assert DEFAULT_ANALYSIS.sentiment == "neutral"
        assert DEFAULT_ANALYSIS.sentiment_confidence == 0.0
        assert DEFAULT_ANALYSIS.intent == "irrelevant"
        assert DEFAULT_ANALYSIS.intent_confidence == 0.0
        assert DEFAULT_ANALYSIS.suggested_reply == DEFAULT_REPLY


class TestValidateAnalysis:
    def test_valid_dict(self):
        result = validate_analysis(VALID)

        assert result.intent == "lead"
        assert result.sentiment_confidence == 0.9

    @pytest.mark.parametrize(
        "field,value",
        [
            ("sentiment", "ecstatic"),
            ("intent", "spam"),
            ("sentiment_confidence", 1.5),
            ("intent_confidence", -0.1),
            ("suggested_reply", "   "),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(AnalysisError):
            validate_analysis({**VALID, field: value})

    @pytest.mark.parametrize(
        "field,value",
        [
            ("sentiment_confidence", "0.9"),
            ("intent_confidence", True),
            ("suggested_reply", 42),
        ],
    )
    def test_rejects_wrong_types(self, field, value):
        with pytest.raises(AnalysisError):
            validate_analysis({**VALID, field: value})

    def test_accepts_integer_confidence(self):
        result = validate_analysis({**VALID, "sentiment_confidence": 1, "intent_confidence": 0})

        assert result.sentiment_confidence == 1.0
        assert result.intent_confidence == 0.0

    def test_rejects_missing_field(self):
        data = dict(VALID)
        del data["intent"]

        with pytest.raises(AnalysisError):
            validate_analysis(data)

    def test_rejects_non_object(self):
        with pytest.raises(AnalysisError):
            validate_analysis(["positive"])


class TestParseAnalysisResponse:
    def test_plain_json(self):
        assert parse_analysis_response(json.dumps(VALID)).intent == "lead"

    def test_code_fence_and_chatter(self):
        text = "Sure! Here you go:\n```json\n" + json.dumps(VALID) + "\n```\nAnything else?"

        assert parse_analysis_response(text).sentiment == "positive"

    def test_trailing_comma(self):
        text = json.dumps(VALID)[:-1] + ",}"

        assert parse_analysis_response(text).intent == "lead"

    def test_no_json(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response("I cannot help with that.")

    def test_broken_json(self):
        with pytest.raises(AnalysisError):
            parse_analysis_response('{"sentiment": "positive", oops}')


class TestCleanContent:
    def test_strips_markdown(self):
        assert clean_content("**bold** *italic* ~~gone~~ ^super") == "bold italic gone super"

    def test_replaces_urls(self):
        assert clean_content("see https://example.com/x?y=1 now") == "see [URL] now"

    def test_rewrites_user_and_subreddit_mentions(self):
        assert clean_content("ask u/someone in r/python") == "ask user someone in subreddit python"

    def test_collapses_whitespace(self):
        assert clean_content("a \n\n  b\t c") == "a b c"

    def test_caps_length(self):
        cleaned = clean_content("x" * (MAX_ANALYSIS_CHARS + 100))

        assert cleaned == "x" * MAX_ANALYSIS_CHARS + "..."


class TestIntentHelpers:
    def test_priorities(self):
        assert intent_priority("lead") == 1
        assert intent_priority("irrelevant") == 6
        assert intent_priority("unknown") == 6

    def test_business_relevance(self):
        assert is_business_relevant("feedback")
        assert not is_business_relevant("irrelevant")

    def test_fallback_reply(self):
        assert fallback_reply("irrelevant") == DEFAULT_REPLY
        assert fallback_reply("nonsense") == DEFAULT_REPLY
        assert fallback_reply("lead") != DEFAULT_REPLY


class TestBuildAnalysisPrompt:
    def test_includes_text_keyword_and_persona(self):
        prompt = build_analysis_prompt(
            "Need invoicing tools",
            "invoicing",
            persona_settings={"brand": "Acme Books"},
            persona_type="small_business",
        )

        assert '"Need invoicing tools"' in prompt
        assert '"invoicing"' in prompt
        assert "small_business" in prompt
        assert "Acme Books" in prompt

    def test_without_persona(self):
        prompt = build_analysis_prompt("text", "kw")

        assert "Persona" not in prompt


class TestLLMSentimentAnalyzer:
    def test_returns_validated_analysis(self):
        client = MagicMock()
        client.chat.return_value = chat_response(json.dumps(VALID))
        analyzer = LLMSentimentAnalyzer(client, temperature=0.1, max_tokens=200)

        result = analyzer.analyze("Any **good** desks?", "desk", persona_type="marketing")

        assert result.intent == "lead"
        messages = client.chat.call_args.args[0]
        assert messages[0].role == "system"
        assert "good desks" in messages[1].content
        assert client.chat.call_args.kwargs == {"temperature": 0.1, "max_tokens": 200}

    def test_empty_model_output(self):
        client = MagicMock()
        client.chat.return_value = chat_response("   ")

        with pytest.raises(AnalysisError):
            LLMSentimentAnalyzer(client).analyze("text", "kw")

    def test_empty_content_not_sent(self):
        client = MagicMock()

        with pytest.raises(AnalysisError):
            LLMSentimentAnalyzer(client).analyze("   ", "kw")
        client.chat.assert_not_called()

    def test_inference_error_is_analysis_error(self):
        client = MagicMock()
        client.chat.side_effect = InferenceError("down")

        with pytest.raises(AnalysisError):
            LLMSentimentAnalyzer(client).analyze("text", "kw")
