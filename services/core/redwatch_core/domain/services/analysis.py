"""Sentiment, intent and suggested-reply analysis for mentions.

The model behind this module is an untrusted collaborator. Its output is
parsed and validated strictly; the enrichment worker substitutes
DEFAULT_ANALYSIS for anything that does not validate.

Usage:
    analyzer = LLMSentimentAnalyzer(inference_client=client)

    result = analyzer.analyze(
        content="Any tools like this for invoicing?",
        keyword="invoicing",
        persona_settings={"brand": "Acme Books"},
        persona_type="small_business",
    )
    print(result.intent, result.suggested_reply)
"""

import json
import logging
import re
from typing import Any, Literal, Optional, Protocol

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from redwatch_core.domain.errors import AnalysisError
from redwatch_core.domain.models import PersonaType
from redwatch_core.domain.services.inference import ChatMessage, InferenceClient

logger = logging.getLogger(__name__)


SENTIMENTS = ("positive", "negative", "neutral")
INTENTS = ("lead", "competitor", "brand_mention", "feedback", "hiring_opportunity", "irrelevant")

MAX_ANALYSIS_CHARS = 1500

DEFAULT_REPLY = (
    "Thank you for sharing. Feel free to reach out if you have any questions "
    "or need assistance."
)


# =============================================================================
# OUTPUT SCHEMA
# =============================================================================


class SentimentAnalysis(BaseModel):
    """Validated analysis of one post."""

    model_config = ConfigDict(strict=True)

    sentiment: Literal["positive", "negative", "neutral"]
    sentiment_confidence: float = Field(ge=0.0, le=1.0)
    intent: Literal[
        "lead", "competitor", "brand_mention", "feedback", "hiring_opportunity", "irrelevant"
    ]
    intent_confidence: float = Field(ge=0.0, le=1.0)
    suggested_reply: str

    @field_validator("suggested_reply")
    @classmethod
    def validate_suggested_reply(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("suggested_reply is empty")
        return v


DEFAULT_ANALYSIS = SentimentAnalysis(
    sentiment="neutral",
    sentiment_confidence=0.0,
    intent="irrelevant",
    intent_confidence=0.0,
    suggested_reply=DEFAULT_REPLY,
)


# =============================================================================
# INTENT HELPERS
# =============================================================================


INTENT_PRIORITIES = {
    "lead": 1,
    "hiring_opportunity": 2,
    "feedback": 3,
    "competitor": 4,
    "brand_mention": 5,
    "irrelevant": 6,
}

FALLBACK_REPLIES = {
    "lead": (
        "Thank you for your interest. I'd be happy to help you find the right "
        "solution. Could you share more details about your specific needs?"
    ),
    "competitor": (
        "I appreciate you doing your research. Each solution has its strengths, "
        "and I'd be glad to discuss how we might be able to help with your "
        "specific requirements."
    ),
    "brand_mention": (
        "Thank you for mentioning us. If you have any questions or would like to "
        "learn more, please feel free to ask."
    ),
    "feedback": (
        "Thank you for sharing your feedback. We value all input and would "
        "appreciate the opportunity to address any concerns you might have."
    ),
    "hiring_opportunity": (
        "This looks like an interesting opportunity. I'd be happy to discuss how "
        "my background might be a good fit for your needs."
    ),
    "irrelevant": DEFAULT_REPLY,
}

PERSONA_DESCRIPTIONS = {
    PersonaType.SMALL_BUSINESS.value: "a small business owner looking for customers",
    PersonaType.MARKETING.value: "a marketer promoting a product or brand",
    PersonaType.CONTENT_CREATOR.value: "a content creator growing an audience",
    PersonaType.CUSTOMER_SUPPORT.value: "a customer support agent helping users",
    PersonaType.MARKET_RESEARCHER.value: "a market researcher gathering opinions",
    PersonaType.FREELANCER.value: "a freelancer looking for clients and gigs",
    PersonaType.PR_CRISIS.value: "a PR professional handling reputation issues",
}


def intent_priority(intent: str) -> int:
    """Business priority of an intent, 1 (lead) to 6 (irrelevant)."""
    return INTENT_PRIORITIES.get(intent, 6)


def is_business_relevant(intent: str) -> bool:
    return intent != "irrelevant"


def fallback_reply(intent: str) -> str:
    """Canned reply for an intent, used when no model reply is available."""
    return FALLBACK_REPLIES.get(intent, FALLBACK_REPLIES["irrelevant"])


# =============================================================================
# CONTENT CLEANING
# =============================================================================


_MARKDOWN_PATTERNS = (
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"~~(.*?)~~"), r"\1"),
    (re.compile(r"\^(\w+)"), r"\1"),
)
_URL_RE = re.compile(r"https?://\S+")
_USER_RE = re.compile(r"/?\bu/(\w+)")
_SUBREDDIT_RE = re.compile(r"/?\br/(\w+)")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_content(content: str, max_chars: int = MAX_ANALYSIS_CHARS) -> str:
    """Strip Reddit markdown and links before sending text to the model."""
    for pattern, replacement in _MARKDOWN_PATTERNS:
        content = pattern.sub(replacement, content)

    content = _URL_RE.sub("[URL]", content)
    content = _USER_RE.sub(r"user \1", content)
    content = _SUBREDDIT_RE.sub(r"subreddit \1", content)
    content = _WHITESPACE_RE.sub(" ", content).strip()

    if len(content) > max_chars:
        content = content[:max_chars] + "..."

    return content


# =============================================================================
# RESPONSE PARSING
# =============================================================================


_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def validate_analysis(data: Any) -> SentimentAnalysis:
    """Validate an analysis produced by any collaborator.

    Raises:
        AnalysisError: If a field is missing, out of enum or out of range.
    """
    if isinstance(data, SentimentAnalysis):
        return data
    if not isinstance(data, dict):
        raise AnalysisError(f"Analysis is not an object: {type(data).__name__}")
    try:
        return SentimentAnalysis.model_validate(data)
    except pydantic.ValidationError as e:
        raise AnalysisError(f"Invalid analysis: {e}")


def parse_analysis_response(text: str) -> SentimentAnalysis:
    """Parse raw model output into a validated analysis.

    Tolerates code fences, trailing commas and chatter around the JSON
    object.

    Raises:
        AnalysisError: If no valid analysis object can be recovered.
    """
    cleaned = _FENCE_RE.sub("", text or "").replace("```", "").strip()
    cleaned = _TRAILING_COMMA_RE.sub(r"\1", cleaned)

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        raise AnalysisError("No JSON object in model response")

    try:
        data = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Invalid JSON in model response: {e}")

    return validate_analysis(data)


# =============================================================================
# PROMPT
# =============================================================================


ANALYSIS_SYSTEM_PROMPT = """You are a sentiment analysis, intent detection and reply writing model for Reddit posts.

Respond ONLY with a JSON object of this shape:
{
  "sentiment": "positive",
  "sentiment_confidence": 0.91,
  "intent": "lead",
  "intent_confidence": 0.88,
  "suggested_reply": "Thanks for sharing, that sounds interesting! ..."
}

sentiment is one of "positive", "negative", "neutral".
Both confidences are floats between 0.0 and 1.0.

Intent types:
- lead: Shows potential customer interest, seeking recommendations or solutions.
- competitor: Mentions competing products or services, comparisons.
- brand_mention: References the brand or keyword without clear intent.
- feedback: Reviews, complaints, experiences with products or services.
- hiring_opportunity: Job postings, recruitment discussions.
- irrelevant: Unrelated to the business context or keyword.

Reply guidelines by intent:
- lead: Friendly and helpful; offer concise suggestions or ask a clarifying question.
- competitor: Acknowledge the comparison respectfully, mention strengths casually, never salesy.
- brand_mention: Thank the user warmly and add brief useful context.
- feedback: Address concerns with empathy and offer practical help, never defensive.
- hiring_opportunity: Express interest professionally but conversationally.
- irrelevant: Acknowledge politely and steer back to the topic if possible.

Reply style:
- Casual and conversational, like a regular member of the community.
- 2 to 4 sentences, roughly 30 to 80 words.
- No corporate jargon and no emojis.
- Write the reply as the persona described in the request.

If tone is unclear, prefer neutral sentiment. Weight the keyword strongly when judging intent.
Return only the JSON object with no additional text or formatting."""


def build_analysis_prompt(
    content: str,
    keyword: str,
    persona_settings: Optional[dict[str, Any]] = None,
    persona_type: Optional[str] = None,
) -> str:
    """Build the user message for one analysis request."""
    parts = [f'Text to analyze: {json.dumps(content)}', f'Keyword context: {json.dumps(keyword)}']

    if persona_type:
        description = PERSONA_DESCRIPTIONS.get(persona_type, persona_type)
        parts.append(f"Persona: {description} ({persona_type})")
    if persona_settings:
        parts.append(
            "Persona settings: " + json.dumps(persona_settings, sort_keys=True, default=str)
        )

    return "\n".join(parts)


# =============================================================================
# ANALYZERS
# =============================================================================


class TextAnalyzer(Protocol):
    """Anything that can analyze a post for the enrichment worker.

    Implementations may return a SentimentAnalysis or a plain dict and may
    raise; the worker validates the result and falls back to defaults.
    """

    def analyze(
        self,
        content: str,
        keyword: str,
        persona_settings: Optional[dict[str, Any]] = None,
        persona_type: Optional[str] = None,
    ) -> Any: ...


class LLMSentimentAnalyzer:
    """Runs the analysis prompt against an OpenAI-compatible model."""

    def __init__(
        self,
        inference_client: InferenceClient,
        temperature: float = 0.3,
        max_tokens: int = 400,
        system_prompt: str = ANALYSIS_SYSTEM_PROMPT,
    ):
        self.inference_client = inference_client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

    def analyze(
        self,
        content: str,
        keyword: str,
        persona_settings: Optional[dict[str, Any]] = None,
        persona_type: Optional[str] = None,
    ) -> SentimentAnalysis:
        """Analyze one post.

        Raises:
            AnalysisError: If the content is empty after cleaning, the model
                call fails, or the response does not validate.
        """
        cleaned = clean_content(content)
        if not cleaned:
            raise AnalysisError("Nothing to analyze after cleaning")

        messages = [
            ChatMessage(role="system", content=self.system_prompt),
            ChatMessage(
                role="user",
                content=build_analysis_prompt(cleaned, keyword, persona_settings, persona_type),
            ),
        ]

        response = self.inference_client.chat(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        if not response.content.strip():
            raise AnalysisError("Model returned an empty response")

        result = parse_analysis_response(response.content)
        logger.debug(
            f"Analysis done: sentiment={result.sentiment}, intent={result.intent}, "
            f"latency_ms={response.model_info.latency_ms}"
        )
        return result
