"""Inference client for the text-analysis model.

Synchronous wrapper for an OpenAI-compatible chat completions endpoint
(llama.cpp server, vLLM, or a hosted API).

Usage:
    config = InferenceConfig(base_url="http://localhost:8080", model_name="qwen")
    client = InferenceClient(config=config)

    messages = [
        ChatMessage(role="system", content="You are helpful."),
        ChatMessage(role="user", content="Hello!"),
    ]

    response = client.chat(messages)
    print(response.content)
    print(response.model_info.to_dict())
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import httpx

from redwatch_core.domain.errors import AnalysisError

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class InferenceError(AnalysisError):
    """Base exception for inference errors."""

    pass


class ConnectionInferenceError(InferenceError):
    """Connection error during inference."""

    pass


class TimeoutInferenceError(InferenceError):
    """Timeout during inference."""

    pass


class ResponseInferenceError(InferenceError):
    """Invalid or malformed response from inference server."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class InferenceConfig:
    """Configuration for the inference client.

    Attributes:
        base_url: URL of the inference server (e.g., http://localhost:8080)
        model_name: Name of the model to use
        timeout: Request timeout in seconds
        max_tokens: Maximum tokens to generate
        temperature: Sampling temperature
        api_key: Optional API key for authentication
    """

    base_url: str
    model_name: str = "default"
    timeout: float = 60.0
    max_tokens: int = 400
    temperature: float = 0.3
    api_key: Optional[str] = None


@dataclass
class ChatMessage:
    """A message in a chat conversation."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class ModelInfo:
    """Information about the model and inference run."""

    model_name: str
    temperature: float
    max_tokens: int
    input_tokens: int
    output_tokens: int
    latency_ms: int
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "model_name": self.model_name,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "latency_ms": self.latency_ms,
            **self.extra,
        }


@dataclass
class ChatResponse:
    """Response from a chat request.

    Attributes:
        content: The generated text content
        model_info: Information about the model and run
        finish_reason: Why generation stopped (stop, length, etc.)
    """

    content: str
    model_info: ModelInfo
    finish_reason: str


# =============================================================================
# INFERENCE CLIENT
# =============================================================================


class InferenceClient:
    """Client for chat completions against an OpenAI-style API."""

    def __init__(
        self,
        config: InferenceConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize the inference client.

        Args:
            config: Inference configuration.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.config = config
        self.transport = transport
        self._http_client: Optional[httpx.Client] = None

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            headers = {}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self._http_client = httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=headers,
                transport=self.transport,
            )
        return self._http_client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            self._http_client.close()
            self._http_client = None

    def _make_request(self, messages: list[dict], temperature: float, max_tokens: int) -> dict:
        """Make a chat completion request to the server.

        Raises:
            InferenceError: On connection, timeout, or response errors
        """
        client = self._get_http_client()

        payload = {
            "model": self.config.model_name,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        logger.debug(
            f"LLM request to {self.config.base_url}: model={self.config.model_name}, "
            f"temp={temperature}, max_tokens={max_tokens}, messages={len(messages)}"
        )

        try:
            response = client.post("/v1/chat/completions", json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.ConnectError as e:
            raise ConnectionInferenceError(f"Connection error: {e}") from e
        except httpx.TimeoutException as e:
            raise TimeoutInferenceError(f"Timeout error: {e}") from e
        except httpx.HTTPStatusError as e:
            raise InferenceError(f"HTTP error: {e}") from e
        except httpx.HTTPError as e:
            raise InferenceError(f"Transport error: {e}") from e
        except ValueError as e:
            raise ResponseInferenceError(f"Response is not JSON: {e}") from e

    def chat(
        self,
        messages: list[ChatMessage],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> ChatResponse:
        """Send a chat request to the LLM.

        Args:
            messages: List of ChatMessage objects
            temperature: Override default temperature
            max_tokens: Override default max_tokens

        Returns:
            ChatResponse with content and model info

        Raises:
            InferenceError: On errors during inference
        """
        temp = temperature if temperature is not None else self.config.temperature
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        message_dicts = [{"role": m.role, "content": m.content} for m in messages]

        start_time = time.monotonic()
        response_data = self._make_request(
            messages=message_dicts,
            temperature=temp,
            max_tokens=tokens,
        )
        elapsed_ms = int((time.monotonic() - start_time) * 1000)

        if not isinstance(response_data, dict):
            raise ResponseInferenceError("Invalid response: not an object")

        if "error" in response_data:
            error_info = response_data["error"]
            if isinstance(error_info, dict):
                error_msg = error_info.get("message", str(error_info))
            else:
                error_msg = str(error_info)
            logger.error(f"LLM server returned error: {error_msg}")
            raise ResponseInferenceError(f"LLM server error: {error_msg}")

        try:
            choices = response_data.get("choices", [])
            if not choices:
                raise ResponseInferenceError("Invalid response: no choices")

            choice = choices[0]
            content = (choice.get("message") or {}).get("content") or ""
            finish_reason = choice.get("finish_reason", "unknown")

            usage = response_data.get("usage") or {}
            input_tokens = usage.get("prompt_tokens", 0)
            output_tokens = usage.get("completion_tokens", 0)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ResponseInferenceError(f"Invalid response format: {e}") from e

        model_info = ModelInfo(
            model_name=self.config.model_name,
            temperature=temp,
            max_tokens=tokens,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            latency_ms=elapsed_ms,
        )

        return ChatResponse(
            content=content,
            model_info=model_info,
            finish_reason=finish_reason,
        )
