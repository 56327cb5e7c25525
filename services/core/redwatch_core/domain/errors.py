"""Error taxonomy for the discovery and enrichment pipeline.

Each class marks how far a failure is allowed to travel:

- AuthError: token decrypt/refresh failures. Surfaced to the caller, which
  terminates the job without retrying.
- RenderError: headless rendering failed. The renderer adapter swallows it
  and hands back the unrendered response.
- ExtractionError: search markup could not be parsed. Logged, zero candidates.
- ValidationError: the Reddit API payload did not have the expected shape.
  Terminates the single job, no retry.
- AnalysisError: the text-analysis model failed or returned junk. The
  enrichment worker substitutes the default analysis.
- TransientError: network failures, timeouts, 429/5xx. Eligible for a
  bounded job retry.
"""


class RedwatchError(Exception):
    """Base class for pipeline errors."""

    pass


class AuthError(RedwatchError):
    """Credential could not produce a usable access token."""

    pass


class RenderError(RedwatchError):
    """Headless rendering of a page failed."""

    pass


class ExtractionError(RedwatchError):
    """Rendered markup could not be parsed into candidates."""

    pass


class ValidationError(RedwatchError):
    """An external payload failed structural validation."""

    pass


class AnalysisError(RedwatchError):
    """The analysis collaborator produced no usable result."""

    pass


class TransientError(RedwatchError):
    """A retryable failure talking to an external service."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "RedwatchError",
    "AuthError",
    "RenderError",
    "ExtractionError",
    "ValidationError",
    "AnalysisError",
    "TransientError",
]
