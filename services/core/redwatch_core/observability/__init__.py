"""Observability package for structured logging."""

from redwatch_core.observability.logging import (
    JobContext,
    JsonFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "JobContext",
    "JsonFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
