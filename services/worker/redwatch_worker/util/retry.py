"""Retry utilities for handling transient failures."""

import random
from typing import Optional


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: float = 0.0,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    @property
    def max_retries(self) -> int:
        """Celery max_retries equivalent (attempts after the first)."""
        return self.max_attempts - 1


def exponential_backoff(
    attempt: int,
    config: RetryConfig,
    rng: Optional[random.Random] = None,
) -> float:
    """Calculate exponential backoff delay.

    attempt is 1-based. A non-zero config.jitter adds a uniform random
    fraction of the delay on top, e.g. jitter=0.5 yields delay * [1, 1.5].
    The result never exceeds config.max_delay.
    """
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    if config.jitter:
        delay += delay * (rng or random).uniform(0, config.jitter)
    return min(delay, config.max_delay)


def retry_countdown(
    retries: int,
    config: Optional[RetryConfig] = None,
    rng: Optional[random.Random] = None,
) -> float:
    """Countdown for a Celery self.retry() given task.request.retries."""
    return exponential_backoff(retries + 1, config or TASK_RETRY, rng=rng)


# Bounded job retry: 3 attempts in total, 10s then 20s plus jitter
TASK_RETRY = RetryConfig(
    max_attempts=3,
    base_delay=10.0,
    max_delay=120.0,
    exponential_base=2.0,
    jitter=0.5,
)
