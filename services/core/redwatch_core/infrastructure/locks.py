"""Per-key mutual exclusion for token refreshes.

Two enrichment workers holding the same credential must not both spend its
refresh token. Refreshes are therefore serialized per credential; unrelated
credentials never contend.

- LocalLockProvider: threading locks, for a single process (tests, scripts).
- RedisLockProvider: redis-py locks shared by every worker process.

Usage:
    locks = RedisLockProvider.from_url(settings.redis_url, timeout=60)

    with locks.lock(f"token-refresh:{credential.id}"):
        ...
"""

import logging
import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Optional, Protocol

import redis
from redis.exceptions import LockError, RedisError

from redwatch_core.domain.errors import TransientError

logger = logging.getLogger(__name__)


class LockProvider(Protocol):
    """Hands out a context manager that holds a named lock."""

    def lock(self, key: str) -> ContextManager[None]: ...


class LocalLockProvider:
    """In-process lock registry keyed by name."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._guard:
            key_lock = self._locks.setdefault(key, threading.Lock())
        with key_lock:
            yield


class RedisLockProvider:
    """Distributed locks backed by redis-py's Lock."""

    KEY_PREFIX = "redwatch:lock:"

    def __init__(
        self,
        client: redis.Redis,
        timeout: int = 60,
        blocking_timeout: Optional[float] = None,
    ):
        """Initialize the provider.

        Args:
            client: redis-py client.
            timeout: Seconds after which a held lock expires on its own.
            blocking_timeout: Seconds to wait for the lock. Defaults to timeout.
        """
        self.client = client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout if blocking_timeout is not None else timeout

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisLockProvider":
        return cls(redis.Redis.from_url(url), **kwargs)

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the named lock for the duration of the block.

        Raises:
            TransientError: If Redis is unreachable or the lock could not be
                acquired within blocking_timeout.
        """
        name = f"{self.KEY_PREFIX}{key}"
        redis_lock = self.client.lock(
            name,
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = redis_lock.acquire()
        except RedisError as e:
            raise TransientError(f"Could not acquire lock {name}: {e}")
        if not acquired:
            raise TransientError(f"Timed out waiting for lock {name}")

        try:
            yield
        finally:
            try:
                redis_lock.release()
            except LockError:
                logger.warning(f"Lock {name} expired before it was released")


def build_lock_provider(backend: str, redis_url: str, timeout: int) -> LockProvider:
    """Create the lock provider named by the token_lock_backend setting."""
    if backend == "local":
        return LocalLockProvider()
    return RedisLockProvider.from_url(redis_url, timeout=timeout)
