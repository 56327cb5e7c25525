"""Infrastructure components for Redwatch.

This package contains infrastructure-level components like:
- Encryption of secrets at rest
- Per-key locks for token refreshes
"""

from redwatch_core.infrastructure.crypto import (
    CryptoService,
    DecryptionError,
    InvalidKeyError,
)
from redwatch_core.infrastructure.locks import (
    LocalLockProvider,
    LockProvider,
    RedisLockProvider,
    build_lock_provider,
)

__all__ = [
    "CryptoService",
    "DecryptionError",
    "InvalidKeyError",
    "LocalLockProvider",
    "LockProvider",
    "RedisLockProvider",
    "build_lock_provider",
]
