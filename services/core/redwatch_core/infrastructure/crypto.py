"""Encryption utilities for OAuth token storage.

Tokens are stored with Fernet (AES-128-CBC with HMAC for authenticity).
Several keys may be configured at once so the key can be rotated without
re-encrypting every row up front:

    crypto = CryptoService("new-key,old-key")

    crypto.encrypt("secret")      # always uses new-key
    crypto.decrypt(old_token)     # tries new-key, then old-key
    crypto.rotate(old_token)      # re-encrypts under new-key
"""

from typing import Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet


class InvalidKeyError(Exception):
    """Raised when an invalid encryption key is provided."""

    pass


class DecryptionError(Exception):
    """Raised when a stored secret cannot be decrypted."""

    pass


class CryptoService:
    """Encrypts and decrypts secrets at rest.

    Decryption happens only at point of use. Callers decide how a
    DecryptionError maps onto their own failure semantics.
    """

    def __init__(self, keys: str):
        """Initialize with one or more Fernet keys.

        Args:
            keys: A Fernet key, or several separated by commas. The first
                key is the primary (encrypting) key.

        Raises:
            InvalidKeyError: If no key is given or any key is malformed.
        """
        raw_keys = [k.strip() for k in (keys or "").split(",") if k.strip()]
        if not raw_keys:
            raise InvalidKeyError("Encryption key cannot be empty")

        fernets = []
        for raw in raw_keys:
            try:
                fernets.append(Fernet(raw.encode()))
            except (ValueError, TypeError) as e:
                raise InvalidKeyError(f"Invalid encryption key: {e}")

        self._fernet = MultiFernet(fernets)
        self.key_count = len(fernets)

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key."""
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string with the primary key."""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a value that may legitimately be absent."""
        if plaintext is None:
            return None
        return self.encrypt(plaintext)

    def decrypt(self, ciphertext: Optional[str]) -> str:
        """Decrypt a stored secret.

        Raises:
            DecryptionError: If the ciphertext is missing, tampered with, or
                was encrypted under a key that is no longer configured.
        """
        if not ciphertext:
            raise DecryptionError("No ciphertext to decrypt")
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise DecryptionError(f"Failed to decrypt: {e!r}")
        except Exception as e:
            raise DecryptionError(f"Decryption error: {e}")

    def rotate(self, ciphertext: str) -> str:
        """Re-encrypt a secret under the primary key."""
        try:
            return self._fernet.rotate(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise DecryptionError(f"Failed to rotate: {e!r}")
