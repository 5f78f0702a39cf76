"""AES-256-GCM encryption for API keys at rest.

Each call to ``encrypt`` uses a fresh 96-bit IV. The 128-bit auth tag is kept
separately from the ciphertext so records stay compatible with stores that
hold the three parts in their own columns.
"""

import base64
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from statickit.domain.keys import EncryptedData

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16
_KEY_HEX_LENGTH = 64
_PREFIX_LENGTH = 4


class KeyEncryptionError(RuntimeError):
    """Raised for a bad encryption key or undecryptable data."""


@dataclass(frozen=True)
class KeyCipher:
    """Encrypts and decrypts short secrets with a server-side key."""

    key: bytes

    @classmethod
    def from_hex(cls, key_hex: str | None) -> "KeyCipher":
        """Build a cipher from a 64 character hex string."""
        if not key_hex:
            raise KeyEncryptionError("ENCRYPTION_KEY environment variable is not set")
        if len(key_hex) != _KEY_HEX_LENGTH:
            raise KeyEncryptionError(
                "ENCRYPTION_KEY must be 64 hex characters (32 bytes)"
            )
        try:
            return cls(key=bytes.fromhex(key_hex))
        except ValueError as exc:
            raise KeyEncryptionError("ENCRYPTION_KEY is not valid hex") from exc

    def encrypt(self, plaintext: str) -> EncryptedData:
        iv = os.urandom(IV_LENGTH)
        sealed = AESGCM(self.key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return EncryptedData(
            encrypted=_b64(ciphertext),
            iv=_b64(iv),
            auth_tag=_b64(tag),
        )

    def decrypt(self, data: EncryptedData) -> str:
        """Return the plaintext; raises if the data was tampered with."""
        try:
            iv = base64.b64decode(data.iv)
            sealed = base64.b64decode(data.encrypted) + base64.b64decode(
                data.auth_tag
            )
            plaintext = AESGCM(self.key).decrypt(iv, sealed, None)
        except (InvalidTag, ValueError) as exc:
            raise KeyEncryptionError("Failed to decrypt API key") from exc
        return plaintext.decode("utf-8")


def get_key_prefix(api_key: str) -> str:
    """Return the first characters of a key, which identify the provider."""
    return api_key[:_PREFIX_LENGTH]


def get_masked_key(key_prefix: str) -> str:
    """Return a display form such as ``AIza********``."""
    return f"{key_prefix}{'*' * 8}"


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")
