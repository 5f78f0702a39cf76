"""Domain models for user-supplied provider API keys."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Provider = Literal["gemini", "openai", "dashscope"]

PROVIDERS: tuple[Provider, ...] = ("gemini", "openai", "dashscope")


@dataclass(frozen=True)
class EncryptedData:
    """AES-GCM ciphertext with its IV and auth tag, all base64 encoded."""

    encrypted: str
    iv: str
    auth_tag: str


@dataclass(frozen=True)
class StoredKeySummary:
    """Masked view of a stored key that is safe to return to clients."""

    id: str
    provider: Provider
    key_prefix: str
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class KeyValidationResult:
    """Outcome of checking an API key against its provider."""

    valid: bool
    error: str | None = None
