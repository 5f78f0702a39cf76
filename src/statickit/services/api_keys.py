"""Storage of user-supplied provider API keys."""

import logging
from dataclasses import dataclass
from typing import Protocol

from statickit.domain.keys import EncryptedData, Provider, StoredKeySummary
from statickit.services.encryption import KeyCipher, get_key_prefix

_logger = logging.getLogger(__name__)


class ApiKeyRepository(Protocol):
    """Persistence interface for encrypted API keys."""

    def store_key(
        self,
        user_id: str,
        provider: Provider,
        data: EncryptedData,
        key_prefix: str,
    ) -> str:
        """Insert or update the key for a user and provider; return its id."""

    def remove_key(self, user_id: str, provider: Provider) -> bool:
        """Delete the key; return True if one existed."""

    def list_keys(self, user_id: str) -> list[StoredKeySummary]:
        """Return masked summaries of every key a user stored."""

    def get_encrypted_key(
        self, user_id: str, provider: Provider
    ) -> EncryptedData | None:
        """Return the encrypted key material, if present."""


@dataclass
class ApiKeyService:
    """Encrypts keys before they reach the repository."""

    repository: ApiKeyRepository
    cipher: KeyCipher

    def store_key(self, user_id: str, provider: Provider, api_key: str) -> str:
        """Encrypt and store a key; return its display prefix."""
        key_prefix = get_key_prefix(api_key)
        self.repository.store_key(
            user_id=user_id,
            provider=provider,
            data=self.cipher.encrypt(api_key),
            key_prefix=key_prefix,
        )
        _logger.info("Stored %s API key for user=%s", provider, user_id)
        return key_prefix

    def get_key(self, user_id: str, provider: Provider) -> str | None:
        """Return the decrypted key, or None if the user has none."""
        data = self.repository.get_encrypted_key(user_id, provider)
        if data is None:
            return None
        return self.cipher.decrypt(data)

    def remove_key(self, user_id: str, provider: Provider) -> bool:
        return self.repository.remove_key(user_id, provider)

    def list_keys(self, user_id: str) -> list[StoredKeySummary]:
        return self.repository.list_keys(user_id)

    def has_key(self, user_id: str, provider: Provider) -> bool:
        return self.repository.get_encrypted_key(user_id, provider) is not None

    def has_any_key(self, user_id: str) -> bool:
        return bool(self.repository.list_keys(user_id))
