"""Checks that a user-supplied API key is accepted by its provider."""

import logging
from dataclasses import dataclass
from typing import Protocol

from statickit.domain.keys import KeyValidationResult, Provider

_logger = logging.getLogger(__name__)

_MIN_DASHSCOPE_KEY_LENGTH = 20

_FORMAT_ERRORS: dict[Provider, str] = {
    "gemini": 'Invalid API key format. Google API keys start with "AIza"',
    "openai": 'Invalid API key format. OpenAI API keys start with "sk-"',
    "dashscope": (
        "Invalid API key format. Please check your Alibaba Cloud API key."
    ),
}

_INVALID_KEY = "Invalid API key. Please check your key and try again."
_RATE_LIMITED = "API key quota or rate limit exceeded. Please try again later."
_UNKNOWN_FAILURE = "Failed to validate API key. Please try again."


class KeyCheckClient(Protocol):
    """Interface for a cheap authenticated call against a provider."""

    async def check_key(self, api_key: str) -> int:
        """Return the HTTP status code the provider answered with."""


@dataclass
class KeyValidationService:
    """Validates key format locally, then with one provider call."""

    clients: dict[Provider, KeyCheckClient]

    async def validate(self, provider: Provider, api_key: str) -> KeyValidationResult:
        """Return whether ``api_key`` works for ``provider``."""
        if not api_key:
            return KeyValidationResult(valid=False, error="API key is required")
        if not _has_valid_format(provider, api_key):
            return KeyValidationResult(valid=False, error=_FORMAT_ERRORS[provider])

        try:
            status_code = await self.clients[provider].check_key(api_key)
        except Exception:
            _logger.exception("API key validation failed: provider=%s", provider)
            return KeyValidationResult(valid=False, error=_UNKNOWN_FAILURE)

        if 200 <= status_code < 300:  # noqa: PLR2004
            return KeyValidationResult(valid=True)
        _logger.warning(
            "API key rejected: provider=%s status=%s", provider, status_code
        )
        if status_code in {400, 401, 403}:
            return KeyValidationResult(valid=False, error=_INVALID_KEY)
        if status_code == 429:  # noqa: PLR2004
            return KeyValidationResult(valid=False, error=_RATE_LIMITED)
        return KeyValidationResult(valid=False, error=_UNKNOWN_FAILURE)


def _has_valid_format(provider: Provider, api_key: str) -> bool:
    if provider == "gemini":
        return api_key.startswith("AIza")
    if provider == "openai":
        return api_key.startswith("sk-")
    return len(api_key) >= _MIN_DASHSCOPE_KEY_LENGTH
