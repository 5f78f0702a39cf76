"""OpenAI SDK client for API key validation."""

from collections.abc import Callable
from dataclasses import dataclass

from openai import APIStatusError, AsyncOpenAI

from statickit.services.key_validation import KeyCheckClient


@dataclass
class OpenAIKeyClient(KeyCheckClient):
    """Validates a key by listing models, the cheapest authenticated call."""

    client_factory: Callable[[str], AsyncOpenAI]

    @classmethod
    def create(cls) -> "OpenAIKeyClient":
        """Create a client that builds an SDK instance per checked key."""
        return cls(client_factory=lambda api_key: AsyncOpenAI(api_key=api_key))

    async def check_key(self, api_key: str) -> int:
        """Return 200 when the key works, else the status OpenAI returned."""
        client = self.client_factory(api_key)
        try:
            await client.models.list()
        except APIStatusError as exc:
            return exc.status_code
        finally:
            await client.close()
        return 200
