"""HTTPX clients that probe Gemini and DashScope with a user's key."""

from dataclasses import dataclass

import httpx

from statickit.services.key_validation import KeyCheckClient


@dataclass
class GeminiKeyClient(KeyCheckClient):
    """Lists Gemini models, which needs a valid key but spends no tokens."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "GeminiKeyClient":
        """Create a Gemini client with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient())

    async def check_key(self, api_key: str) -> int:
        response = await self.http_client.get(
            f"{self.base_url}/models",
            params={"key": api_key, "pageSize": 1},
            timeout=15,
        )
        return response.status_code

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class DashScopeKeyClient(KeyCheckClient):
    """Lists DashScope models with the key as a bearer token."""

    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str) -> "DashScopeKeyClient":
        """Create a DashScope client with a managed httpx session."""
        return cls(base_url=base_url, http_client=httpx.AsyncClient())

    async def check_key(self, api_key: str) -> int:
        response = await self.http_client.get(
            f"{self.base_url}/models",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=15,
        )
        return response.status_code

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
