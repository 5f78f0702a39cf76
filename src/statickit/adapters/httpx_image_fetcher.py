"""Image fetcher for data, object and HTTP URLs."""

import base64
import binascii
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

import httpx

from statickit.domain.images import ImageFetchError
from statickit.services.object_urls import OBJECT_URL_SCHEME, ObjectUrls
from statickit.services.storage import ImageFetcher


@dataclass
class HttpxImageFetcher(ImageFetcher):
    """Reads image bytes from ``data:``, ``blob:`` and ``http(s):`` URLs."""

    object_urls: ObjectUrls
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, object_urls: ObjectUrls) -> "HttpxImageFetcher":
        """Create a fetcher with a managed httpx session."""
        return cls(object_urls=object_urls, http_client=httpx.AsyncClient())

    async def fetch(self, url: str) -> tuple[bytes, str | None]:
        """Return the bytes and MIME type behind ``url``."""
        if url.startswith("data:"):
            return _decode_data_url(url)
        if url.startswith(OBJECT_URL_SCHEME):
            resolved = self.object_urls.resolve(url)
            if resolved is None:
                raise ImageFetchError(f"Object URL is not registered: {url}")
            return resolved
        if url.startswith(("http://", "https://")):
            try:
                response = await self.http_client.get(url, timeout=30)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ImageFetchError(f"Failed to download image: {url}") from exc
            content_type = response.headers.get("content-type")
            mime_type = content_type.split(";")[0].strip() if content_type else None
            return response.content, mime_type or None
        raise ImageFetchError(f"Unsupported image URL: {url[:32]}")

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _decode_data_url(url: str) -> tuple[bytes, str | None]:
    """Decode an RFC 2397 data URL."""
    header, sep, payload = url[len("data:") :].partition(",")
    if not sep:
        raise ImageFetchError("Malformed data URL")
    params = header.split(";")
    mime_type = params[0] or None
    if "base64" in params[1:]:
        try:
            return base64.b64decode(payload, validate=True), mime_type
        except (binascii.Error, ValueError) as exc:
            raise ImageFetchError("Malformed base64 data URL") from exc
    return unquote_to_bytes(payload), mime_type
