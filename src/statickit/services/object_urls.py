"""In-process object URLs for image payloads."""

from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

OBJECT_URL_SCHEME = "blob:"


class ObjectUrls(Protocol):
    """Interface for minting and resolving local object URLs."""

    def create(self, data: bytes, mime_type: str) -> str:
        """Register a payload and return a URL that resolves to it."""

    def resolve(self, url: str) -> tuple[bytes, str] | None:
        """Return the payload and MIME type behind a URL, if registered."""

    def revoke(self, url: str) -> None:
        """Release a URL."""

    def revoke_all(self) -> None:
        """Release every URL."""


@dataclass
class ObjectUrlRegistry(ObjectUrls):
    """Object URL registry kept in memory for the lifetime of the process."""

    _entries: dict[str, tuple[bytes, str]]

    def __init__(self) -> None:
        self._entries = {}

    def create(self, data: bytes, mime_type: str) -> str:
        """Register a payload under a fresh ``blob:`` URL."""
        url = f"{OBJECT_URL_SCHEME}statickit/{uuid4()}"
        self._entries[url] = (data, mime_type)
        return url

    def resolve(self, url: str) -> tuple[bytes, str] | None:
        """Return the payload for a URL, or None once revoked."""
        return self._entries.get(url)

    def revoke(self, url: str) -> None:
        """Release a URL; unknown URLs are ignored."""
        self._entries.pop(url, None)

    def revoke_all(self) -> None:
        """Release every URL minted by this registry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
