"""Local session store: the current session record plus its image blobs."""

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from statickit.domain.images import DEFAULT_MIME_TYPE, StoredImage
from statickit.domain.records import SessionRecord, referenced_image_ids
from statickit.services.object_urls import ObjectUrls


class SessionStore(Protocol):
    """Persistence interface for the session record and image blobs."""

    def put_session(self, record: SessionRecord) -> None:
        """Write the current session record, replacing any previous one."""

    def get_session(self) -> SessionRecord | None:
        """Return the current session record, if present."""

    def delete_session(self) -> None:
        """Delete the current session record."""

    def put_image(self, image: StoredImage) -> None:
        """Write an image blob."""

    def get_image(self, image_id: str) -> StoredImage | None:
        """Return an image blob by id, if present."""

    def has_image(self, image_id: str) -> bool:
        """Return True when an image with the id is stored."""

    def delete_image(self, image_id: str) -> None:
        """Delete an image blob; unknown ids are ignored."""

    def image_count(self) -> int:
        """Return the number of stored images."""

    def total_image_bytes(self) -> int:
        """Return the summed size of all stored image payloads."""

    def close(self) -> None:
        """Release the underlying database handle."""


class ImageFetcher(Protocol):
    """Interface for reading image bytes behind a URL."""

    async def fetch(self, url: str) -> tuple[bytes, str | None]:
        """Return the payload and its MIME type, when known."""


@dataclass
class SessionStorageService:
    """Store context used by the serializer, the restorer and the API."""

    store: SessionStore
    fetcher: ImageFetcher
    object_urls: ObjectUrls
    _url_images: dict[str, str] = field(default_factory=dict)

    def store_image(self, data: bytes, mime_type: str) -> str:
        """Persist an image payload and return its generated id."""
        image_id = str(uuid4())
        self.store.put_image(
            StoredImage(
                id=image_id,
                data=data,
                mime_type=mime_type,
                created_at=datetime.now(tz=UTC),
            )
        )
        return image_id

    async def store_image_from_url(self, url: str) -> str:
        """Fetch an image by URL and persist it."""
        data, mime_type = await self.fetcher.fetch(url)
        return self.store_image(data, mime_type or DEFAULT_MIME_TYPE)

    def get_image(self, image_id: str) -> StoredImage | None:
        return self.store.get_image(image_id)

    def get_image_url(self, image_id: str) -> str | None:
        """Return a fresh object URL for a stored image, or None if missing.

        The URL is revoked when the image is deleted.
        """
        stored = self.store.get_image(image_id)
        if stored is None:
            return None
        url = self.object_urls.create(stored.data, stored.mime_type)
        self._url_images[url] = image_id
        return url

    def image_id_for_url(self, url: str) -> str | None:
        """Return the image id an object URL was minted for, if any."""
        return self._url_images.get(url)

    def get_image_base64(self, image_id: str) -> tuple[str, str] | None:
        """Return a stored image as base64 along with its MIME type."""
        stored = self.store.get_image(image_id)
        if stored is None:
            return None
        return base64.b64encode(stored.data).decode("ascii"), stored.mime_type

    def has_image(self, image_id: str) -> bool:
        return self.store.has_image(image_id)

    def delete_image(self, image_id: str) -> None:
        """Delete an image and revoke the object URLs minted for it."""
        self.store.delete_image(image_id)
        minted = [u for u, i in self._url_images.items() if i == image_id]
        for url in minted:
            del self._url_images[url]
            self.object_urls.revoke(url)

    def release_object_urls(self) -> None:
        """Revoke every object URL, including ones minted for uploads."""
        self.object_urls.revoke_all()
        self._url_images.clear()

    def save_session(self, record: SessionRecord) -> None:
        self.store.put_session(record)

    def load_session(self) -> SessionRecord | None:
        return self.store.get_session()

    def has_session(self) -> bool:
        return self.store.get_session() is not None

    def clear_session(self) -> set[str]:
        """Delete the current session and every image it references.

        Returns the ids of the deleted images.
        """
        record = self.store.get_session()
        deleted: set[str] = set()
        if record is not None:
            deleted = referenced_image_ids(record)
            for image_id in deleted:
                self.delete_image(image_id)
        self.store.delete_session()
        return deleted

    def get_session_size(self) -> int:
        """Return the record's JSON length plus the size of all blobs."""
        total = 0
        record = self.store.get_session()
        if record is not None:
            total += len(record.model_dump_json())
        return total + self.store.total_image_bytes()
