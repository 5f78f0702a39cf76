"""Conversion of in-memory session state into a storable record."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from PIL import UnidentifiedImageError

from statickit.domain.images import ImageFetchError
from statickit.domain.records import (
    SerializedBaseVersion,
    SerializedImageVersion,
    SerializedReferenceImage,
    SerializedResizedVersion,
    SerializedUploadedImage,
    SerializedVariation,
    SessionRecord,
)
from statickit.domain.sessions import (
    BaseVersion,
    ImageVersion,
    ReferenceImage,
    ResizedVersion,
    SessionState,
    Variation,
)
from statickit.services.storage import SessionStorageService
from statickit.services.thumbnails import THUMBNAIL_MIME_TYPE, generate_thumbnail

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerializedSession:
    """A serialized record plus the image ids first stored while building it."""

    record: SessionRecord
    stored_image_ids: list[str]


@dataclass
class SessionSerializer:
    """Walks session state, storing each distinct image URL exactly once.

    The URL to image id cache outlives a single pass so that unchanged images
    are not stored again on the next save.
    """

    storage: SessionStorageService
    thumbnail_max_size: int = 200
    _url_cache: dict[str, str] = field(default_factory=dict)
    _thumbnail_cache: dict[str, str] = field(default_factory=dict)
    _pass_ids: list[str] = field(default_factory=list)

    async def serialize(self, state: SessionState) -> SerializedSession | None:
        """Build a record for ``state``; None when nothing was uploaded yet."""
        uploaded = state.uploaded_image
        if uploaded is None:
            return None
        self._pass_ids = []

        thumbnail_id = await self._thumbnail_id(state.preview_image_url())
        uploaded_image_id = await self._image_id(uploaded.url)
        if uploaded_image_id is None:
            raise ImageFetchError("Uploaded image could not be stored")

        base_versions = [await self._base_version(b) for b in state.base_versions]
        variations = [await self._variation(v) for v in state.variations]
        background_refs = [
            await self._reference(r) for r in state.background_references
        ]
        model_refs = [await self._reference(r) for r in state.model_references]
        edit_refs = [await self._reference(r) for r in state.edit_references]

        record = SessionRecord(
            id=str(uuid4()),
            saved_at=datetime.now(tz=UTC),
            thumbnail_id=thumbnail_id,
            uploaded_image=SerializedUploadedImage(
                image_id=uploaded_image_id,
                filename=uploaded.filename,
                width=uploaded.width,
                height=uploaded.height,
                aspect_ratio=uploaded.aspect_ratio,
                aspect_ratio_key=uploaded.aspect_ratio_key,
            ),
            analysis=state.analysis,
            base_versions=base_versions,
            variations=variations,
            active_base_id=state.active_base_id,
            selected_variation_id=state.selected_variation_id,
            selected_tool=state.selected_tool,
            selected_presets=state.selected_presets,
            custom_prompt=state.custom_prompt,
            additional_context=state.additional_context,
            original_edit_prompt=state.original_edit_prompt,
            background_custom_prompt=state.background_custom_prompt,
            model_custom_prompt=state.model_custom_prompt,
            keep_clothing=state.keep_clothing,
            model_builder=state.model_builder,
            background_references=background_refs,
            model_references=model_refs,
            edit_references=edit_refs,
            selected_ai_model=state.selected_ai_model,
            gemini_quality=state.gemini_quality,
            openai_quality=state.openai_quality,
            weirdness_level=state.weirdness_level,
        )
        stored, self._pass_ids = self._pass_ids, []
        return SerializedSession(record=record, stored_image_ids=stored)

    def forget(self, image_ids: Iterable[str]) -> None:
        """Drop cache entries that point at deleted images."""
        dropped = set(image_ids)
        if not dropped:
            return
        for cache in (self._url_cache, self._thumbnail_cache):
            for url in [u for u, image_id in cache.items() if image_id in dropped]:
                del cache[url]

    def reset(self) -> None:
        """Forget every cached URL."""
        self._url_cache.clear()
        self._thumbnail_cache.clear()
        self._pass_ids = []

    def abandon_pass(self) -> list[str]:
        """Return and forget the ids stored by an interrupted pass."""
        stored, self._pass_ids = self._pass_ids, []
        self.forget(stored)
        return stored

    async def _image_id(self, url: str | None) -> str | None:
        if not url:
            return None
        cached = self._url_cache.get(url) or self.storage.image_id_for_url(url)
        if cached and self.storage.has_image(cached):
            self._url_cache[url] = cached
            return cached
        try:
            image_id = await self.storage.store_image_from_url(url)
        except ImageFetchError:
            _logger.exception("Failed to serialize image")
            return None
        self._url_cache[url] = image_id
        self._pass_ids.append(image_id)
        return image_id

    async def _thumbnail_id(self, source_url: str | None) -> str | None:
        if not source_url:
            return None
        cached = self._thumbnail_cache.get(source_url)
        if cached and self.storage.has_image(cached):
            return cached
        try:
            data, _ = await self.storage.fetcher.fetch(source_url)
            thumbnail = generate_thumbnail(data, self.thumbnail_max_size)
        except (ImageFetchError, UnidentifiedImageError, OSError):
            _logger.warning("Could not generate session thumbnail", exc_info=True)
            return None
        thumbnail_id = self.storage.store_image(thumbnail, THUMBNAIL_MIME_TYPE)
        self._thumbnail_cache[source_url] = thumbnail_id
        self._pass_ids.append(thumbnail_id)
        return thumbnail_id

    async def _image_version(self, version: ImageVersion) -> SerializedImageVersion:
        return SerializedImageVersion(
            image_id=await self._image_id(version.image_url),
            prompt=version.prompt,
            parent_index=version.parent_index,
            status=version.status,
        )

    async def _resized_version(
        self, version: ResizedVersion
    ) -> SerializedResizedVersion:
        return SerializedResizedVersion(
            size=version.size,
            image_id=await self._image_id(version.image_url),
            status=version.status,
        )

    async def _base_version(self, base: BaseVersion) -> SerializedBaseVersion:
        return SerializedBaseVersion(
            id=base.id,
            name=base.name,
            base_image_id=await self._image_id(base.base_image_url),
            source_label=base.source_label,
            versions=[await self._image_version(v) for v in base.versions],
            current_version_index=base.current_version_index,
            resized_versions=[
                await self._resized_version(r) for r in base.resized_versions
            ],
        )

    async def _variation(self, variation: Variation) -> SerializedVariation:
        return SerializedVariation(
            id=variation.id,
            title=variation.title,
            description=variation.description,
            image_id=await self._image_id(variation.image_url),
            status=variation.status,
            is_editing=variation.is_editing,
            edit_prompt=variation.edit_prompt,
            is_editing_generated=variation.is_editing_generated,
            resized_versions=[
                await self._resized_version(r) for r in variation.resized_versions
            ],
            versions=[await self._image_version(v) for v in variation.versions],
            current_version_index=variation.current_version_index,
            is_regenerating=variation.is_regenerating,
            has_new_version=variation.has_new_version,
            is_archived=variation.is_archived,
        )

    async def _reference(self, ref: ReferenceImage) -> SerializedReferenceImage:
        source = ref.url
        if not source and ref.base64:
            source = f"data:{ref.mime_type};base64,{ref.base64}"
        return SerializedReferenceImage(
            id=ref.id,
            image_id=await self._image_id(source),
            mime_type=ref.mime_type,
            name=ref.name,
            type=ref.type,
        )
