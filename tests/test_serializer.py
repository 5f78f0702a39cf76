"""Tests for session serialization and restoration."""

import asyncio

import pytest

from statickit.domain.images import ImageFetchError
from statickit.domain.sessions import (
    BaseVersion,
    ImageVersion,
    ReferenceImage,
    ResizedVersion,
    SessionState,
    UploadedImage,
    Variation,
)
from statickit.services.restorer import SessionRestorer
from statickit.services.serializer import SessionSerializer
from statickit.services.thumbnails import THUMBNAIL_MIME_TYPE
from tests.conftest import build_storage, make_png


def _state(object_urls) -> SessionState:  # type: ignore[no-untyped-def]
    upload_url = object_urls.create(make_png("red", (400, 400)), "image/png")
    edited_url = object_urls.create(make_png("green"), "image/png")
    variation_url = object_urls.create(make_png("blue"), "image/png")
    return SessionState(
        uploaded_image=UploadedImage(
            url=upload_url,
            filename="ad.png",
            width=400,
            height=400,
            aspect_ratio="1:1 (Feed)",
            aspect_ratio_key="1:1",
            file=b"original",
        ),
        base_versions=[
            BaseVersion(
                id="base-1",
                name="Original",
                base_image_url=upload_url,
                versions=[
                    ImageVersion(image_url=upload_url, prompt=None),
                    ImageVersion(
                        image_url=edited_url,
                        prompt="warmer light",
                        parent_index=0,
                        status="processing",
                    ),
                ],
                current_version_index=1,
                resized_versions=[
                    ResizedVersion(size="9:16", image_url=None, status="resizing")
                ],
            )
        ],
        variations=[
            Variation(
                id="var-1",
                title="Beach",
                description="Product on a beach",
                image_url=variation_url,
                status="generating",
                is_regenerating=True,
            )
        ],
        active_base_id="base-1",
        edit_references=[
            ReferenceImage(
                id="ref-1",
                url=None,
                base64="cmVm",
                mime_type="image/png",
                name="ref.png",
                type="edit",
            )
        ],
        custom_prompt="summer sale",
        gemini_quality="high",
    )


def test_serialize_stores_each_url_once() -> None:
    storage, object_urls = build_storage()
    serializer = SessionSerializer(storage)
    state = _state(object_urls)

    serialized = asyncio.run(serializer.serialize(state))

    assert serialized is not None
    record = serialized.record
    base = record.base_versions[0]
    assert base.base_image_id == record.uploaded_image.image_id
    assert base.versions[0].image_id == record.uploaded_image.image_id
    assert base.resized_versions[0].image_id is None
    # upload, edit, variation, reference and thumbnail
    assert len(serialized.stored_image_ids) == 5
    assert storage.store.image_count() == 5
    assert record.thumbnail_id is not None
    thumbnail = storage.get_image(record.thumbnail_id)
    assert thumbnail is not None
    assert thumbnail.mime_type == THUMBNAIL_MIME_TYPE


def test_serialize_reuses_cached_ids() -> None:
    storage, object_urls = build_storage()
    serializer = SessionSerializer(storage)
    state = _state(object_urls)

    first = asyncio.run(serializer.serialize(state))
    second = asyncio.run(serializer.serialize(state))

    assert first is not None
    assert second is not None
    assert second.stored_image_ids == []
    assert second.record.thumbnail_id == first.record.thumbnail_id
    assert second.record.id != first.record.id
    assert storage.store.image_count() == 5


def test_serialize_without_upload_returns_none() -> None:
    storage, _ = build_storage()

    assert asyncio.run(SessionSerializer(storage).serialize(
        SessionState(uploaded_image=None)
    )) is None


def test_serialize_fails_when_upload_unreadable() -> None:
    storage, _ = build_storage()
    state = SessionState(
        uploaded_image=UploadedImage(
            url="blob:statickit/missing",
            filename="ad.png",
            width=1,
            height=1,
            aspect_ratio="1:1 (Feed)",
            aspect_ratio_key="1:1",
        )
    )

    with pytest.raises(ImageFetchError):
        asyncio.run(SessionSerializer(storage).serialize(state))


def test_unreadable_variation_image_becomes_none() -> None:
    storage, object_urls = build_storage()
    state = _state(object_urls)
    object_urls.revoke(state.variations[0].image_url or "")

    serialized = asyncio.run(SessionSerializer(storage).serialize(state))

    assert serialized is not None
    assert serialized.record.variations[0].image_id is None


def test_restore_resolves_ids_and_resets_in_flight_work() -> None:
    storage, object_urls = build_storage()
    state = _state(object_urls)
    serialized = asyncio.run(SessionSerializer(storage).serialize(state))
    assert serialized is not None

    restored = SessionRestorer(storage).restore(serialized.record)

    assert restored is not None
    assert restored.uploaded_image is not None
    assert restored.uploaded_image.file is None
    assert restored.uploaded_image.url.startswith("blob:")
    assert object_urls.resolve(restored.uploaded_image.url) is not None
    base = restored.base_versions[0]
    assert base.versions[1].status == "error"
    assert base.versions[1].image_url is not None
    assert base.resized_versions[0].status == "idle"
    variation = restored.variations[0]
    assert variation.status == "idle"
    assert variation.is_regenerating is False
    assert variation.image_url is not None
    reference = restored.edit_references[0]
    assert reference.base64 == "cmVm"
    assert reference.url is not None
    assert restored.custom_prompt == "summer sale"
    assert restored.gemini_quality == "high"
    assert restored.openai_quality == "medium"


def test_restore_without_upload_image_returns_none() -> None:
    storage, object_urls = build_storage()
    serialized = asyncio.run(SessionSerializer(storage).serialize(_state(object_urls)))
    assert serialized is not None
    storage.delete_image(serialized.record.uploaded_image.image_id)

    assert SessionRestorer(storage).restore(serialized.record) is None


def test_restore_degrades_missing_reference() -> None:
    storage, object_urls = build_storage()
    serialized = asyncio.run(SessionSerializer(storage).serialize(_state(object_urls)))
    assert serialized is not None
    ref_id = serialized.record.edit_references[0].image_id
    assert ref_id is not None
    storage.delete_image(ref_id)

    restored = SessionRestorer(storage).restore(serialized.record)

    assert restored is not None
    assert restored.edit_references[0].url is None
    assert restored.edit_references[0].base64 == ""
