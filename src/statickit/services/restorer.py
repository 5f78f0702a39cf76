"""Rebuilding in-memory session state from a stored record."""

from dataclasses import dataclass

from statickit.domain.records import (
    SerializedImageVersion,
    SerializedReferenceImage,
    SerializedResizedVersion,
    SessionRecord,
)
from statickit.domain.sessions import (
    BaseVersion,
    ImageVersion,
    ReferenceImage,
    ResizedVersion,
    SessionState,
    UploadedImage,
    Variation,
)
from statickit.services.storage import SessionStorageService

DEFAULT_QUALITY = "medium"


@dataclass
class SessionRestorer:
    """Resolves stored image ids back to object URLs.

    Work that was in flight when the session was saved cannot be resumed, so
    its status is reset: generating variations become idle, pending resizes
    become idle and processing image versions become errors.
    """

    storage: SessionStorageService

    def restore(self, record: SessionRecord) -> SessionState | None:
        """Return the restored state, or None if the upload is gone."""
        uploaded_url = self._url(record.uploaded_image.image_id)
        if uploaded_url is None:
            return None
        uploaded = record.uploaded_image

        return SessionState(
            uploaded_image=UploadedImage(
                url=uploaded_url,
                filename=uploaded.filename,
                width=uploaded.width,
                height=uploaded.height,
                aspect_ratio=uploaded.aspect_ratio,
                aspect_ratio_key=uploaded.aspect_ratio_key,
                file=None,
            ),
            analysis=record.analysis,
            base_versions=[
                BaseVersion(
                    id=base.id,
                    name=base.name,
                    base_image_url=self._url(base.base_image_id),
                    source_label=base.source_label,
                    versions=[self._image_version(v) for v in base.versions],
                    current_version_index=base.current_version_index,
                    resized_versions=[
                        self._resized_version(r) for r in base.resized_versions
                    ],
                )
                for base in record.base_versions
            ],
            variations=[
                Variation(
                    id=v.id,
                    title=v.title,
                    description=v.description,
                    image_url=self._url(v.image_id),
                    status="idle" if v.status == "generating" else v.status,
                    is_editing=v.is_editing,
                    edit_prompt=v.edit_prompt,
                    is_editing_generated=v.is_editing_generated,
                    resized_versions=[
                        self._resized_version(r) for r in v.resized_versions
                    ],
                    versions=[self._image_version(iv) for iv in v.versions],
                    current_version_index=v.current_version_index,
                    is_regenerating=False,
                    has_new_version=v.has_new_version,
                    is_archived=v.is_archived,
                )
                for v in record.variations
            ],
            active_base_id=record.active_base_id,
            selected_variation_id=record.selected_variation_id,
            selected_tool=record.selected_tool,
            selected_presets=record.selected_presets,
            custom_prompt=record.custom_prompt,
            additional_context=record.additional_context,
            original_edit_prompt=record.original_edit_prompt,
            background_custom_prompt=record.background_custom_prompt,
            model_custom_prompt=record.model_custom_prompt,
            keep_clothing=record.keep_clothing,
            model_builder=record.model_builder,
            background_references=[
                self._reference(r) for r in record.background_references
            ],
            model_references=[self._reference(r) for r in record.model_references],
            edit_references=[self._reference(r) for r in record.edit_references],
            selected_ai_model=record.selected_ai_model,
            gemini_quality=record.gemini_quality or DEFAULT_QUALITY,
            openai_quality=record.openai_quality or DEFAULT_QUALITY,
            weirdness_level=record.weirdness_level,
        )

    def _url(self, image_id: str | None) -> str | None:
        if not image_id:
            return None
        return self.storage.get_image_url(image_id)

    def _image_version(self, version: SerializedImageVersion) -> ImageVersion:
        return ImageVersion(
            image_url=self._url(version.image_id),
            prompt=version.prompt,
            parent_index=version.parent_index,
            status="error" if version.status == "processing" else version.status,
        )

    def _resized_version(self, version: SerializedResizedVersion) -> ResizedVersion:
        return ResizedVersion(
            size=version.size,
            image_url=self._url(version.image_id),
            status="idle" if version.status == "resizing" else version.status,
        )

    def _reference(self, ref: SerializedReferenceImage) -> ReferenceImage:
        encoded = self.storage.get_image_base64(ref.image_id) if ref.image_id else None
        url = self._url(ref.image_id) if encoded else None
        return ReferenceImage(
            id=ref.id,
            url=url,
            base64=encoded[0] if encoded else "",
            mime_type=ref.mime_type,
            name=ref.name,
            type=ref.type,
        )
