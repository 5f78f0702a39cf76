"""Serialized session records as written to the local store.

Every image field holds the id of a ``StoredImage`` instead of a URL.
"""

from datetime import datetime

from pydantic import BaseModel

from statickit.domain.sessions import (
    AdAnalysis,
    ImageVersionStatus,
    ModelBuilderSelections,
    ReferenceType,
    ResizeStatus,
    SelectedPresets,
    VariationStatus,
)

CURRENT_SESSION_KEY = "current"


class SerializedImageVersion(BaseModel):
    image_id: str | None
    prompt: str | None
    parent_index: int
    status: ImageVersionStatus


class SerializedResizedVersion(BaseModel):
    size: str
    image_id: str | None
    status: ResizeStatus


class SerializedBaseVersion(BaseModel):
    id: str
    name: str
    base_image_id: str | None
    source_label: str
    versions: list[SerializedImageVersion]
    current_version_index: int
    resized_versions: list[SerializedResizedVersion]


class SerializedVariation(BaseModel):
    id: str
    title: str
    description: str
    image_id: str | None
    status: VariationStatus
    is_editing: bool
    edit_prompt: str
    is_editing_generated: bool
    resized_versions: list[SerializedResizedVersion]
    versions: list[SerializedImageVersion]
    current_version_index: int
    is_regenerating: bool
    has_new_version: bool
    is_archived: bool


class SerializedReferenceImage(BaseModel):
    id: str
    image_id: str | None
    mime_type: str
    name: str
    type: ReferenceType


class SerializedUploadedImage(BaseModel):
    image_id: str
    filename: str
    width: int
    height: int
    aspect_ratio: str
    aspect_ratio_key: str


class SessionRecord(BaseModel):
    """The singleton record describing the current session."""

    id: str
    saved_at: datetime
    thumbnail_id: str | None
    uploaded_image: SerializedUploadedImage
    analysis: AdAnalysis | None = None
    base_versions: list[SerializedBaseVersion] = []
    variations: list[SerializedVariation] = []
    active_base_id: str = ""
    selected_variation_id: str | None = None
    selected_tool: str | None = None
    selected_presets: SelectedPresets = SelectedPresets()
    custom_prompt: str = ""
    additional_context: str = ""
    original_edit_prompt: str = ""
    background_custom_prompt: str = ""
    model_custom_prompt: str = ""
    keep_clothing: bool = False
    model_builder: ModelBuilderSelections = ModelBuilderSelections()
    background_references: list[SerializedReferenceImage] = []
    model_references: list[SerializedReferenceImage] = []
    edit_references: list[SerializedReferenceImage] = []
    selected_ai_model: str = "gemini"
    gemini_quality: str | None = None
    openai_quality: str | None = None
    weirdness_level: int = 0


def referenced_image_ids(record: SessionRecord) -> set[str]:
    """Collect every stored image id a session record points at."""
    ids: set[str] = set()
    if record.thumbnail_id:
        ids.add(record.thumbnail_id)
    if record.uploaded_image.image_id:
        ids.add(record.uploaded_image.image_id)

    for base in record.base_versions:
        if base.base_image_id:
            ids.add(base.base_image_id)
        ids.update(v.image_id for v in base.versions if v.image_id)
        ids.update(r.image_id for r in base.resized_versions if r.image_id)

    for variation in record.variations:
        if variation.image_id:
            ids.add(variation.image_id)
        ids.update(v.image_id for v in variation.versions if v.image_id)
        ids.update(r.image_id for r in variation.resized_versions if r.image_id)

    for ref in (
        *record.background_references,
        *record.model_references,
        *record.edit_references,
    ):
        if ref.image_id:
            ids.add(ref.image_id)
    return ids
