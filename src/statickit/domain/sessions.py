"""Domain models for in-memory editing sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

ImageVersionStatus = Literal["processing", "completed", "error"]
ResizeStatus = Literal["idle", "resizing", "completed", "error"]
VariationStatus = Literal["idle", "generating", "completed", "error"]
ReferenceType = Literal["background", "model", "edit"]


class AdAnalysis(BaseModel):
    """Free-form description of the uploaded advertising image."""

    model_config = ConfigDict(extra="allow")

    product: str = ""
    brand_style: str = ""
    visual_elements: list[str] = []
    key_selling_points: list[str] = []
    target_audience: str = ""
    colors: list[str] = []
    mood: str = ""
    image_description: str | None = None
    background_description: str | None = None
    subject_description: str | None = None


class SelectedPresets(BaseModel):
    """Preset picks of the edit tool."""

    lighting: str | None = None
    style: str | None = None
    mood: str | None = None
    color: str | None = None
    era: str | None = None
    camera: str | None = None
    framing: str | None = None
    rotation: str | None = None
    enhance: str | None = None


class ModelBuilderSelections(BaseModel):
    """Selections of the model builder tool."""

    gender: str | None = None
    age_range: str | None = None
    ethnicity: str | None = None
    hair_color: str | None = None
    hair_type: str | None = None
    body_type: str | None = None
    expression: str | None = None
    vibe: str | None = None


@dataclass(frozen=True)
class UploadedImage:
    """The source image a session was started from.

    ``file`` holds the original upload and is always ``None`` once a session
    has been restored from the local store.
    """

    url: str
    filename: str
    width: int
    height: int
    aspect_ratio: str
    aspect_ratio_key: str
    file: bytes | None = None


@dataclass(frozen=True)
class ImageVersion:
    """One node in the edit history of a base version or variation."""

    image_url: str | None
    prompt: str | None
    parent_index: int = -1
    status: ImageVersionStatus = "completed"


@dataclass(frozen=True)
class ResizedVersion:
    """A rendition of an image for another ad format."""

    size: str
    image_url: str | None
    status: ResizeStatus = "idle"


@dataclass(frozen=True)
class BaseVersion:
    """Named edit branch off the uploaded image."""

    id: str
    name: str
    base_image_url: str | None
    source_label: str = ""
    versions: list[ImageVersion] = field(default_factory=list)
    current_version_index: int = 0
    resized_versions: list[ResizedVersion] = field(default_factory=list)

    @property
    def current_image_url(self) -> str | None:
        if 0 <= self.current_version_index < len(self.versions):
            return self.versions[self.current_version_index].image_url
        return None


@dataclass(frozen=True)
class Variation:
    """Generated variation of the active base version."""

    id: str
    title: str
    description: str
    image_url: str | None
    status: VariationStatus = "idle"
    is_editing: bool = False
    edit_prompt: str = ""
    is_editing_generated: bool = False
    resized_versions: list[ResizedVersion] = field(default_factory=list)
    versions: list[ImageVersion] = field(default_factory=list)
    current_version_index: int = 0
    is_regenerating: bool = False
    has_new_version: bool = False
    is_archived: bool = False


@dataclass(frozen=True)
class ReferenceImage:
    """User-supplied reference image for a generation tool."""

    id: str
    url: str | None
    base64: str
    mime_type: str
    name: str
    type: ReferenceType


@dataclass(frozen=True)
class SessionState:
    """Complete in-memory state of an editing session."""

    uploaded_image: UploadedImage | None
    analysis: AdAnalysis | None = None
    base_versions: list[BaseVersion] = field(default_factory=list)
    variations: list[Variation] = field(default_factory=list)
    active_base_id: str = ""
    selected_variation_id: str | None = None
    selected_tool: str | None = None
    selected_presets: SelectedPresets = field(default_factory=SelectedPresets)
    custom_prompt: str = ""
    additional_context: str = ""
    original_edit_prompt: str = ""
    background_custom_prompt: str = ""
    model_custom_prompt: str = ""
    keep_clothing: bool = False
    model_builder: ModelBuilderSelections = field(
        default_factory=ModelBuilderSelections
    )
    background_references: list[ReferenceImage] = field(default_factory=list)
    model_references: list[ReferenceImage] = field(default_factory=list)
    edit_references: list[ReferenceImage] = field(default_factory=list)
    selected_ai_model: str = "gemini"
    gemini_quality: str = "medium"
    openai_quality: str = "medium"
    weirdness_level: int = 0

    def active_base(self) -> BaseVersion | None:
        """Return the active base version, if any."""
        for base in self.base_versions:
            if base.id == self.active_base_id:
                return base
        return None

    def preview_image_url(self) -> str | None:
        """Return the URL shown as the session preview."""
        base = self.active_base()
        if base is not None and base.current_image_url:
            return base.current_image_url
        if self.uploaded_image is None:
            return None
        return self.uploaded_image.url


@dataclass(frozen=True)
class ExistingSession:
    """Summary of the saved session shown in the resume prompt."""

    exists: bool
    thumbnail_url: str | None
    saved_at: datetime | None
    size: int
