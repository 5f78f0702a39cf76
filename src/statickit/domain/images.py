"""Domain models for locally stored images."""

from dataclasses import dataclass
from datetime import datetime

DEFAULT_MIME_TYPE = "image/png"

ASPECT_RATIOS: dict[str, tuple[float, str]] = {
    "1:1": (1.0, "Feed"),
    "4:5": (0.8, "Feed"),
    "9:16": (0.5625, "Story/Reels"),
    "16:9": (1.778, "Display"),
    "1.91:1": (1.91, "Link Ads"),
}

_ASPECT_RATIO_TOLERANCE = 0.05


class StorageQuotaExceededError(RuntimeError):
    """Raised when a write would exceed the local storage quota."""


class ImageFetchError(RuntimeError):
    """Raised when an image URL cannot be read."""


@dataclass(frozen=True)
class StoredImage:
    """Binary image payload persisted in the local store."""

    id: str
    data: bytes
    mime_type: str
    created_at: datetime

    @property
    def size(self) -> int:
        """Return the payload size in bytes."""
        return len(self.data)


def detect_aspect_ratio(width: int, height: int) -> tuple[str, str]:
    """Match image dimensions to a known ad format."""
    if width <= 0 or height <= 0:
        return "custom", f"Custom ({width}x{height})"
    ratio = width / height
    for key, (decimal, platform) in ASPECT_RATIOS.items():
        if abs(ratio - decimal) < _ASPECT_RATIO_TOLERANCE:
            return key, f"{key} ({platform})"
    return "custom", f"Custom ({width}x{height})"
