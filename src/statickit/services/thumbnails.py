"""Preview thumbnails for the resume-session prompt."""

import io

from PIL import Image

THUMBNAIL_MIME_TYPE = "image/jpeg"
THUMBNAIL_QUALITY = 70


def generate_thumbnail(image_bytes: bytes, max_size: int = 200) -> bytes:
    """Downscale an image so its longest edge is at most ``max_size``.

    Images already smaller than the bound keep their dimensions. The result is
    always JPEG encoded.
    """
    with Image.open(io.BytesIO(image_bytes)) as image:
        image.load()
        thumb = image.convert("RGB")
    thumb.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    out = io.BytesIO()
    thumb.save(out, format="JPEG", quality=THUMBNAIL_QUALITY)
    return out.getvalue()


def image_dimensions(image_bytes: bytes) -> tuple[int, int]:
    """Return ``(width, height)`` of an encoded image."""
    with Image.open(io.BytesIO(image_bytes)) as image:
        return image.size
