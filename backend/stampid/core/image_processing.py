"""Image preparation for identification uploads.

Resizes a local photo to fit 1024×1024, re-encodes it as JPEG and returns
base64 text plus an approximate size for logging. Pillow does the codec
work.
"""

from __future__ import annotations

import base64
import io
import logging
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from PIL import Image, ImageOps

from stampid.core.config import get_settings
from stampid.services.ai.common.errors import ValidationError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Constants
# ------------------------------------------------------------------

UPLOAD_MAX_SIZE = (1024, 1024)
UPLOAD_QUALITY = 75


@dataclass(frozen=True)
class PreparedImage:
    base64: str
    approximate_size_kb: int


class ImagePreparer(Protocol):
    def prepare(self, local_image_ref: str) -> PreparedImage: ...


def base64_size_kb(data: str) -> int:
    """Approximate decoded size of a base64 string, in KiB."""
    padding = data.count("=")
    size_bytes = (len(data) * 3) / 4 - padding
    return round(size_bytes / 1024)


def encode_for_upload(
    content: bytes,
    *,
    max_size: tuple[int, int] = UPLOAD_MAX_SIZE,
    quality: int = UPLOAD_QUALITY,
) -> bytes:
    """Auto-orient, fit within *max_size* and encode as RGB JPEG."""
    img = Image.open(io.BytesIO(content))
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    img.thumbnail(max_size, Image.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


class PillowImagePreparer:
    """``ImagePreparer`` backed by Pillow."""

    def __init__(
        self,
        *,
        max_source_bytes: Optional[int] = None,
        max_size: tuple[int, int] = UPLOAD_MAX_SIZE,
        quality: int = UPLOAD_QUALITY,
    ) -> None:
        self._max_source_bytes = max_source_bytes
        self._max_size = max_size
        self._quality = quality

    def prepare(self, local_image_ref: str) -> PreparedImage:
        limit = self._max_source_bytes or get_settings().max_image_size_bytes
        try:
            source_size = os.path.getsize(local_image_ref)
        except OSError as exc:
            raise ValidationError(f"Cannot read image {local_image_ref!r}: {exc}") from exc

        if source_size > limit:
            raise ValidationError(
                f"Image is {source_size / (1024 * 1024):.1f} MB; limit is {limit / (1024 * 1024):.1f} MB"
            )

        with open(local_image_ref, "rb") as fh:
            content = fh.read()

        try:
            jpeg = encode_for_upload(content, max_size=self._max_size, quality=self._quality)
        except (OSError, Image.DecompressionBombError) as exc:
            raise ValidationError(f"Failed to compress image: {exc}") from exc

        encoded = base64.b64encode(jpeg).decode("ascii")
        size_kb = base64_size_kb(encoded)
        logger.info(
            "Prepared image %s: %d KB source -> %d KB upload",
            os.path.basename(local_image_ref),
            round(source_size / 1024),
            size_kb,
        )
        return PreparedImage(base64=encoded, approximate_size_kb=size_kb)
