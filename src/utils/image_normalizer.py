"""Square JPEG preview generation for catalog thumbnails.

Every catalogued piece gets a small, uniform thumbnail: the source image is
letterboxed onto a white square canvas, scaled so the whole piece stays
visible, and encoded as JPEG.  The same bytes are uploaded to the storage
bucket and shown in the page while a batch runs.

    source (any size / mode)
        │  decode + EXIF orientation + alpha flattened onto white
        ▼
    scale by min(target / w, target / h)      (aspect kept, no crop)
        │
        ▼
    paste centred on a target x target white canvas
        │
        ▼
    JPEG (quality 82) ──▶ bytes, base64, "<stem>.jpg", preview handle

Upscaling is allowed: a 100x50 source becomes a 200x100 strip centred on
the canvas.
"""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from pathlib import PurePath

import structlog
from PIL import Image, ImageOps, UnidentifiedImageError

from src.utils.errors import CanvasUnavailableError, EncodeFailureError
from src.utils.logging import get_logger
from src.utils.preview_store import PreviewHandle, PreviewStore


@dataclass(frozen=True)
class NormalizedImage:
    """Result of :meth:`ImageNormalizer.normalize`.

    ``draw_box`` is ``(left, top, width, height)`` of the pasted source
    inside the canvas.  The caller owns ``preview`` and must release it.
    """

    encoded_bytes: bytes
    base64: str
    filename: str
    preview: PreviewHandle
    width: int
    height: int
    draw_box: tuple[int, int, int, int]

    @property
    def data_uri(self) -> str:
        return f"data:image/jpeg;base64,{self.base64}"


def preview_filename(filename: str) -> str:
    """Return ``<stem>.jpg`` for *filename*, ``image.jpg`` when the stem is empty."""
    stem = PurePath(filename or "").stem
    return f"{stem or 'image'}.jpg"


def fit_box(width: int, height: int, target: int) -> tuple[int, int, int, int]:
    """Compute where a ``width`` x ``height`` source lands on a square canvas.

    Returns ``(left, top, draw_width, draw_height)``.  Draw sizes are rounded
    and never below one pixel; padding is split evenly.
    """
    ratio = min(target / width, target / height)
    draw_w = max(1, min(target, round(width * ratio)))
    draw_h = max(1, min(target, round(height * ratio)))
    return (target - draw_w) // 2, (target - draw_h) // 2, draw_w, draw_h


class ImageNormalizer:
    """Letterboxes arbitrary raster images into a fixed-size JPEG."""

    def __init__(
        self,
        preview_store: PreviewStore,
        target_size: int = 200,
        jpeg_quality: int = 82,
        background: str = "#ffffff",
    ) -> None:
        self._preview_store = preview_store
        self._target_size = target_size
        self._jpeg_quality = jpeg_quality
        self._background = background
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def target_size(self) -> int:
        return self._target_size

    def release(self, normalized: NormalizedImage) -> None:
        """Drop the preview registered for *normalized*."""
        self._preview_store.release(normalized.preview)

    def normalize(self, image_bytes: bytes, filename: str = "") -> NormalizedImage:
        """Produce the square JPEG preview for *image_bytes*.

        Raises
        ------
        CanvasUnavailableError
            The bytes cannot be decoded into a drawable raster.
        EncodeFailureError
            JPEG encoding raised or produced no bytes.
        """
        source = self._decode(image_bytes)
        left, top, draw_w, draw_h = fit_box(source.width, source.height, self._target_size)

        try:
            canvas = Image.new("RGB", (self._target_size, self._target_size), self._background)
            scaled = source.resize((draw_w, draw_h), Image.Resampling.LANCZOS)
            canvas.paste(scaled, (left, top))
        except (ValueError, MemoryError) as exc:
            raise CanvasUnavailableError() from exc

        buffer = io.BytesIO()
        try:
            canvas.save(buffer, format="JPEG", quality=self._jpeg_quality)
        except (OSError, ValueError) as exc:
            raise EncodeFailureError() from exc

        encoded = buffer.getvalue()
        if not encoded:
            raise EncodeFailureError()

        handle = self._preview_store.create(encoded, "image/jpeg")
        self._logger.debug(
            "image_normalized",
            filename=filename,
            source_size=(source.width, source.height),
            draw_box=(left, top, draw_w, draw_h),
            bytes=len(encoded),
        )
        return NormalizedImage(
            encoded_bytes=encoded,
            base64=base64.b64encode(encoded).decode("ascii"),
            filename=preview_filename(filename),
            preview=handle,
            width=self._target_size,
            height=self._target_size,
            draw_box=(left, top, draw_w, draw_h),
        )

    def _decode(self, image_bytes: bytes) -> Image.Image:
        """Open, orient and flatten the source onto an RGB raster."""
        if not image_bytes:
            raise CanvasUnavailableError("Image is empty.")
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
            image = ImageOps.exif_transpose(image) or image
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise CanvasUnavailableError() from exc

        if image.width <= 0 or image.height <= 0:
            raise CanvasUnavailableError()

        # Transparent pixels become white, as on the canvas.
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            flattened = Image.new("RGB", rgba.size, self._background)
            flattened.paste(rgba, mask=rgba.getchannel("A"))
            return flattened
        return image.convert("RGB")


def detect_media_type(image_bytes: bytes, fallback: str = "image/jpeg") -> str:
    """Guess an image MIME type from its magic bytes.

    Used when an upload arrives without a usable ``Content-Type``.
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    return fallback
