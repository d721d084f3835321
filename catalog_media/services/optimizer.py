"""Pillow based image validation and optimization.

Images are decoded, scaled down to fit a bounding box (never up), and
re-encoded in the requested format.  When the first encode overshoots the
byte budget a single retry at reduced quality is made; whatever that second
pass produces is accepted.
"""
from __future__ import annotations

import base64
import io
import logging
import time
from pathlib import PurePath

from PIL import Image, ImageOps, UnidentifiedImageError

from catalog_media.errors import EncodingFailed
from catalog_media.models import (
    ImageFormat,
    OptimizationOptions,
    OptimizedImage,
    SourceFile,
    ValidationResult,
)

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB
SUPPORTED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

_MIN_RETRY_QUALITY = 0.3
_RETRY_QUALITY_FACTOR = 0.7

_PIL_FORMATS = {"webp": "WEBP", "jpeg": "JPEG", "png": "PNG"}
_CONTENT_TYPES = {"webp": "image/webp", "jpeg": "image/jpeg", "png": "image/png"}

THUMBNAIL_OPTIONS = dict(quality=0.7, target_format="webp", max_bytes=50 * 1024)


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate(source: SourceFile) -> ValidationResult:
    """Check type, size and format before any decoding is attempted."""

    content_type = source.content_type.lower()
    if not content_type.startswith("image/"):
        return ValidationResult(valid=False, error="File must be an image")

    if source.size > MAX_UPLOAD_BYTES:
        return ValidationResult(valid=False, error="Image must be smaller than 10MB")

    if content_type not in SUPPORTED_CONTENT_TYPES:
        return ValidationResult(
            valid=False, error="Unsupported image format. Use JPEG, PNG, WebP, or GIF"
        )

    return ValidationResult(valid=True)


# ------------------------------------------------------------------
# Optimization
# ------------------------------------------------------------------

def calculate_dimensions(
    width: int, height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Fit (width, height) inside the box preserving aspect ratio, never upscaling."""

    scale = min(max_width / width, max_height / height, 1)
    return max(1, round(width * scale)), max(1, round(height * scale))


def optimize(source: SourceFile, options: OptimizationOptions | None = None) -> OptimizedImage:
    """Resize and re-encode *source* according to *options*.

    Parameters
    ----------
    source : SourceFile
        Raw upload. Its bytes are only read.
    options : OptimizationOptions, optional
        Bounding box, quality in (0, 1], target format and byte budget.

    Raises
    ------
    EncodingFailed
        If the bytes cannot be decoded or the resized image cannot be encoded.
    """

    options = options or OptimizationOptions()
    surface = _render(source, options)

    quality = options.quality
    data = _encode(surface, options.target_format, quality)
    attempts = 1
    if len(data) > options.max_bytes:
        # One retry only; the reduced-quality result is kept even if still too large
        quality = max(_MIN_RETRY_QUALITY, quality * _RETRY_QUALITY_FACTOR)
        logger.debug(
            "%s encoded to %d bytes (budget %d), retrying at quality %.2f",
            source.name,
            len(data),
            options.max_bytes,
            quality,
        )
        data = _encode(surface, options.target_format, quality)
        attempts = 2

    result = OptimizedImage(
        name=optimized_file_name(source.name, options.target_format),
        content_type=_CONTENT_TYPES[options.target_format],
        data=data,
        width=surface.width,
        height=surface.height,
        quality=quality,
        attempts=attempts,
    )
    logger.debug(
        "Optimized %s: %s -> %s (%s)",
        source.name,
        format_file_size(source.size),
        format_file_size(result.size),
        result.resolution,
    )
    return result


def generate_thumbnail(source: SourceFile, size: int = 200) -> OptimizedImage:
    """Small square-bounded webp preview."""

    return optimize(source, OptimizationOptions(max_width=size, max_height=size, **THUMBNAIL_OPTIONS))


def to_data_url(image: OptimizedImage) -> str:
    """Self-contained ``data:`` URI for an encoded image."""

    encoded = base64.b64encode(image.data).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


def optimized_file_name(original_name: str, fmt: ImageFormat) -> str:
    stem = PurePath(original_name).stem or "image"
    return f"{stem}_optimized_{int(time.time() * 1000)}.{fmt}"


def format_file_size(num_bytes: int) -> str:
    if num_bytes == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(num_bytes / 1024**i, 2)
    return f"{value:g} {units[i]}"


# ------------------------------------------------------------------
# Helper functions
# ------------------------------------------------------------------

def _render(source: SourceFile, options: OptimizationOptions) -> Image.Image:
    try:
        with Image.open(io.BytesIO(source.data)) as img:
            img.seek(0)  # first frame of animated input
            img.load()
            frame = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise EncodingFailed(f"Failed to load image {source.name}: {exc}") from exc

    width, height = calculate_dimensions(
        frame.width, frame.height, options.max_width, options.max_height
    )
    try:
        frame = _normalise_mode(frame, options.target_format)
        if (width, height) != frame.size:
            frame = frame.resize((width, height), Image.Resampling.LANCZOS)
    except (OSError, ValueError) as exc:
        raise EncodingFailed(f"Could not render image {source.name}: {exc}") from exc
    return frame


def _normalise_mode(img: Image.Image, fmt: ImageFormat) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
    if fmt == "jpeg":
        if has_alpha:
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return img.convert("RGB")
    return img.convert("RGBA" if has_alpha else "RGB")


def _encode(img: Image.Image, fmt: ImageFormat, quality: float) -> bytes:
    buffer = io.BytesIO()
    try:
        img.save(buffer, format=_PIL_FORMATS[fmt], quality=round(quality * 100), optimize=True)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodingFailed(f"Image compression failed: {exc}") from exc
    return buffer.getvalue()
