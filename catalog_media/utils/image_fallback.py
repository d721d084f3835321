"""Display fallbacks for missing or broken image references.

When a product has no image, or its image fails to load in the browser, the
storefront shows a shared default background instead.  Besides resolving
references this module can bake a product photo onto that background.
"""
from __future__ import annotations

import base64
import io
import logging
import time
from pathlib import Path

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from catalog_media.config import get_settings
from catalog_media.errors import EncodingFailed
from catalog_media.models import SourceFile

logger = logging.getLogger(__name__)

_PLACEHOLDER_START = (0xF3, 0xF4, 0xF6)
_PLACEHOLDER_END = (0xE5, 0xE7, 0xEB)

# Share of the canvas a composed product image may cover
_COMPOSITE_FILL = 0.9


def default_background_url() -> str:
    return get_settings().default_background_url


def resolve(locator: str | None, show_default_background: bool = True) -> str:
    """Return the source to render for *locator*.

    An empty locator resolves to the default background when the policy is
    enabled and to ``""`` otherwise; anything else is returned unchanged.
    """

    if locator:
        return locator
    return default_background_url() if show_default_background else ""


def on_load_error(locator: str | None, show_default_background: bool = True) -> str | None:
    """Replacement for a source that failed to load, or None to keep the error state."""

    if show_default_background:
        logger.debug("Image failed to load, using default background: %s", (locator or "")[:80])
        return default_background_url()
    return None


def placeholder_gradient(locator: str) -> str:
    """CSS gradient shown behind an image while it loads, tinted by the locator."""

    h = 0
    for ch in locator:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    hue = abs(h) % 360
    return f"linear-gradient(135deg, hsl({hue}, 20%, 85%), hsl({hue + 30}, 20%, 90%))"


def generate_placeholder(width: int, height: int) -> str:
    """Light grey diagonal gradient as a PNG ``data:`` URI."""

    if width < 1 or height < 1:
        return ""
    img = Image.new("RGB", (width, height), _PLACEHOLDER_START)
    draw = ImageDraw.Draw(img)
    span = max(width + height - 2, 1)
    # One anti-diagonal (x + y == d) per colour step
    for d in range(1, width + height - 1):
        t = d / span
        color = tuple(round(a + (b - a) * t) for a, b in zip(_PLACEHOLDER_START, _PLACEHOLDER_END))
        draw.line([(d, 0), (0, d)], fill=color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def composite_with_background(
    source: SourceFile,
    background_path: str | Path,
    target_size: tuple[int, int] | None = None,
    quality: float = 0.95,
) -> SourceFile:
    """Centre *source* on the default background and return it as a JPEG.

    The canvas takes the background's size unless *target_size* is given.  The
    product image is scaled down (never up) to fit inside 90% of the canvas.

    Raises
    ------
    EncodingFailed
        If either image cannot be decoded or the result cannot be encoded.
    """

    try:
        with Image.open(background_path) as bg:
            background = bg.convert("RGB")
        with Image.open(io.BytesIO(source.data)) as fg:
            fg.seek(0)
            foreground = ImageOps.exif_transpose(fg).convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise EncodingFailed(f"Failed to load image {source.name}: {exc}") from exc

    width, height = target_size or background.size
    canvas = background.resize((width, height), Image.Resampling.LANCZOS)

    max_w, max_h = width * _COMPOSITE_FILL, height * _COMPOSITE_FILL
    fg_w, fg_h = foreground.size
    if fg_w > max_w or fg_h > max_h:
        scale = min(max_w / fg_w, max_h / fg_h)
        fg_w, fg_h = max(1, int(fg_w * scale)), max(1, int(fg_h * scale))
        foreground = foreground.resize((fg_w, fg_h), Image.Resampling.LANCZOS)

    canvas.paste(foreground, ((width - fg_w) // 2, (height - fg_h) // 2), foreground)

    buffer = io.BytesIO()
    try:
        canvas.save(buffer, format="JPEG", quality=round(quality * 100))
    except (OSError, ValueError) as exc:
        raise EncodingFailed(f"Could not encode composed image for {source.name}: {exc}") from exc
    logger.debug("Composed %s onto background at %dx%d", source.name, width, height)
    return SourceFile(
        name=f"composed-{int(time.time() * 1000)}.jpg",
        content_type="image/jpeg",
        data=buffer.getvalue(),
    )
