"""Batch admission for new gallery files."""
from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from catalog_media.errors import IntakeRejected
from catalog_media.models import GallerySnapshot, ImageEntry, SourceFile
from catalog_media.services.previews import PreviewStore

logger = logging.getLogger(__name__)


def filter_dropped(files: Sequence[SourceFile]) -> List[SourceFile]:
    """Keep the image files of a drag-and-drop batch."""

    images = [f for f in files if f.is_image]
    if not images:
        raise IntakeRejected("Please drop image files only")
    if len(images) < len(files):
        logger.debug("Ignored %d non-image file(s) from drop", len(files) - len(images))
    return images


def check_capacity(current: int, incoming: int, max_images: int) -> None:
    if current + incoming > max_images:
        remaining = max(0, max_images - current)
        raise IntakeRejected(
            f"Maximum {max_images} images allowed. You can add {remaining} more.",
            remaining=remaining,
        )


def intake(
    snapshot: GallerySnapshot,
    files: Sequence[SourceFile],
    *,
    max_images: int,
    previews: PreviewStore,
    make_id: Callable[[], str],
) -> List[ImageEntry]:
    """Create ``pending-local`` entries, one preview handle per file.

    The whole batch is refused when it would push the gallery past
    *max_images*; nothing is allocated in that case.
    """

    check_capacity(len(snapshot.entries), len(files), max_images)
    return [
        ImageEntry(
            id=make_id(),
            locator=previews.create(f),
            source_file=f,
            status="pending-local",
        )
        for f in files
    ]
