"""Sequential processing of newly admitted gallery files.

Files are handled strictly one at a time in intake order to bound the load on
the image store.  Each file either ends ``ready`` with a durable locator (a
Cloud Storage URL when the gallery belongs to a product, otherwise an inline
``data:`` URI) or ``failed`` with the error recorded on the entry.  A failure
never stops the rest of the batch.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from catalog_media.config import Settings, get_settings
from catalog_media.errors import ImagePipelineError, UploadFailed, ValidationFailed
from catalog_media.models import OptimizationOptions, SourceFile
from catalog_media.services import optimizer
from catalog_media.services.gallery import OrderableGallery
from catalog_media.services.storage import ImageStore

logger = logging.getLogger(__name__)


def inline_options(settings: Settings) -> OptimizationOptions:
    return OptimizationOptions(
        max_width=settings.inline_max_dim,
        max_height=settings.inline_max_dim,
        quality=settings.inline_quality,
        target_format=settings.inline_format,
        max_bytes=settings.inline_max_kb * 1024,
    )


class UploadCoordinator:
    """Runs admitted files through validation, optimization and upload."""

    def __init__(
        self,
        store: ImageStore | None = None,
        *,
        settings: Settings | None = None,
        settle_delay: float | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._settle_delay = (
            self._settings.settle_delay_seconds if settle_delay is None else settle_delay
        )

    async def process(self, gallery: OrderableGallery, entry_ids: Iterable[str]) -> list[str]:
        """Process *entry_ids* in order and report the committed images once.

        Returns the list of locators that was reported.
        """

        uploaded = 0
        async with gallery.upload_lock:
            for entry_id in entry_ids:
                if await self._process_one(gallery, entry_id):
                    uploaded += 1

        # Let status updates scheduled by the last file land before reporting
        await asyncio.sleep(self._settle_delay)
        if gallery.closed:
            logger.debug("Gallery %s closed during upload; nothing reported", gallery.id)
            return []
        if uploaded:
            message = (
                "Image uploaded successfully"
                if uploaded == 1
                else f"{uploaded} images uploaded successfully"
            )
            gallery.notifier.success(message)
        return gallery.report()

    async def _process_one(self, gallery: OrderableGallery, entry_id: str) -> bool:
        """Process one entry; True when it ended ``ready``."""
        entry = gallery.snapshot.find(entry_id)
        if gallery.closed or entry is None or entry.source_file is None:
            logger.debug("Skipping %s: no longer pending in gallery %s", entry_id, gallery.id)
            return False
        source = entry.source_file
        gallery.mark_uploading(entry_id)

        try:
            locator = await self._persist(source, gallery.owner_id)
        except ImagePipelineError as exc:
            self._fail(gallery, entry_id, source, str(exc))
            return False
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error processing %s: %s", source.name, exc)
            self._fail(gallery, entry_id, source, str(exc) or "Upload failed")
            return False

        if not gallery.mark_ready(entry_id, locator):
            logger.debug("Upload of %s finished after its entry was removed", source.name)
            return False
        return True

    async def _persist(self, source: SourceFile, owner_id: str | None) -> str:
        validation = optimizer.validate(source)
        if not validation.valid:
            raise ValidationFailed(validation.error)

        if owner_id:
            if self._store is None:
                raise UploadFailed("No image store configured")
            return await asyncio.to_thread(self._store.upload, source, owner_id)

        image = await asyncio.to_thread(optimizer.optimize, source, inline_options(self._settings))
        return optimizer.to_data_url(image)

    @staticmethod
    def _fail(gallery: OrderableGallery, entry_id: str, source: SourceFile, message: str) -> None:
        gallery.mark_failed(entry_id, message)
        gallery.notifier.error(f"Failed to upload {source.name}: {message}")
