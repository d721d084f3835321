"""In-process registry of open galleries and the shared preview store."""
from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Iterable

from catalog_media.config import Settings, get_settings
from catalog_media.services.gallery import ImagesChangeCallback, OrderableGallery
from catalog_media.services.previews import PreviewStore

logger = logging.getLogger(__name__)


class GalleryRegistry:
    def __init__(self, settings: Settings | None = None, previews: PreviewStore | None = None) -> None:
        self._settings = settings or get_settings()
        self.previews = previews or PreviewStore()
        self._galleries: dict[str, OrderableGallery] = {}

    def create(
        self,
        *,
        owner_id: str | None = None,
        existing_images: Iterable[str] = (),
        on_images_change: ImagesChangeCallback | None = None,
    ) -> OrderableGallery:
        gallery = OrderableGallery(
            uuid.uuid4().hex,
            owner_id=owner_id,
            existing_images=existing_images,
            max_images=self._settings.max_images,
            show_default_background=self._settings.show_default_background,
            previews=self.previews,
            on_images_change=on_images_change,
        )
        self._galleries[gallery.id] = gallery
        logger.info("Opened gallery %s (product=%s)", gallery.id, owner_id or "-")
        return gallery

    def get(self, gallery_id: str) -> OrderableGallery | None:
        return self._galleries.get(gallery_id)

    def close(self, gallery_id: str) -> bool:
        gallery = self._galleries.pop(gallery_id, None)
        if gallery is None:
            return False
        gallery.close()
        logger.info("Closed gallery %s", gallery_id)
        return True

    def close_all(self) -> None:
        for gallery_id in list(self._galleries):
            self.close(gallery_id)

    def __len__(self) -> int:
        return len(self._galleries)


@lru_cache()
def get_registry() -> GalleryRegistry:
    return GalleryRegistry()
