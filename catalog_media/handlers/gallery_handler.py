"""HTTP endpoints backing the product image upload widget."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

from catalog_media.errors import IntakeRejected
from catalog_media.models import ImageEntry, Notification, SourceFile
from catalog_media.services.coordinator import UploadCoordinator
from catalog_media.services.firebase_db import get_firebase_db
from catalog_media.services.gallery import OrderableGallery
from catalog_media.services.previews import token_from_handle
from catalog_media.services.registry import GalleryRegistry, get_registry
from catalog_media.services.storage import get_storage_service
from catalog_media.utils import image_fallback

router = APIRouter(prefix="/galleries", tags=["galleries"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class CreateGalleryRequest(BaseModel):
    product_id: Optional[str] = None
    existing_images: Optional[List[str]] = None


class ReorderRequest(BaseModel):
    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class EntryView(BaseModel):
    id: str
    label: str
    primary: bool
    status: str
    src: str
    draggable: bool
    error: Optional[str] = None


class GalleryView(BaseModel):
    id: str
    product_id: Optional[str]
    version: int
    max_images: int
    remaining: int
    entries: List[EntryView]
    images: List[str]
    notifications: List[Notification]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@lru_cache()
def get_coordinator() -> UploadCoordinator:
    return UploadCoordinator(store=get_storage_service())


def _entry_src(entry: ImageEntry, show_default_background: bool) -> str:
    if entry.is_transient:
        return f"/previews/{token_from_handle(entry.locator)}"
    return image_fallback.resolve(entry.locator, show_default_background)


def _view(gallery: OrderableGallery) -> GalleryView:
    snapshot = gallery.snapshot
    entries = [
        EntryView(
            id=entry.id,
            label=label,
            primary=index == 0,
            status=entry.status,
            src=_entry_src(entry, gallery.show_default_background),
            draggable=not entry.in_flight,
            error=entry.error_detail,
        )
        for index, (entry, label) in enumerate(zip(snapshot.entries, gallery.labels()))
    ]
    return GalleryView(
        id=gallery.id,
        product_id=gallery.owner_id,
        version=snapshot.version,
        max_images=gallery.max_images,
        remaining=max(0, gallery.max_images - len(snapshot)),
        entries=entries,
        images=gallery.committed_locators(),
        notifications=gallery.notifier.drain(),
    )


def _get_gallery(gallery_id: str, registry: GalleryRegistry) -> OrderableGallery:
    gallery = registry.get(gallery_id)
    if gallery is None:
        raise HTTPException(status_code=404, detail="Gallery not found")
    return gallery


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=GalleryView)
async def create_gallery(
    body: CreateGalleryRequest,
    registry: GalleryRegistry = Depends(get_registry),
):
    existing = body.existing_images
    on_change = None
    if body.product_id:
        firebase_db = get_firebase_db()
        product_id = body.product_id
        if existing is None:
            existing = firebase_db.get_product_images(product_id)

        def on_change(images: list[str]) -> None:
            firebase_db.set_product_images(product_id, images)

    gallery = registry.create(
        owner_id=body.product_id,
        existing_images=existing or [],
        on_images_change=on_change,
    )
    return _view(gallery)


@router.get("/{gallery_id}", response_model=GalleryView)
async def get_gallery(gallery_id: str, registry: GalleryRegistry = Depends(get_registry)):
    return _view(_get_gallery(gallery_id, registry))


@router.post("/{gallery_id}/images", status_code=202, response_model=GalleryView)
async def add_images(
    gallery_id: str,
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    dropped: bool = Query(False, description="Files came from a drag-and-drop event"),
    registry: GalleryRegistry = Depends(get_registry),
    coordinator: UploadCoordinator = Depends(get_coordinator),
):
    gallery = _get_gallery(gallery_id, registry)
    sources = [
        SourceFile(name=f.filename or "upload", content_type=f.content_type or "", data=await f.read())
        for f in files
    ]
    try:
        entry_ids = gallery.add_files(sources, dropped=dropped)
    except IntakeRejected as exc:
        raise HTTPException(
            status_code=422, detail={"message": str(exc), "remaining": exc.remaining}
        ) from exc

    background_tasks.add_task(coordinator.process, gallery, entry_ids)
    return _view(gallery)


@router.post("/{gallery_id}/reorder", response_model=GalleryView)
async def reorder_images(
    gallery_id: str,
    body: ReorderRequest,
    registry: GalleryRegistry = Depends(get_registry),
):
    gallery = _get_gallery(gallery_id, registry)
    if not gallery.reorder(body.from_index, body.to_index):
        logger.debug("Reorder %d -> %d ignored for gallery %s", body.from_index, body.to_index, gallery_id)
    return _view(gallery)


@router.delete("/{gallery_id}/images/{entry_id}", response_model=GalleryView)
async def remove_image(
    gallery_id: str,
    entry_id: str,
    registry: GalleryRegistry = Depends(get_registry),
):
    gallery = _get_gallery(gallery_id, registry)
    if not gallery.remove(entry_id):
        raise HTTPException(status_code=404, detail="Image not found")
    return _view(gallery)


@router.delete("/{gallery_id}", status_code=204)
async def close_gallery(gallery_id: str, registry: GalleryRegistry = Depends(get_registry)):
    if not registry.close(gallery_id):
        raise HTTPException(status_code=404, detail="Gallery not found")
