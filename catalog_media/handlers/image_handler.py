"""Preview bytes and display fallback endpoints."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from catalog_media.config import get_settings
from catalog_media.services.previews import handle_from_token
from catalog_media.services.registry import GalleryRegistry, get_registry
from catalog_media.utils import image_fallback

router = APIRouter(tags=["images"])
logger = logging.getLogger(__name__)

_MAX_PLACEHOLDER_DIM = 2000


@router.get("/previews/{token}")
async def get_preview(token: str, registry: GalleryRegistry = Depends(get_registry)):
    preview = registry.previews.get(handle_from_token(token))
    if preview is None:
        raise HTTPException(status_code=404, detail="Preview not found or revoked")
    return Response(
        content=preview.data,
        media_type=preview.content_type or "application/octet-stream",
        headers={"Cache-Control": "no-store"},
    )


@router.get("/images/resolve")
async def resolve_image(
    locator: str = "",
    show_default_background: bool | None = None,
    load_failed: bool = Query(False, description="The client failed to load the previous src"),
):
    policy = (
        get_settings().show_default_background
        if show_default_background is None
        else show_default_background
    )
    if load_failed:
        src = image_fallback.on_load_error(locator, policy)
    else:
        src = image_fallback.resolve(locator, policy)
    return {"src": src, "placeholder": image_fallback.placeholder_gradient(src or "")}


@router.get("/images/placeholder")
async def placeholder_image(
    width: int = Query(..., ge=1, le=_MAX_PLACEHOLDER_DIM),
    height: int = Query(..., ge=1, le=_MAX_PLACEHOLDER_DIM),
):
    src = await asyncio.to_thread(image_fallback.generate_placeholder, width, height)
    return {"src": src}
