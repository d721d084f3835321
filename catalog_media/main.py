from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from catalog_media.config import get_settings
from catalog_media.handlers import gallery_handler, image_handler
from catalog_media.services.registry import get_registry

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    # Free the previews of galleries still open at shutdown
    get_registry().close_all()


app = FastAPI(title="Catalog Media API", lifespan=lifespan)

app.include_router(gallery_handler.router)
app.include_router(image_handler.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
