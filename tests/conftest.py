import io
import threading

import pytest
from PIL import Image

from catalog_media.config import Settings
from catalog_media.errors import UploadFailed
from catalog_media.models import SourceFile
from catalog_media.services.previews import PreviewStore

_PIL_TYPES = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp", "GIF": "image/gif"}


def make_image_bytes(width=64, height=48, fmt="PNG", mode="RGB", color=(200, 30, 60)):
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    img = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_source(
    name="photo.png",
    width=64,
    height=48,
    fmt="PNG",
    content_type=None,
    mode="RGB",
    color=(200, 30, 60),
):
    return SourceFile(
        name=name,
        content_type=content_type if content_type is not None else _PIL_TYPES[fmt],
        data=make_image_bytes(width, height, fmt=fmt, mode=mode, color=color),
    )


class FakeStore:
    """Records uploads and hands out predictable URLs."""

    def __init__(self, fail_for=(), on_upload=None):
        self.calls = []
        self.fail_for = set(fail_for)
        self.on_upload = on_upload
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def upload(self, source, owner_id):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.calls.append((source.name, owner_id))
            if self.on_upload is not None:
                self.on_upload(source)
            if source.name in self.fail_for:
                raise UploadFailed("quota exceeded")
            return f"https://cdn.example.com/products/{owner_id}/{source.name}.webp"
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def settings():
    return Settings(settle_delay_seconds=0, max_images=10, show_default_background=True)


@pytest.fixture
def previews():
    return PreviewStore()


@pytest.fixture
def fake_store():
    return FakeStore()
