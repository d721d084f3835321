"""In-process registry of transient preview handles.

A handle is a ``blob:<token>`` string pointing at bytes held in memory so the
admin UI can show an upload before it has been persisted.  Handles must be
revoked once their entry is persisted or removed; revoking frees the bytes.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections import Counter
from dataclasses import dataclass

from catalog_media.models import TRANSIENT_SCHEME, SourceFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Preview:
    content_type: str
    data: bytes


class PreviewStore:
    """Maps ``blob:`` handles to preview bytes."""

    def __init__(self) -> None:
        self._items: dict[str, Preview] = {}
        self._lock = threading.Lock()
        self.revocations: Counter[str] = Counter()

    def create(self, source: SourceFile) -> str:
        handle = f"{TRANSIENT_SCHEME}{uuid.uuid4().hex}"
        with self._lock:
            self._items[handle] = Preview(content_type=source.content_type, data=source.data)
        logger.debug("Created preview %s for %s", handle, source.name)
        return handle

    def get(self, handle: str) -> Preview | None:
        with self._lock:
            return self._items.get(handle)

    def revoke(self, handle: str) -> bool:
        """Free *handle*. Returns False if it was unknown or already revoked."""

        with self._lock:
            preview = self._items.pop(handle, None)
            if preview is None:
                return False
            self.revocations[handle] += 1
        logger.debug("Revoked preview %s", handle)
        return True

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def handle_from_token(token: str) -> str:
    return f"{TRANSIENT_SCHEME}{token}"


def token_from_handle(handle: str) -> str:
    return handle[len(TRANSIENT_SCHEME):]
