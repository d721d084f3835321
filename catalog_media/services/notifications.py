"""User-facing notifications collected per gallery.

The admin UI polls a gallery and shows new notifications as toasts; every
notification is also written to the log.
"""
from __future__ import annotations

import logging
from typing import List

from catalog_media.models import Notification

logger = logging.getLogger(__name__)


class Notifier:
    def __init__(self) -> None:
        self._items: List[Notification] = []

    def error(self, message: str) -> Notification:
        logger.warning("Notification: %s", message)
        return self._push("error", message)

    def success(self, message: str) -> Notification:
        logger.info("Notification: %s", message)
        return self._push("success", message)

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def drain(self) -> List[Notification]:
        """Return and forget all pending notifications."""
        items, self._items = self._items, []
        return items

    def _push(self, level: str, message: str) -> Notification:
        note = Notification(level=level, message=message)
        self._items.append(note)
        return note
