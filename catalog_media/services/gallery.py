"""Ordered product image gallery.

The gallery state is a ``GallerySnapshot``: an immutable, versioned tuple of
entries.  The module level functions are pure transitions from one snapshot to
the next; ``OrderableGallery`` owns the current snapshot and performs the side
effects (preview revocation, reporting to the owning product, notifications).

Entries are always looked up by id, never by a previously captured index, so
an update aimed at an entry that has since been removed is a no-op.
"""
from __future__ import annotations

import asyncio
import logging
import time
from itertools import count
from typing import Any, Callable, Iterable, Sequence

from catalog_media.errors import IntakeRejected
from catalog_media.models import GallerySnapshot, ImageEntry, SourceFile
from catalog_media.services import intake as file_intake
from catalog_media.services.notifications import Notifier
from catalog_media.services.previews import PreviewStore

logger = logging.getLogger(__name__)

ImagesChangeCallback = Callable[[list[str]], Any]

PRIMARY_LABEL = "Main Image"


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


def seed(existing_images: Iterable[str]) -> GallerySnapshot:
    """Snapshot for images already stored on the owning product."""

    entries = tuple(
        ImageEntry(id=f"existing-{i}", locator=url, status="ready")
        for i, url in enumerate(u for u in existing_images if u)
    )
    return GallerySnapshot(version=0, entries=entries)


def append(snapshot: GallerySnapshot, entries: Sequence[ImageEntry]) -> GallerySnapshot:
    if not entries:
        return snapshot
    return GallerySnapshot(version=snapshot.version + 1, entries=snapshot.entries + tuple(entries))


def reorder(snapshot: GallerySnapshot, from_index: int | None, to_index: int) -> GallerySnapshot:
    """Move the entry at *from_index* to *to_index*.

    ``from_index`` is ``None`` when no drag is in progress; that, equal
    indices, out-of-range indices and in-flight entries all leave the snapshot
    unchanged.
    """

    if from_index is None or from_index == to_index:
        return snapshot
    size = len(snapshot.entries)
    if not (0 <= from_index < size and 0 <= to_index < size):
        return snapshot
    moved = snapshot.entries[from_index]
    if moved.in_flight:
        return snapshot

    entries = list(snapshot.entries)
    entries.pop(from_index)
    entries.insert(to_index, moved)
    return GallerySnapshot(version=snapshot.version + 1, entries=tuple(entries))


def remove(snapshot: GallerySnapshot, entry_id: str) -> tuple[GallerySnapshot, ImageEntry | None]:
    removed = snapshot.find(entry_id)
    if removed is None:
        return snapshot, None
    entries = tuple(e for e in snapshot.entries if e.id != entry_id)
    return GallerySnapshot(version=snapshot.version + 1, entries=entries), removed


def update_entry(snapshot: GallerySnapshot, entry_id: str, **changes: Any) -> GallerySnapshot:
    """Replace fields of one entry. Unknown ids leave the snapshot unchanged."""

    if snapshot.find(entry_id) is None:
        return snapshot
    entries = tuple(
        e.model_copy(update=changes) if e.id == entry_id else e for e in snapshot.entries
    )
    return GallerySnapshot(version=snapshot.version + 1, entries=entries)


def labels(snapshot: GallerySnapshot) -> list[str]:
    return [PRIMARY_LABEL if i == 0 else f"#{i + 1}" for i in range(len(snapshot.entries))]


# ---------------------------------------------------------------------------
# Owning wrapper
# ---------------------------------------------------------------------------


class OrderableGallery:
    """Current snapshot of one gallery plus the resources tied to it."""

    def __init__(
        self,
        gallery_id: str,
        *,
        owner_id: str | None = None,
        existing_images: Iterable[str] = (),
        max_images: int = 10,
        show_default_background: bool = True,
        previews: PreviewStore | None = None,
        notifier: Notifier | None = None,
        on_images_change: ImagesChangeCallback | None = None,
    ) -> None:
        self.id = gallery_id
        self.owner_id = owner_id
        self.max_images = max_images
        self.show_default_background = show_default_background
        self.previews = previews or PreviewStore()
        self.notifier = notifier or Notifier()
        self.reported: list[str] | None = None
        self.dragged_index: int | None = None
        self.closed = False
        # Batches for the same gallery run one after another
        self.upload_lock = asyncio.Lock()
        self._on_images_change = on_images_change
        self._snapshot = seed(existing_images)
        self._seq = count()

    @property
    def snapshot(self) -> GallerySnapshot:
        return self._snapshot

    @property
    def primary(self) -> ImageEntry | None:
        entries = self._snapshot.entries
        return entries[0] if entries else None

    def labels(self) -> list[str]:
        return labels(self._snapshot)

    # -------------------------------------------------------------------
    # Intake
    # -------------------------------------------------------------------

    def add_files(self, files: Sequence[SourceFile], *, dropped: bool = False) -> list[str]:
        """Admit a selected (or dropped) batch and return the new entry ids.

        Raises ``IntakeRejected`` without touching the gallery when the batch
        is refused; the user is notified either way.
        """

        try:
            if dropped:
                files = file_intake.filter_dropped(files)
            new_entries = file_intake.intake(
                self._snapshot,
                files,
                max_images=self.max_images,
                previews=self.previews,
                make_id=self._next_entry_id,
            )
        except IntakeRejected as exc:
            self.notifier.error(str(exc))
            raise
        self._snapshot = append(self._snapshot, new_entries)
        logger.debug("Gallery %s admitted %d file(s)", self.id, len(new_entries))
        return [e.id for e in new_entries]

    def _next_entry_id(self) -> str:
        return f"new-{int(time.time() * 1000)}-{next(self._seq)}"

    # -------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------

    def start_drag(self, index: int) -> bool:
        entries = self._snapshot.entries
        if not 0 <= index < len(entries) or entries[index].in_flight:
            return False
        self.dragged_index = index
        return True

    def drop_at(self, index: int) -> bool:
        from_index, self.dragged_index = self.dragged_index, None
        return self._apply_reorder(from_index, index)

    def end_drag(self) -> None:
        self.dragged_index = None

    def reorder(self, from_index: int, to_index: int) -> bool:
        """Drag the entry at *from_index* and drop it at *to_index* in one step."""
        if not self.start_drag(from_index):
            return False
        return self.drop_at(to_index)

    def _apply_reorder(self, from_index: int | None, to_index: int) -> bool:
        before = self._snapshot
        self._snapshot = reorder(before, from_index, to_index)
        if self._snapshot is before:
            return False
        if before.committed_locators() != self._snapshot.committed_locators():
            self.report()
        return True

    # -------------------------------------------------------------------
    # Entry updates
    # -------------------------------------------------------------------

    def remove(self, entry_id: str) -> bool:
        self._snapshot, removed = remove(self._snapshot, entry_id)
        if removed is None:
            return False
        self._release(removed)
        self.report()
        return True

    def mark_uploading(self, entry_id: str) -> bool:
        return self._update(entry_id, status="uploading", error_detail=None)

    def mark_ready(self, entry_id: str, locator: str) -> bool:
        entry = self._snapshot.find(entry_id)
        if entry is None:
            logger.debug("Entry %s left gallery %s before completing", entry_id, self.id)
            return False
        self._snapshot = update_entry(
            self._snapshot,
            entry_id,
            locator=locator,
            status="ready",
            source_file=None,
            error_detail=None,
        )
        self._release(entry)
        return True

    def mark_failed(self, entry_id: str, error: str) -> bool:
        # The preview stays so the user can see which file failed
        return self._update(entry_id, status="failed", error_detail=error)

    def _update(self, entry_id: str, **changes: Any) -> bool:
        before = self._snapshot
        self._snapshot = update_entry(before, entry_id, **changes)
        return self._snapshot is not before

    def _release(self, entry: ImageEntry) -> None:
        if entry.is_transient:
            self.previews.revoke(entry.locator)

    # -------------------------------------------------------------------
    # Reporting / teardown
    # -------------------------------------------------------------------

    def committed_locators(self) -> list[str]:
        return self._snapshot.committed_locators()

    def report(self) -> list[str]:
        locators = self.committed_locators()
        self.reported = locators
        if self._on_images_change is not None:
            self._on_images_change(locators)
        return locators

    def close(self) -> None:
        if self.closed:
            return
        for entry in self._snapshot.entries:
            self._release(entry)
        self.closed = True
        logger.debug("Gallery %s closed", self.id)
