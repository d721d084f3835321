from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from .source_file import SourceFile

EntryStatus = Literal["pending-local", "uploading", "ready", "failed"]

TRANSIENT_SCHEME = "blob:"

# Statuses of entries whose bytes are still being processed
IN_FLIGHT: frozenset[str] = frozenset({"pending-local", "uploading"})


class ImageEntry(BaseModel):
    """One image slot in a gallery."""

    model_config = ConfigDict(frozen=True)

    id: str
    locator: str
    source_file: SourceFile | None = None
    status: EntryStatus = "ready"
    error_detail: str | None = None

    @property
    def is_transient(self) -> bool:
        return self.locator.startswith(TRANSIENT_SCHEME)

    @property
    def in_flight(self) -> bool:
        return self.status in IN_FLIGHT

    @property
    def is_committed(self) -> bool:
        """True when the locator may be reported to the owning product."""
        return self.status == "ready" and not self.is_transient


class GallerySnapshot(BaseModel):
    """Immutable ordered sequence of entries. Index 0 is the primary image."""

    model_config = ConfigDict(frozen=True)

    version: int = 0
    entries: tuple[ImageEntry, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def find(self, entry_id: str) -> ImageEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def committed_locators(self) -> list[str]:
        return [e.locator for e in self.entries if e.is_committed]
