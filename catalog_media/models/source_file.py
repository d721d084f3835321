from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SourceFile(BaseModel):
    """Raw bytes of a user-selected file, as received from the upload form."""

    model_config = ConfigDict(frozen=True)

    name: str
    content_type: str = Field("", description="Mime type reported by the client, e.g. image/png")
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.content_type.lower().startswith("image/")
