from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


class Notification(BaseModel):
    """Transient user-facing message (the admin UI shows these as toasts)."""

    level: Literal["success", "error"]
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
