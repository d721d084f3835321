from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ImageFormat = Literal["webp", "jpeg", "png"]


class OptimizationOptions(BaseModel):
    max_width: int = Field(1200, ge=1)
    max_height: int = Field(1200, ge=1)
    quality: float = Field(0.8, gt=0, le=1)
    target_format: ImageFormat = "webp"
    max_bytes: int = Field(500 * 1024, ge=1)


class OptimizedImage(BaseModel):
    name: str
    content_type: str
    data: bytes
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    quality: float  # quality of the accepted encode
    attempts: int = Field(1, ge=1, le=2)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


class ValidationResult(BaseModel):
    valid: bool
    error: str | None = None
