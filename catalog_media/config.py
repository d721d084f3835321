from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present (local dev only)
load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True
    )

    # General
    project_id: Optional[str] = Field(default=None, description="GCP / Firebase project ID")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    # Firebase
    firebase_credentials_json: Optional[str] = Field(
        default=None,
        validation_alias="GOOGLE_APPLICATION_CREDENTIALS",
        description="Path to service-account JSON file or JSON string itself.",
    )

    # Cloud Storage
    bucket_name: str = Field("catalog-media-images", validation_alias="BUCKET_NAME")
    public_images: bool = Field(
        False,
        validation_alias="PUBLIC_IMAGES",
        description="If true, uploaded images are made public instead of using signed URLs.",
    )
    signed_url_days: int = Field(7, ge=1, validation_alias="SIGNED_URL_DAYS")

    # Gallery behaviour
    max_images: int = Field(10, ge=1, validation_alias="MAX_IMAGES")
    show_default_background: bool = Field(True, validation_alias="SHOW_DEFAULT_BACKGROUND")
    default_background_url: str = Field("/image.png", validation_alias="DEFAULT_BACKGROUND_URL")
    settle_delay_seconds: float = Field(
        0.1,
        ge=0,
        validation_alias="SETTLE_DELAY_SECONDS",
        description="Pause before the final image list is reported to the owning product.",
    )

    # Optimization profile for images stored in the bucket
    product_max_dim: int = Field(1000, ge=1, validation_alias="PRODUCT_MAX_DIM")
    product_quality: float = Field(0.75, gt=0, le=1, validation_alias="PRODUCT_QUALITY")
    product_format: str = Field("webp", validation_alias="PRODUCT_FORMAT")
    product_max_kb: int = Field(400, ge=1, validation_alias="PRODUCT_MAX_KB")

    # Optimization profile for images inlined as data URIs (no product yet)
    inline_max_dim: int = Field(1200, ge=1, validation_alias="INLINE_MAX_DIM")
    inline_quality: float = Field(0.8, gt=0, le=1, validation_alias="INLINE_QUALITY")
    inline_format: str = Field("webp", validation_alias="INLINE_FORMAT")
    inline_max_kb: int = Field(500, ge=1, validation_alias="INLINE_MAX_KB")


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached Settings instance so it is only parsed once."""

    return Settings()
