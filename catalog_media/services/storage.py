"""Google Cloud Storage helper for product images.

Images are optimized with the product profile before upload and stored under
the following key pattern:

    products/{product_id}/{timestamp}-{random}.{ext}

Callers receive an externally accessible URL (signed or public depending on
configuration).
"""
from __future__ import annotations

import logging
import secrets
import time
from datetime import timedelta
from functools import lru_cache
from typing import Protocol

from google.api_core.exceptions import GoogleAPIError
from google.cloud import storage

from catalog_media.config import Settings, get_settings
from catalog_media.errors import UploadFailed, ValidationFailed
from catalog_media.models import OptimizationOptions, SourceFile
from catalog_media.services import optimizer

logger = logging.getLogger(__name__)


class ImageStore(Protocol):
    """Durable image storage keyed by the owning product."""

    def upload(self, source: SourceFile, owner_id: str) -> str:  # pragma: no cover
        ...


def product_options(settings: Settings) -> OptimizationOptions:
    return OptimizationOptions(
        max_width=settings.product_max_dim,
        max_height=settings.product_max_dim,
        quality=settings.product_quality,
        target_format=settings.product_format,
        max_bytes=settings.product_max_kb * 1024,
    )


class StorageService:  # pylint: disable=too-few-public-methods
    """Wrapper around Google Cloud Storage uploads and signed URLs."""

    def __init__(self, settings: Settings | None = None, client: storage.Client | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._bucket_ref: storage.Bucket | None = None

    @property
    def _bucket(self) -> storage.Bucket:
        # Client creation needs credentials; defer it until the first upload
        if self._bucket_ref is None:
            if self._client is None:
                self._client = storage.Client(project=self._settings.project_id)
            self._bucket_ref = self._client.bucket(self._settings.bucket_name)
        return self._bucket_ref

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def upload(self, source: SourceFile, owner_id: str) -> str:
        """Optimize *source* and upload it for product *owner_id*; return its URL.

        Raises
        ------
        ValidationFailed
            If the file is not an accepted image.
        EncodingFailed
            If the image could not be optimized.
        UploadFailed
            If Cloud Storage rejected the upload.
        """

        validation = optimizer.validate(source)
        if not validation.valid:
            raise ValidationFailed(validation.error)

        image = optimizer.optimize(source, product_options(self._settings))

        ext = self._settings.product_format
        blob_name = f"products/{owner_id}/{int(time.time() * 1000)}-{secrets.token_hex(5)}.{ext}"
        blob = self._bucket.blob(blob_name)

        try:
            blob.upload_from_string(image.data, content_type=image.content_type)
        except GoogleAPIError as exc:
            logger.error("Upload of %s to %s failed: %s", source.name, blob_name, exc)
            raise UploadFailed(f"Storage upload failed: {exc}") from exc

        url = self._blob_url(blob)
        logger.info(
            "Uploaded %s to gs://%s/%s (%s)",
            source.name,
            self._settings.bucket_name,
            blob_name,
            optimizer.format_file_size(image.size),
        )
        return url

    def _blob_url(self, blob: storage.Blob) -> str:
        expires = timedelta(days=self._settings.signed_url_days)
        if self._settings.public_images:
            try:
                blob.make_public()
                return blob.public_url
            except GoogleAPIError as exc:  # pragma: no cover
                logger.error("Failed to make blob public: %s", exc)
        try:
            return blob.generate_signed_url(expires)
        except (GoogleAPIError, AttributeError, ValueError) as exc:
            raise UploadFailed(f"Could not create download URL: {exc}") from exc


@lru_cache()
def get_storage_service() -> StorageService:  # pragma: no cover
    return StorageService()
