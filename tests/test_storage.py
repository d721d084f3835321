from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Forbidden

from catalog_media.config import Settings
from catalog_media.errors import UploadFailed, ValidationFailed
from catalog_media.models import SourceFile
from catalog_media.services.storage import StorageService

from conftest import make_source


def _service(**overrides):
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.generate_signed_url.return_value = "https://signed.example.com/x"
    blob.public_url = "https://storage.googleapis.com/bucket/x"
    settings = Settings(bucket_name="test-bucket", **overrides)
    return StorageService(settings=settings, client=client), client, blob


class TestStorageService:
    def test_upload_optimizes_and_signs(self):
        service, client, blob = _service()

        url = service.upload(make_source(width=3000, height=1500), "prod-9")

        assert url == "https://signed.example.com/x"
        client.bucket.assert_called_once_with("test-bucket")
        blob_name = client.bucket.return_value.blob.call_args.args[0]
        assert blob_name.startswith("products/prod-9/")
        assert blob_name.endswith(".webp")
        data = blob.upload_from_string.call_args.args[0]
        assert blob.upload_from_string.call_args.kwargs["content_type"] == "image/webp"
        assert len(data) > 0

    def test_public_images(self):
        service, _, blob = _service(public_images=True)
        assert service.upload(make_source(), "prod-9") == "https://storage.googleapis.com/bucket/x"
        blob.make_public.assert_called_once()
        blob.generate_signed_url.assert_not_called()

    def test_rejects_invalid_file_before_upload(self):
        service, _, blob = _service()
        with pytest.raises(ValidationFailed):
            service.upload(SourceFile(name="a.txt", content_type="text/plain", data=b"x"), "p")
        blob.upload_from_string.assert_not_called()

    def test_storage_error_becomes_upload_failed(self):
        service, _, blob = _service()
        blob.upload_from_string.side_effect = Forbidden("denied")
        with pytest.raises(UploadFailed, match="denied"):
            service.upload(make_source(), "prod-9")
