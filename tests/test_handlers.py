from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from catalog_media.config import Settings
from catalog_media.handlers.gallery_handler import get_coordinator
from catalog_media.main import app
from catalog_media.services.coordinator import UploadCoordinator
from catalog_media.services.registry import GalleryRegistry, get_registry

from conftest import FakeStore, make_image_bytes, make_source


@pytest.fixture
def registry():
    return GalleryRegistry(settings=Settings(max_images=3, settle_delay_seconds=0))


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(registry, store):
    settings = Settings(settle_delay_seconds=0)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_coordinator] = lambda: UploadCoordinator(store, settings=settings)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _png(name):
    return ("files", (name, make_image_bytes(), "image/png"))


def _create(client, **body):
    response = client.post("/galleries", json=body)
    assert response.status_code == 201
    return response.json()


class TestGalleryEndpoints:
    def test_upload_flow_for_new_product(self, client):
        gallery = _create(client)

        response = client.post(f"/galleries/{gallery['id']}/images", files=[_png("a.png"), _png("b.png")])

        assert response.status_code == 202
        body = response.json()
        assert [e["status"] for e in body["entries"]] == ["pending-local", "pending-local"]
        preview_src = body["entries"][0]["src"]
        assert preview_src.startswith("/previews/")
        assert body["entries"][0]["draggable"] is False

        # Background processing has finished once the request returns
        body = client.get(f"/galleries/{gallery['id']}").json()
        assert [e["status"] for e in body["entries"]] == ["ready", "ready"]
        assert [e["label"] for e in body["entries"]] == ["Main Image", "#2"]
        assert body["entries"][0]["primary"] is True
        assert len(body["images"]) == 2
        assert all(url.startswith("data:image/webp;base64,") for url in body["images"])

        # The preview was revoked when the image was committed
        assert client.get(preview_src).status_code == 404

    def test_preview_served_while_pending(self, client, registry):
        gallery = _create(client)
        g = registry.get(gallery["id"])
        (entry_id,) = g.add_files([make_source(name="p.png")])
        token = g.snapshot.find(entry_id).locator.split(":", 1)[1]

        response = client.get(f"/previews/{token}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"

    def test_batch_over_limit_rejected(self, client):
        gallery = _create(client, existing_images=["https://cdn/1.webp", "https://cdn/2.webp"])

        response = client.post(f"/galleries/{gallery['id']}/images", files=[_png("a.png"), _png("b.png")])

        assert response.status_code == 422
        assert response.json()["detail"] == {
            "message": "Maximum 3 images allowed. You can add 1 more.",
            "remaining": 1,
        }
        body = client.get(f"/galleries/{gallery['id']}").json()
        assert len(body["entries"]) == 2

    def test_drop_without_images_rejected(self, client):
        gallery = _create(client)
        response = client.post(
            f"/galleries/{gallery['id']}/images?dropped=true",
            files=[("files", ("notes.txt", b"hello", "text/plain"))],
        )
        assert response.status_code == 422
        assert response.json()["detail"]["message"] == "Please drop image files only"

    def test_invalid_file_reported_in_notifications(self, client):
        gallery = _create(client)
        client.post(
            f"/galleries/{gallery['id']}/images",
            files=[_png("a.png"), ("files", ("notes.txt", b"hello", "text/plain"))],
        )

        body = client.get(f"/galleries/{gallery['id']}").json()

        assert [e["status"] for e in body["entries"]] == ["ready", "failed"]
        assert body["entries"][1]["error"] == "File must be an image"
        assert len(body["images"]) == 1
        assert any("notes.txt" in n["message"] for n in body["notifications"])

    def test_reorder_and_remove(self, client):
        gallery = _create(client, existing_images=["https://cdn/1.webp", "https://cdn/2.webp", "https://cdn/3.webp"])
        gid = gallery["id"]

        body = client.post(f"/galleries/{gid}/reorder", json={"from_index": 2, "to_index": 0}).json()
        assert body["images"] == ["https://cdn/3.webp", "https://cdn/1.webp", "https://cdn/2.webp"]

        entry_id = body["entries"][1]["id"]
        body = client.delete(f"/galleries/{gid}/images/{entry_id}").json()
        assert body["images"] == ["https://cdn/3.webp", "https://cdn/2.webp"]
        assert body["remaining"] == 1

        assert client.delete(f"/galleries/{gid}/images/{entry_id}").status_code == 404

    def test_unknown_gallery(self, client):
        assert client.get("/galleries/missing").status_code == 404
        assert client.delete("/galleries/missing").status_code == 404

    def test_close_gallery(self, client, registry):
        gallery = _create(client)
        assert client.delete(f"/galleries/{gallery['id']}").status_code == 204
        assert registry.get(gallery["id"]) is None

    def test_product_gallery_persists_to_firebase(self, client, store):
        firebase_db = MagicMock()
        firebase_db.get_product_images.return_value = ["https://cdn/existing.webp"]
        with patch("catalog_media.handlers.gallery_handler.get_firebase_db", return_value=firebase_db):
            gallery = _create(client, product_id="prod-7")

        assert gallery["images"] == ["https://cdn/existing.webp"]
        client.post(f"/galleries/{gallery['id']}/images", files=[_png("a.png")])

        assert store.calls == [("a.png", "prod-7")]
        firebase_db.set_product_images.assert_called_once_with(
            "prod-7",
            ["https://cdn/existing.webp", "https://cdn.example.com/products/prod-7/a.png.webp"],
        )


class TestImageEndpoints:
    def test_resolve_empty_locator(self, client):
        body = client.get("/images/resolve", params={"locator": ""}).json()
        assert body["src"] == "/image.png"

    def test_resolve_without_default_background(self, client):
        body = client.get(
            "/images/resolve", params={"locator": "", "show_default_background": "false"}
        ).json()
        assert body["src"] == ""

    def test_resolve_after_load_failure(self, client):
        body = client.get(
            "/images/resolve", params={"locator": "https://broken", "load_failed": "true"}
        ).json()
        assert body["src"] == "/image.png"

    def test_placeholder(self, client):
        body = client.get("/images/placeholder", params={"width": 4, "height": 4}).json()
        assert body["src"].startswith("data:image/png;base64,")

    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}
