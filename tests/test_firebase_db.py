from unittest.mock import MagicMock

from catalog_media.services.firebase_db import FirebaseDB


def _images_ref(root):
    return root.child.return_value.child.return_value.child.return_value


class TestFirebaseDB:
    def test_set_product_images(self):
        root = MagicMock()
        FirebaseDB(root=root).set_product_images("prod-1", ["https://a", "https://b"])

        root.child.assert_called_with("products")
        root.child.return_value.child.assert_called_with("prod-1")
        _images_ref(root).set.assert_called_once_with(["https://a", "https://b"])

    def test_get_product_images_list(self):
        root = MagicMock()
        _images_ref(root).get.return_value = ["https://a", None, "https://b"]
        assert FirebaseDB(root=root).get_product_images("prod-1") == ["https://a", "https://b"]

    def test_get_product_images_sparse_dict(self):
        root = MagicMock()
        _images_ref(root).get.return_value = {"2": "https://c", "0": "https://a"}
        assert FirebaseDB(root=root).get_product_images("prod-1") == ["https://a", "https://c"]

    def test_get_product_images_missing(self):
        root = MagicMock()
        _images_ref(root).get.return_value = None
        assert FirebaseDB(root=root).get_product_images("prod-1") == []
