"""Firebase Realtime Database helper for product image lists.

Committed gallery images are written to:

/products/{product_id}/images

as an ordered list of URLs; the first one is the product's main image.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import List

import firebase_admin
from firebase_admin import credentials, db

from catalog_media.config import Settings, get_settings

logger = logging.getLogger(__name__)


def initialise_firebase(settings: Settings) -> None:
    """Initialise the Firebase Admin SDK exactly once."""

    if firebase_admin._apps:  # type: ignore[attr-defined]
        return
    try:
        if settings.firebase_credentials_json:
            # Accept path or JSON string
            cred_obj: credentials.Base = (
                credentials.Certificate(settings.firebase_credentials_json)
                if settings.firebase_credentials_json.endswith(".json")
                else credentials.Certificate(json.loads(settings.firebase_credentials_json))
            )
        else:
            # Attempt default credentials (useful on Cloud Run with workload identity)
            cred_obj = credentials.ApplicationDefault()

        firebase_admin.initialize_app(
            cred_obj,
            {
                "databaseURL": f"https://{settings.project_id}.firebaseio.com"
                if settings.project_id
                else None,
            },
        )
        logger.info("Firebase Admin SDK initialised.")
    except Exception as exc:  # pragma: no cover
        logger.exception("Failed to initialise Firebase Admin SDK: %s", exc)
        raise


class FirebaseDB:  # pylint: disable=too-few-public-methods
    """Wrapper around Firebase Realtime Database operations."""

    def __init__(self, root: db.Reference | None = None) -> None:
        if root is None:
            initialise_firebase(get_settings())
            root = db.reference("/")
        self._root = root

    def _images_ref(self, product_id: str):
        return self._root.child("products").child(product_id).child("images")

    def get_product_images(self, product_id: str) -> List[str]:
        data = self._images_ref(product_id).get()
        if not data:
            return []
        # Lists come back as dicts when keys are sparse
        if isinstance(data, dict):
            data = [data[k] for k in sorted(data, key=int)]
        return [url for url in data if url]

    def set_product_images(self, product_id: str, images: List[str]) -> None:
        self._images_ref(product_id).set(list(images))
        logger.debug("Stored %d image(s) for product_id=%s", len(images), product_id)


@lru_cache()
def get_firebase_db() -> FirebaseDB:  # pragma: no cover
    return FirebaseDB()
