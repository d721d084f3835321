from .image_data import ImageFormat, OptimizationOptions, OptimizedImage, ValidationResult
from .image_entry import (
    IN_FLIGHT,
    TRANSIENT_SCHEME,
    EntryStatus,
    GallerySnapshot,
    ImageEntry,
)
from .notification import Notification
from .source_file import SourceFile

__all__ = [
    "IN_FLIGHT",
    "TRANSIENT_SCHEME",
    "EntryStatus",
    "GallerySnapshot",
    "ImageEntry",
    "ImageFormat",
    "Notification",
    "OptimizationOptions",
    "OptimizedImage",
    "SourceFile",
    "ValidationResult",
]
