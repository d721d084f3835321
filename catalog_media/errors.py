"""Exceptions raised by the image pipeline.

Only ``IntakeRejected`` reaches callers directly; the per-file errors are
caught by the upload coordinator and recorded on the failing entry.
"""
from __future__ import annotations


class ImagePipelineError(Exception):
    """Base class for all image pipeline errors."""


class IntakeRejected(ImagePipelineError):
    """A batch was refused as a whole; the gallery is left untouched."""

    def __init__(self, message: str, *, remaining: int | None = None) -> None:
        super().__init__(message)
        self.remaining = remaining


class ValidationFailed(ImagePipelineError):
    """A file failed the type, size or format checks."""


class EncodingFailed(ImagePipelineError):
    """Decoding, resizing or re-encoding an image failed."""


class UploadFailed(ImagePipelineError):
    """The durable image store rejected or could not complete an upload."""
