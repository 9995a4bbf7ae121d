from __future__ import annotations

import logging
import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from uuid import uuid4

from fastapi import UploadFile, status

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class UploadValidationError(ValueError):
    """Raised when an upload is rejected before any processing."""

    status_code = status.HTTP_400_BAD_REQUEST


class MissingUploadError(UploadValidationError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnsupportedMediaTypeError(UploadValidationError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class UploadTooLargeError(UploadValidationError):
    status_code = 413


class StagingError(RuntimeError):
    """Raised when an upload cannot be written to the staging directory."""


def validate_upload(content_type: Optional[str], size: int, max_bytes: int) -> None:
    """Reject non-image MIME types and oversized payloads."""
    if not content_type or not content_type.lower().startswith("image/"):
        raise UnsupportedMediaTypeError("Only image files are allowed!")
    if size > max_bytes:
        raise UploadTooLargeError(f"File too large; the limit is {max_bytes} bytes.")


async def read_upload(upload: UploadFile | None, max_bytes: int) -> bytes:
    """
    Read an uploaded photo into memory after validating it.

    At most `max_bytes + 1` bytes are read so oversized files are detected
    without buffering them whole.
    """
    if upload is None or not upload.filename:
        raise MissingUploadError("No photo uploaded")

    validate_upload(upload.content_type, 0, max_bytes)
    contents = await upload.read(max_bytes + 1)
    validate_upload(upload.content_type, len(contents), max_bytes)
    if not contents:
        raise MissingUploadError("Uploaded photo is empty")
    return contents


def safe_filename(filename: Optional[str]) -> str:
    name = Path(filename or "").name
    return _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._") or "upload"


class UploadStager:
    """
    Short-lived filesystem staging for uploaded photos.

    Files are named `<epoch-ms>-<random>-<original name>` so concurrent
    uploads of the same file never collide.
    """

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def stage(self, contents: bytes, filename: Optional[str]) -> Path:
        name = f"{int(time.time() * 1000)}-{uuid4().hex[:8]}-{safe_filename(filename)}"
        path = self._base_dir / name
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(contents)
        except OSError as exc:
            raise StagingError("Failed to stage uploaded photo.") from exc
        logger.debug("Staged upload at %s", path)
        return path

    def discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove staged upload %s: %s", path, exc)

    @contextmanager
    def staged(self, contents: bytes, filename: Optional[str]) -> Iterator[Path]:
        """Stage `contents` for the duration of the block, then delete it."""
        path = self.stage(contents, filename)
        try:
            yield path
        finally:
            self.discard(path)
