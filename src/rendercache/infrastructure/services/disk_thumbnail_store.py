"""Rendered thumbnail bytes on disk, bucketed by a hash of the record id."""

from __future__ import annotations

import hashlib
import io
import logging
from pathlib import Path

from PIL import Image

from rendercache.application.interfaces import IThumbnailStore
from rendercache.config import SUPPORTED_MIME_TYPES
from rendercache.domain.models import ThumbnailRecord
from rendercache.errors import ThumbnailStoreError

LOGGER = logging.getLogger(__name__)

_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png", "WEBP": ".webp"}


class DiskThumbnailStore(IThumbnailStore):
    """Stores one file per persisted thumbnail record.

    Only records with an id can be stored.  The layout is
    ``<root>/<2 hex chars>/<md5 of id>.<ext>`` with the extension taken from
    the record's MIME type.
    """

    def __init__(self, root: Path):
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def image_exists(self, record: ThumbnailRecord) -> bool:
        if record.id is None:
            return False
        try:
            return self.path_for(record).stat().st_size > 0
        except FileNotFoundError:
            return False

    def read_bytes(self, record: ThumbnailRecord) -> bytes | None:
        if record.id is None:
            return None
        path = self.path_for(record)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write_bytes(self, record: ThumbnailRecord, data: bytes) -> Path:
        path = self.path_for(record)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_bytes(data)
        tmp.replace(path)
        return path

    def write_image(self, record: ThumbnailRecord, image: Image.Image) -> Path:
        """Encode *image* in the record's format and store it.

        The image must already have the record's dimensions; resampling
        is the renderer's job.
        """

        if image.size != (record.size_x, record.size_y):
            raise ValueError(
                f"Image is {image.size[0]}x{image.size[1]}, "
                f"record {record.id} expects {record.size_x}x{record.size_y}"
            )
        fmt = self._format_for(record)
        if fmt == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return self.write_bytes(record, buffer.getvalue())

    def invalidate(self, record: ThumbnailRecord) -> None:
        if record.id is None:
            return
        self.path_for(record).unlink(missing_ok=True)

    def path_for(self, record: ThumbnailRecord) -> Path:
        if record.id is None:
            raise ThumbnailStoreError(
                f"Thumbnail for pixel set {record.pixels_id} has not been persisted"
            )
        # MD5 only spreads files evenly across bucket directories.
        hash_hex = hashlib.md5(str(record.id).encode()).hexdigest()  # noqa: S324
        ext = _EXTENSIONS[self._format_for(record)]
        return self._root / hash_hex[:2] / f"{hash_hex}{ext}"

    @staticmethod
    def _format_for(record: ThumbnailRecord) -> str:
        try:
            return SUPPORTED_MIME_TYPES[record.mime_type]
        except KeyError:
            raise ThumbnailStoreError(f"Unsupported thumbnail MIME type {record.mime_type!r}") from None
