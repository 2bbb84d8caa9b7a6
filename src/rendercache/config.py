"""Default configuration values for rendercache."""

from __future__ import annotations

from typing import Final

# MIME type assigned to thumbnail records created on demand.  The disk store
# derives the on-disk image format from this value.
DEFAULT_MIME_TYPE: Final[str] = "image/jpeg"

# Longest side used when a caller asks for thumbnails without a size.
DEFAULT_LONGEST_SIDE: Final[int] = 96

SUPPORTED_MIME_TYPES: Final[dict[str, str]] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

DB_FILE_NAME: Final[str] = "rendercache.db"
DB_POOL_SIZE: Final[int] = 5
DB_POOL_TIMEOUT_SEC: Final[float] = 30.0

# Connection acquisition retries.  Errors older than ``DB_ERROR_WINDOW_SEC``
# no longer count towards the back-off, which grows with the square root of
# the number of recent failures and is capped at ``DB_MAX_BACKOFF_SEC``.
DB_MAX_RETRIES: Final[int] = 3
DB_MAX_BACKOFF_SEC: Final[float] = 10.0
DB_ERROR_WINDOW_SEC: Final[float] = 60.0

# SQLite refuses statements with more host parameters than this (the
# historical SQLITE_MAX_VARIABLE_NUMBER), so ``id IN (...)`` reads are chunked.
SQLITE_MAX_PARAMS: Final[int] = 999

THUMBNAIL_DIR_NAME: Final[str] = "thumbnails"
