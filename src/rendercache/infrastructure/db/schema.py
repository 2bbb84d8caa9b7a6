"""Table layout and timestamp helpers for the SQLite persistence layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from dateutil.parser import isoparse

from .pool import ConnectionPool

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS pixels (
        id INTEGER PRIMARY KEY,
        size_x INTEGER NOT NULL,
        size_y INTEGER NOT NULL,
        owner_id INTEGER NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rendering_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pixels_id INTEGER NOT NULL REFERENCES pixels(id),
        owner_id INTEGER NOT NULL,
        model TEXT NOT NULL DEFAULT 'rgb',
        default_z INTEGER NOT NULL DEFAULT 0,
        default_t INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL,
        UNIQUE (pixels_id, owner_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS thumbnails (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pixels_id INTEGER NOT NULL REFERENCES pixels(id),
        owner_id INTEGER NOT NULL,
        size_x INTEGER NOT NULL,
        size_y INTEGER NOT NULL,
        mime_type TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_settings_pixels_owner ON rendering_settings(pixels_id, owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_thumbnails_lookup ON thumbnails(pixels_id, size_x, size_y, owner_id)",
)


def init_schema(pool: ConnectionPool) -> None:
    with pool.connection() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: datetime) -> str:
    """Serialise *value* with microsecond precision, naive values taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
