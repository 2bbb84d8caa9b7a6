import logging
import sqlite3
from datetime import datetime
from typing import Callable, List, Sequence

from rendercache.domain.models import PixelSet, RenderingSettings, ThumbnailRecord
from rendercache.domain.repositories import IUpdateService, Record
from rendercache.infrastructure.db.pool import ConnectionPool
from rendercache.infrastructure.db.schema import to_db_time, utc_now

_logger = logging.getLogger(__name__)


class SQLiteUpdateService(IUpdateService):
    """Bulk insert/update against the SQLite store.

    Every record saved in one call shares a single update time, taken from
    *clock*, in the same way a database transaction shares one update event.
    Records are not mutated; callers re-read them to learn ids and times.
    """

    def __init__(self, pool: ConnectionPool, clock: Callable[[], datetime] = utc_now):
        self._pool = pool
        self._clock = clock

    def save_all(self, records: Sequence[Record]) -> List[int]:
        if not records:
            return []
        stamp = to_db_time(self._clock())
        ids: List[int] = []
        with self._pool.connection() as conn:
            for record in records:
                if isinstance(record, ThumbnailRecord):
                    ids.append(self._save_thumbnail(conn, record, stamp))
                elif isinstance(record, RenderingSettings):
                    ids.append(self._save_settings(conn, record, stamp))
                elif isinstance(record, PixelSet):
                    ids.append(self._save_pixels(conn, record, stamp))
                else:
                    raise TypeError(f"Cannot save {type(record).__name__}")
        _logger.debug("Saved %d records at %s", len(ids), stamp)
        return ids

    @staticmethod
    def _require_owner(record) -> int:
        if record.owner_id is None:
            raise ValueError(f"{type(record).__name__} for pixel set {record.pixels.id} has no owner")
        return record.owner_id

    def _save_thumbnail(self, conn: sqlite3.Connection, record: ThumbnailRecord, stamp: str) -> int:
        owner_id = self._require_owner(record)
        values = (record.pixels_id, owner_id, record.size_x, record.size_y, record.mime_type, stamp)
        if record.id is None:
            cursor = conn.execute(
                "INSERT INTO thumbnails (pixels_id, owner_id, size_x, size_y, mime_type, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                values,
            )
            return cursor.lastrowid
        conn.execute(
            "UPDATE thumbnails SET pixels_id = ?, owner_id = ?, size_x = ?, size_y = ?, "
            "mime_type = ?, updated_at = ? WHERE id = ?",
            values + (record.id,),
        )
        return record.id

    def _save_settings(self, conn: sqlite3.Connection, record: RenderingSettings, stamp: str) -> int:
        owner_id = self._require_owner(record)
        values = (record.pixels_id, owner_id, record.model, record.default_z, record.default_t, stamp)
        if record.id is None:
            cursor = conn.execute(
                "INSERT INTO rendering_settings "
                "(pixels_id, owner_id, model, default_z, default_t, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (pixels_id, owner_id) DO UPDATE SET "
                "model = excluded.model, default_z = excluded.default_z, "
                "default_t = excluded.default_t, updated_at = excluded.updated_at",
                values,
            )
            row = conn.execute(
                "SELECT id FROM rendering_settings WHERE pixels_id = ? AND owner_id = ?",
                (record.pixels_id, owner_id),
            ).fetchone()
            return row["id"] if row else cursor.lastrowid
        conn.execute(
            "UPDATE rendering_settings SET pixels_id = ?, owner_id = ?, model = ?, "
            "default_z = ?, default_t = ?, updated_at = ? WHERE id = ?",
            values + (record.id,),
        )
        return record.id

    def _save_pixels(self, conn: sqlite3.Connection, record: PixelSet, stamp: str) -> int:
        if record.owner_id is None:
            raise ValueError(f"Pixel set {record.id} has no owner")
        conn.execute(
            "INSERT INTO pixels (id, size_x, size_y, owner_id, updated_at) VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT (id) DO UPDATE SET size_x = excluded.size_x, size_y = excluded.size_y, "
            "owner_id = excluded.owner_id, updated_at = excluded.updated_at",
            (record.id, record.size_x, record.size_y, record.owner_id, stamp),
        )
        return record.id
