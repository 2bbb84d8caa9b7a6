import logging
from typing import Any, Iterable, List, Optional, Tuple

from rendercache.config import SQLITE_MAX_PARAMS
from rendercache.domain.models import (
    EntityKind,
    OwnerScope,
    PixelSet,
    QueryCriteria,
    RenderingSettings,
    ThumbnailRecord,
)
from rendercache.domain.repositories import IQueryService, Record
from rendercache.infrastructure.db.pool import ConnectionPool
from rendercache.infrastructure.db.schema import from_db_time

_logger = logging.getLogger(__name__)

# Columns of the joined pixel set, aliased so they don't clash with the
# owning record's own id/owner/timestamp columns.
_PIXELS_JOIN_COLUMNS = (
    "p.size_x AS p_size_x, p.size_y AS p_size_y, "
    "p.owner_id AS p_owner_id, p.updated_at AS p_updated_at"
)

_TABLES = {
    EntityKind.RENDERING_SETTINGS: ("rendering_settings", "r"),
    EntityKind.THUMBNAIL: ("thumbnails", "t"),
}


class SQLiteQueryService(IQueryService):
    """Bulk reads against the SQLite store.

    Settings and thumbnail rows come back with their pixel set loaded, so
    callers never need a second round-trip for dimensions.
    """

    def __init__(self, pool: ConnectionPool, chunk_size: int = SQLITE_MAX_PARAMS - 4):
        self._pool = pool
        self._chunk_size = max(1, chunk_size)

    def find_all_by_ids(
        self, kind: EntityKind, criteria: QueryCriteria, ids: Iterable[int]
    ) -> List[Record]:
        wanted = sorted(set(ids))
        if not wanted:
            return []
        results: List[Record] = []
        with self._pool.connection() as conn:
            for start in range(0, len(wanted), self._chunk_size):
                chunk = wanted[start:start + self._chunk_size]
                sql, params = self._build_sql(kind, criteria, chunk)
                rows = conn.execute(sql, params).fetchall()
                results.extend(self._map_row(kind, row) for row in rows)
        _logger.debug(
            "find_all_by_ids(%s, scope=%s, size=%s) -> %d of %d ids",
            kind.value,
            criteria.owner_scope.value if criteria.owner_scope else None,
            criteria.dimensions.as_tuple() if criteria.dimensions else None,
            len(results),
            len(wanted),
        )
        return results

    def get(self, kind: EntityKind, id: int) -> Optional[Record]:
        if kind == EntityKind.PIXELS:
            sql = "SELECT * FROM pixels WHERE id = ?"
        else:
            table, alias = _TABLES[kind]
            sql = (
                f"SELECT {alias}.*, {_PIXELS_JOIN_COLUMNS} FROM {table} {alias} "
                f"JOIN pixels p ON p.id = {alias}.pixels_id WHERE {alias}.id = ?"
            )
        with self._pool.connection() as conn:
            row = conn.execute(sql, (id,)).fetchone()
        return self._map_row(kind, row) if row else None

    def _build_sql(
        self, kind: EntityKind, criteria: QueryCriteria, ids: List[int]
    ) -> Tuple[str, List[Any]]:
        placeholders = ", ".join("?" for _ in ids)
        params: List[Any] = list(ids)

        if kind == EntityKind.PIXELS:
            sql = f"SELECT * FROM pixels WHERE id IN ({placeholders})"
            if criteria.owner_scope == OwnerScope.ACTING_USER:
                sql += " AND owner_id = ?"
                params.append(criteria.owner_id)
            return sql + " ORDER BY id", params

        table, alias = _TABLES[kind]
        conditions = [f"{alias}.pixels_id IN ({placeholders})"]
        if criteria.owner_scope == OwnerScope.ACTING_USER:
            conditions.append(f"{alias}.owner_id = ?")
            params.append(criteria.owner_id)
        elif criteria.owner_scope == OwnerScope.PIXELS_OWNER:
            conditions.append(f"{alias}.owner_id = p.owner_id")
        if kind == EntityKind.THUMBNAIL:
            if criteria.size_x is not None:
                conditions.append("t.size_x = ?")
                params.append(criteria.size_x)
            if criteria.size_y is not None:
                conditions.append("t.size_y = ?")
                params.append(criteria.size_y)

        # Oldest first so the most recent row for a pixel set is recorded last.
        sql = (
            f"SELECT {alias}.*, {_PIXELS_JOIN_COLUMNS} FROM {table} {alias} "
            f"JOIN pixels p ON p.id = {alias}.pixels_id "
            f"WHERE {' AND '.join(conditions)} "
            f"ORDER BY {alias}.updated_at, {alias}.id"
        )
        return sql, params

    def _map_row(self, kind: EntityKind, row) -> Record:
        if kind == EntityKind.PIXELS:
            return PixelSet(
                id=row["id"],
                size_x=row["size_x"],
                size_y=row["size_y"],
                owner_id=row["owner_id"],
                updated_at=from_db_time(row["updated_at"]),
            )

        pixels = PixelSet(
            id=row["pixels_id"],
            size_x=row["p_size_x"],
            size_y=row["p_size_y"],
            owner_id=row["p_owner_id"],
            updated_at=from_db_time(row["p_updated_at"]),
        )
        if kind == EntityKind.RENDERING_SETTINGS:
            return RenderingSettings(
                id=row["id"],
                pixels=pixels,
                owner_id=row["owner_id"],
                updated_at=from_db_time(row["updated_at"]),
                model=row["model"],
                default_z=row["default_z"],
                default_t=row["default_t"],
            )
        return ThumbnailRecord(
            id=row["id"],
            pixels=pixels,
            size_x=row["size_x"],
            size_y=row["size_y"],
            mime_type=row["mime_type"],
            owner_id=row["owner_id"],
            updated_at=from_db_time(row["updated_at"]),
        )
