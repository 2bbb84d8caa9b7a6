from .sqlite_query_service import SQLiteQueryService
from .sqlite_update_service import SQLiteUpdateService

__all__ = ["SQLiteQueryService", "SQLiteUpdateService"]
