import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from rendercache.config import DB_POOL_SIZE, DB_POOL_TIMEOUT_SEC
from rendercache.errors import ConnectionPoolExhausted, DatabaseError

from .retry import ConnectionRetryPolicy

LOGGER = logging.getLogger(__name__)


class ConnectionPool:
    """Bounded pool of SQLite connections created on demand.

    ``connection()`` commits when the block succeeds and rolls back when it
    raises.  ``sqlite3`` failures escaping the block are re-raised as
    :class:`DatabaseError`.
    """

    def __init__(
        self,
        db_path: Path,
        pool_size: int = DB_POOL_SIZE,
        timeout: float = DB_POOL_TIMEOUT_SEC,
        retry_policy: Optional[ConnectionRetryPolicy] = None,
    ):
        self._db_path = Path(db_path)
        self._pool_size = pool_size
        self._timeout = timeout
        self._retry = retry_policy or ConnectionRetryPolicy()
        self._pool: queue.Queue = queue.Queue(maxsize=pool_size)
        self._created = 0
        self._lock = threading.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _create_connection(self) -> sqlite3.Connection:
        def connect() -> sqlite3.Connection:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            return conn

        return self._retry.call(connect, retry_on=(sqlite3.OperationalError,))

    def _acquire(self) -> sqlite3.Connection:
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._created < self._pool_size:
                self._created += 1
                create = True
            else:
                create = False
        if create:
            try:
                return self._create_connection()
            except BaseException:
                with self._lock:
                    self._created -= 1
                raise

        try:
            return self._pool.get(timeout=self._timeout)
        except queue.Empty:
            raise ConnectionPoolExhausted(
                f"No connections available within {self._timeout}s "
                f"(pool_size={self._pool_size})"
            )

    def _release(self, conn: sqlite3.Connection):
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._acquire()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise DatabaseError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release(conn)

    def close_all(self):
        while True:
            try:
                conn = self._pool.get_nowait()
            except queue.Empty:
                break
            conn.close()
        with self._lock:
            self._created = 0
