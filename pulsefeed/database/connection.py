"""
PulseFeed Database Connections
==============================

Bounded pool of SQLite connections shared by the repository, the API
threads and the background workers. Connections are opened lazily in WAL
mode so readers never block the ingestion writer.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from queue import Empty, Full, LifoQueue
from typing import Any, Dict, Generator, List, Optional

logger = logging.getLogger(__name__)

PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


@dataclass
class PoolStats:
    """Connection pool counters."""

    opened: int = 0
    idle: int = 0
    overflow: int = 0


class DatabaseConnection:
    """Thread-safe SQLite connection pool.

    At most ``pool_size`` connections are kept idle. A caller that finds the
    pool empty opens an overflow connection, closed again on release when the
    pool is already full.
    """

    def __init__(
        self,
        db_path: str = "data/pulsefeed.db",
        pool_size: int = 5,
        busy_timeout: float = 30.0,
    ):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Idle connections kept for reuse
            busy_timeout: Seconds a statement waits on a locked database
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self._idle: LifoQueue = LifoQueue(maxsize=pool_size)
        self._lock = threading.Lock()
        self._stats = PoolStats()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=self.busy_timeout)
        for pragma in PRAGMAS:
            conn.execute(pragma)
        conn.row_factory = sqlite3.Row

        with self._lock:
            self._stats.opened += 1
        return conn

    def _acquire(self) -> sqlite3.Connection:
        try:
            return self._idle.get_nowait()
        except Empty:
            pass

        with self._lock:
            at_capacity = self._stats.opened >= self.pool_size
            if at_capacity:
                self._stats.overflow += 1
        if at_capacity:
            logger.debug("Connection pool busy, opening overflow connection")
        return self._open()

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.rollback()
        try:
            self._idle.put_nowait(conn)
        except Full:
            conn.close()
            with self._lock:
                self._stats.opened -= 1

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection; uncommitted work is rolled back on release.

        Usage:
            with db.get_connection() as conn:
                conn.execute("INSERT OR IGNORE INTO news_items ...")
                conn.commit()
        """
        conn = self._acquire()
        try:
            yield conn
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run statements in an immediate transaction, committed on success."""
        with self.get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    def execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchall()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self.get_connection() as conn:
            return conn.execute(query, params).fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute a write statement and commit.

        Returns:
            Number of affected rows
        """
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def ping(self) -> bool:
        """Check the database answers a trivial query."""
        try:
            self.execute_one("SELECT 1")
            return True
        except sqlite3.Error as e:
            logger.error(f"Database ping failed: {e}")
            return False

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                opened=self._stats.opened,
                idle=self._idle.qsize(),
                overflow=self._stats.overflow,
            )

    def get_database_info(self) -> Dict[str, Any]:
        """File size and pool counters for the ``stats`` command."""
        with self.get_connection() as conn:
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]

        pool = self.stats()
        return {
            "database_size_mb": page_count * page_size / (1024 * 1024),
            "connections_open": pool.opened,
            "connections_idle": pool.idle,
            "overflow_connections": pool.overflow,
        }

    def close_all_connections(self) -> None:
        """Close every idle connection."""
        closed = 0
        while True:
            try:
                conn = self._idle.get_nowait()
            except Empty:
                break
            conn.close()
            closed += 1

        with self._lock:
            self._stats.opened = max(self._stats.opened - closed, 0)
        logger.debug(f"Closed {closed} database connections")


_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(db_path: str = "data/pulsefeed.db", pool_size: int = 5) -> DatabaseConnection:
    """Get the process-wide connection pool, created on first use.

    Args:
        db_path: Path to database file
        pool_size: Pool size used when the manager is first created

    Returns:
        Database connection manager instance
    """
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseConnection(db_path, pool_size)

    return _db_manager
