"""SQLite connection management for the local Bright Track store.

Connections are pooled per database file, opened in WAL mode and returned to
the pool by the ``get_db`` context manager, which also commits or rolls back.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Iterator, Optional

from src.config.settings import DEFAULT_DB_PATH
from src.logutils import get_logger

logger = get_logger(__name__)

_POOL_SIZE = 4
_POOL_TIMEOUT = 10.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class ConnectionPool:
    """Thread-safe pool of SQLite connections for one database file."""

    def __init__(self, db_path: Path, pool_size: int = _POOL_SIZE, timeout: float = _POOL_TIMEOUT):
        """Initialize the pool.

        Args:
            db_path: Path to the SQLite database file
            pool_size: Maximum number of idle connections kept
            timeout: Seconds to wait for an idle connection
        """
        self._db_path = self._validate_path(db_path)
        self._pool_size = pool_size
        self._timeout = timeout
        self._pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self._lock = threading.Lock()
        self._created = 0
        self._closed = False

    @staticmethod
    def _validate_path(db_path: Path) -> Path:
        """Reject relative traversal in the configured path.

        Raises:
            ValueError: If the path contains ``..`` components
        """
        if ".." in Path(db_path).parts:
            raise ValueError(f"Invalid database path: {db_path}")
        return Path(db_path).resolve()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _create_connection(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA busy_timeout = 5000")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.executescript(SCHEMA)
        return conn

    def get_connection(self) -> sqlite3.Connection:
        """Take an idle connection, or open a new one while under the pool size.

        Raises:
            TimeoutError: If the pool stays exhausted for ``timeout`` seconds
        """
        try:
            conn = self._pool.get_nowait()
        except Empty:
            with self._lock:
                if self._created < self._pool_size:
                    logger.debug("Opening SQLite connection", extra={"extra_data": {"path": str(self._db_path)}})
                    conn = self._create_connection()
                    self._created += 1
                    return conn
            try:
                conn = self._pool.get(timeout=self._timeout)
            except Empty:
                logger.error(
                    "Connection pool exhausted",
                    extra={"extra_data": {"timeout": self._timeout, "pool_size": self._pool_size}},
                )
                raise TimeoutError(f"Connection pool exhausted after {self._timeout}s") from None

        try:
            conn.execute("SELECT 1")
        except sqlite3.Error:
            logger.debug("Replacing dead SQLite connection")
            conn = self._create_connection()
        return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        """Hand ``conn`` back; after ``close_all`` it is closed instead."""
        with self._lock:
            if self._closed:
                conn.close()
                return
            try:
                self._pool.put_nowait(conn)
            except Full:
                conn.close()
                self._created -= 1

    def close_all(self) -> None:
        """Close idle connections now and borrowed ones as they come back."""
        with self._lock:
            self._closed = True
            self._created = 0
            while True:
                try:
                    conn = self._pool.get_nowait()
                except Empty:
                    break
                conn.close()


_pools: dict[Path, ConnectionPool] = {}
_pools_lock = threading.Lock()


def _get_pool(db_path: Optional[Path] = None) -> ConnectionPool:
    path = Path(db_path or DEFAULT_DB_PATH).resolve()
    with _pools_lock:
        if path not in _pools:
            _pools[path] = ConnectionPool(path)
        return _pools[path]


@contextmanager
def get_db(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    """Borrow a pooled connection; commit on success, roll back on error.

    Example:
        with get_db(path) as conn:
            conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
    """
    pool = _get_pool(db_path)
    conn = pool.get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        pool.return_connection(conn)


def close_pool(db_path: Optional[Path] = None) -> None:
    """Close and forget the pool for ``db_path`` (tests use a fresh file each time)."""
    path = Path(db_path or DEFAULT_DB_PATH).resolve()
    with _pools_lock:
        pool = _pools.pop(path, None)
    if pool is not None:
        pool.close_all()


def init_store(db_path: Optional[Path] = None, force: bool = False) -> Path:
    """Create the local store file and its schema.

    Args:
        db_path: Store file (default location if omitted)
        force: Delete an existing file first

    Returns:
        Path to the store file
    """
    path = Path(db_path or DEFAULT_DB_PATH)

    if force and path.exists():
        logger.info("Removing existing local store", extra={"extra_data": {"path": str(path)}})
        close_pool(path)
        path.unlink()

    with get_db(path) as conn:
        conn.executescript(SCHEMA)

    logger.info("Local store initialized", extra={"extra_data": {"path": str(path)}})
    return path


def verify_store(db_path: Optional[Path] = None) -> dict:
    """Describe the local store: whether it exists and which keys it holds."""
    path = Path(db_path or DEFAULT_DB_PATH)
    if not path.exists():
        return {"exists": False, "keys": [], "error": "Store file not found"}

    try:
        with get_db(path) as conn:
            rows = conn.execute("SELECT key, length(value) AS size FROM kv_store ORDER BY key").fetchall()
    except sqlite3.Error as e:
        return {"exists": True, "path": str(path), "error": str(e)}

    return {
        "exists": True,
        "path": str(path),
        "keys": [row["key"] for row in rows],
        "sizes": {row["key"]: row["size"] for row in rows},
    }
