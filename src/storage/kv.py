"""Key-value backends for the local store.

Both implementations speak the same small synchronous interface: string keys,
string values, ``get``/``set``/``remove``. Backend failures are reported as
``StorageError`` so the layer above has a single thing to catch.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .connection import get_db
from .errors import StorageError


@runtime_checkable
class KeyValueStore(Protocol):
    """Synchronous string key-value storage."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class SQLiteKeyValueStore:
    """Key-value pairs persisted in the ``kv_store`` table of a SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def get(self, key: str) -> Optional[str]:
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except (sqlite3.Error, OSError, TimeoutError, ValueError) as e:
            raise StorageError(f"Could not read {key!r}: {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
        except (sqlite3.Error, OSError, TimeoutError, ValueError) as e:
            raise StorageError(f"Could not write {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except (sqlite3.Error, OSError, TimeoutError, ValueError) as e:
            raise StorageError(f"Could not remove {key!r}: {e}") from e

    def keys(self) -> List[str]:
        try:
            with get_db(self.db_path) as conn:
                rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        except (sqlite3.Error, OSError, TimeoutError, ValueError) as e:
            raise StorageError(f"Could not list keys: {e}") from e
        return [row["key"] for row in rows]


class MemoryKeyValueStore:
    """In-process store; ``max_bytes`` simulates a full browser quota."""

    def __init__(self, max_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if self.max_bytes is not None:
                used = sum(len(v) for k, v in self._data.items() if k != key)
                if used + len(value) > self.max_bytes:
                    raise StorageError(f"Quota exceeded writing {key!r}")
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)
