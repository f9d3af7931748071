"""Persisted entity collections for local (offline/demo) mode.

Each collection is a JSON array stored under one key, ``brighttrack_<name>``.
Reads of a missing, corrupt or unreachable collection return an empty list;
writes replace the whole array in a single key write. Nothing here raises on
storage trouble: failures are logged and the collection behaves as empty.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from src.logutils import get_logger

from .errors import StorageError
from .kv import KeyValueStore

logger = get_logger(__name__)

KEY_PREFIX = "brighttrack_"

STUDENTS = "students"
DAILY_EVALUATIONS = "daily_evaluations"
SETTINGS = "settings"
CONTACT_LOGS = "contact_logs"
BEHAVIOR_SUMMARIES = "behavior_summaries"
INCIDENT_REPORTS = "incident_reports"
DASHBOARDS = "dashboards"

COLLECTIONS = (
    STUDENTS,
    DAILY_EVALUATIONS,
    SETTINGS,
    CONTACT_LOGS,
    BEHAVIOR_SUMMARIES,
    INCIDENT_REPORTS,
    DASHBOARDS,
)


class EntityStore:
    """get-all / save-all / clear over named collections in a key-value store.

    Attributes:
        kv: Backing key-value store, or ``None`` when no storage is available.
        prefix: Key prefix prepended to each collection name.

    Example:
        store = EntityStore(SQLiteKeyValueStore(path))
        students = store.get_all("students")
        students.append({"id": "s1", "student_name": "Eloy"})
        store.save_all("students", students)
    """

    def __init__(self, kv: Optional[KeyValueStore], prefix: str = KEY_PREFIX):
        self.kv = kv
        self.prefix = prefix

    @property
    def available(self) -> bool:
        return self.kv is not None

    def collection_key(self, collection: str) -> str:
        return f"{self.prefix}{collection}"

    def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Every record of ``collection`` in insertion order.

        Returns:
            A new list on every call; an empty list if nothing usable is stored.
        """
        if self.kv is None:
            return []

        key = self.collection_key(collection)
        try:
            raw = self.kv.get(key)
        except StorageError as e:
            logger.warning(f"Local store unreadable, treating {collection} as empty: {e}")
            return []

        if raw is None:
            return []

        try:
            records = json.loads(raw)
        except ValueError:
            logger.warning(f"Corrupt data under {key}, treating {collection} as empty")
            return []

        if not isinstance(records, list):
            logger.warning(f"Unexpected {type(records).__name__} under {key}, treating {collection} as empty")
            return []
        return records

    def save_all(self, collection: str, records: Iterable[Dict[str, Any]]) -> bool:
        """Replace ``collection`` with ``records``.

        Returns:
            True if the write landed, False if storage was unavailable or full.
        """
        if self.kv is None:
            logger.debug(f"No local storage; dropping write to {collection}")
            return False

        try:
            payload = json.dumps(list(records), default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"Records for {collection} are not serializable: {e}")
            return False

        try:
            self.kv.set(self.collection_key(collection), payload)
        except StorageError as e:
            logger.warning(f"Could not save {collection}: {e}")
            return False
        return True

    def clear(self, collection: str) -> None:
        """Remove ``collection``; clearing an absent collection is a no-op."""
        if self.kv is None:
            return
        try:
            self.kv.remove(self.collection_key(collection))
        except StorageError as e:
            logger.warning(f"Could not clear {collection}: {e}")

    def clear_all(self, collections: Iterable[str] = COLLECTIONS) -> None:
        for collection in collections:
            self.clear(collection)
