"""Local persistence for Bright Track's offline/demo mode."""

from .connection import close_pool, get_db, init_store, verify_store
from .entity_store import COLLECTIONS, KEY_PREFIX, EntityStore
from .errors import BrightTrackError, StorageError
from .kv import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore

__all__ = [
    "EntityStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "COLLECTIONS",
    "KEY_PREFIX",
    "BrightTrackError",
    "StorageError",
    "get_db",
    "init_store",
    "verify_store",
    "close_pool",
]
