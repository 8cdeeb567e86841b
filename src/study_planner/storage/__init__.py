"""Storage layer for the persisted planner document."""

from study_planner.storage.kv import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from study_planner.storage.store import Store, default_document

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "Store",
    "default_document",
]
