"""Durable string-keyed persistence media for the planner document."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

from study_planner.core.errors import StorageFault

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


class KeyValueStore(Protocol):
    """A synchronous string-keyed slot store."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """In-process medium, used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteKeyValueStore:
    """SQLite-backed medium with WAL mode.

    One connection is opened lazily and shared; each write commits
    immediately so a value is either fully replaced or untouched.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def connect(self) -> sqlite3.Connection:
        """Open the connection and ensure the schema exists."""
        if self._connection is not None:
            return self._connection

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                isolation_level=None,  # Autocommit; each statement is its own transaction
                check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA busy_timeout=5000")
            conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StorageFault(f"Cannot open storage at {self.db_path}: {e}") from e

        self._connection = conn
        logger.info(f"Key-value storage connected: {self.db_path}")
        return conn

    def close(self) -> None:
        """Close the connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.info("Key-value storage closed")

    def get(self, key: str) -> str | None:
        conn = self.connect()
        with self._lock:
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise StorageFault(f"Cannot read {key!r}: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self.connect()
        with self._lock:
            try:
                conn.execute(
                    """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                       ON CONFLICT(key) DO UPDATE SET value = ?, updated_at = CURRENT_TIMESTAMP""",
                    (key, value, value),
                )
            except sqlite3.Error as e:
                raise StorageFault(f"Cannot write {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        conn = self.connect()
        with self._lock:
            try:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise StorageFault(f"Cannot remove {key!r}: {e}") from e

    def get_size_mb(self) -> float:
        """Get database file size in MB."""
        if self.db_path.exists():
            return self.db_path.stat().st_size / (1024 * 1024)
        return 0.0
