"""Whole-document store over a key-value medium."""

from __future__ import annotations

import copy
import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from study_planner.core.errors import StorageFault, ValidationError
from study_planner.planner.models import Document
from study_planner.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "studyPlannerData"


def default_document() -> Document:
    """A fresh document with no tasks or habits and default settings."""
    return Document()


class Store:
    """Loads and saves the single planner document.

    Every mutation goes through ``transaction()``, which holds the store lock
    across load -> mutate -> save so concurrent in-process callers never
    interleave their read-modify-write cycles.

    Usage:
        store = Store(MemoryKeyValueStore())
        with store.transaction() as doc:
            doc.settings.dark_mode = False
    """

    def __init__(self, medium: KeyValueStore, key: str = DEFAULT_STORAGE_KEY):
        self.medium = medium
        self.key = key
        self._lock = threading.RLock()
        self._fault_reported = False

    def load(self) -> Document:
        """Return the persisted document, initializing it on first access.

        Raises:
            StorageFault: If the persisted payload is corrupt.
        """
        with self._lock:
            raw = self.medium.get(self.key)
            if raw is None:
                document = default_document()
                self._write(document)
                logger.info("Initialized default planner document")
                return document

            try:
                data = json.loads(raw)
                document = Document.from_dict(data)
            except (json.JSONDecodeError, ValidationError, KeyError) as e:
                if not self._fault_reported:
                    logger.error(f"Persisted planner document is corrupt: {e}")
                    self._fault_reported = True
                raise StorageFault(f"Persisted planner document is corrupt: {e}") from e

            logger.debug(
                f"Loaded document: {len(document.tasks)} tasks, {len(document.habits)} habits"
            )
            return document

    def save(self, document: Document) -> None:
        """Replace the persisted document wholesale."""
        with self._lock:
            self._write(document)

    def clear(self) -> Document:
        """Erase persisted state and re-initialize the default document."""
        with self._lock:
            self.medium.remove(self.key)
            self._fault_reported = False
            logger.info("Cleared all planner data")
            return self.load()

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        """Yield a private copy of the document and save it on clean exit.

        Nothing is written when the block raises.
        """
        with self._lock:
            document = copy.deepcopy(self.load())
            yield document
            self._write(document)

    def _write(self, document: Document) -> None:
        self.medium.set(self.key, json.dumps(document.to_dict(), ensure_ascii=False))
        logger.debug("Saved planner document")
