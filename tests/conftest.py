# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from study_planner.core.errors import StorageFault
from study_planner.planner.service import StudyPlanner
from study_planner.storage.kv import MemoryKeyValueStore, SqliteKeyValueStore
from study_planner.storage.store import Store


class FakeClock:
    """Settable clock; calling it returns the current fake instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, seconds: int = 0) -> None:
        self.now = self.now + timedelta(days=days, seconds=seconds)


class WriteFailingMedium(MemoryKeyValueStore):
    """Memory medium whose writes fail once `failing` is switched on."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def set(self, key: str, value: str) -> None:
        if self.failing:
            raise StorageFault(f"Cannot write {key!r}: disk full")
        super().set(key, value)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 27, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def medium() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def failing_medium() -> WriteFailingMedium:
    return WriteFailingMedium()


@pytest.fixture()
def store(medium: MemoryKeyValueStore) -> Store:
    return Store(medium)


@pytest.fixture()
def planner(store: Store, clock: FakeClock) -> StudyPlanner:
    return StudyPlanner(store, clock=clock)


@pytest.fixture()
def sqlite_medium(tmp_path: Path):
    medium = SqliteKeyValueStore(tmp_path / "planner.db")
    yield medium
    medium.close()
