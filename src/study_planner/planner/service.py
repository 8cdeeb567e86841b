"""The collaborator-facing planner API used by the CLI and web layers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from study_planner.backup.codec import (
    backup_filename,
    dumps_snapshot,
    export_snapshot,
    import_snapshot,
)
from study_planner.core.config import Config
from study_planner.core.timeutil import Clock, system_clock
from study_planner.planner.habits import HabitEngine, HabitSummary
from study_planner.planner.models import (
    AppSettings,
    Document,
    Habit,
    Task,
    TaskStatus,
    TimerSettings,
    TimerStats,
)
from study_planner.planner.settings import SettingsRepository
from study_planner.planner.tasks import TaskRepository, tasks_due_on, upcoming_deadlines
from study_planner.storage.kv import SqliteKeyValueStore
from study_planner.storage.store import Store

logger = logging.getLogger(__name__)


@dataclass
class Overview:
    """Dashboard figures across tasks, habits and the timer."""
    total_tasks: int = 0
    completed_tasks: int = 0
    in_progress_tasks: int = 0
    high_priority_tasks: int = 0
    todays_tasks: list[Task] = field(default_factory=list)
    upcoming: list[Task] = field(default_factory=list)
    habits: HabitSummary = field(default_factory=HabitSummary)
    timer_stats: TimerStats = field(default_factory=TimerStats)

    @property
    def completion_rate(self) -> float:
        """Percent of tasks completed (0-100)."""
        if self.total_tasks <= 0:
            return 0.0
        return (self.completed_tasks / self.total_tasks) * 100


class StudyPlanner:
    """Facade over the store, repositories and backup codec.

    Usage:
        planner = StudyPlanner.from_config(get_config())
        task = planner.add_task("Read chapter 5", deadline="2025-01-27T10:00:00")
        planner.toggle_habit(habit_id)
        path = planner.export_data(Path("~/backups").expanduser())
    """

    def __init__(
        self,
        store: Store,
        clock: Clock = system_clock,
        reconcile_rollover: bool = True,
    ):
        self.store = store
        self.clock = clock
        self.tasks = TaskRepository(store, clock=clock)
        self.habits = HabitEngine(store, clock=clock, reconcile_rollover=reconcile_rollover)
        self.settings = SettingsRepository(store)

    @classmethod
    def from_config(cls, config: Config) -> StudyPlanner:
        """Build a planner persisting to the configured SQLite file."""
        config.ensure_directories()
        medium = SqliteKeyValueStore(config.db_path)
        store = Store(medium, key=config.storage_key)
        return cls(store, reconcile_rollover=config.habits.reconcile_rollover)

    # ==================== Tasks ====================

    def list_tasks(self) -> list[Task]:
        return self.tasks.list()

    def add_task(self, title: str, **fields: Any) -> Task:
        if "dueDate" in fields:
            fields.setdefault("deadline", fields.pop("dueDate"))
        return self.tasks.add(title, **fields)

    def update_task(self, task_id: str, **fields: Any) -> Task | None:
        return self.tasks.update(task_id, **fields)

    def delete_task(self, task_id: str) -> None:
        self.tasks.delete(task_id)

    def cycle_task_status(self, task_id: str) -> Task | None:
        return self.tasks.cycle_status(task_id)

    # ==================== Habits ====================

    def list_habits(self) -> list[Habit]:
        return self.habits.list()

    def add_habit(self, name: str) -> Habit:
        return self.habits.add(name)

    def toggle_habit(self, habit_id: str) -> Habit | None:
        return self.habits.toggle(habit_id)

    def delete_habit(self, habit_id: str) -> None:
        self.habits.delete(habit_id)

    # ==================== Settings ====================

    def get_timer_settings(self) -> TimerSettings:
        return self.settings.get_timer_settings()

    def update_timer_settings(self, **updates: Any) -> TimerSettings:
        return self.settings.update_timer_settings(**updates)

    def get_timer_stats(self) -> TimerStats:
        return self.settings.get_timer_stats()

    def update_timer_stats(self, **updates: Any) -> TimerStats:
        return self.settings.update_timer_stats(**updates)

    def get_settings(self) -> AppSettings:
        return self.settings.get_settings()

    def update_settings(self, **updates: Any) -> AppSettings:
        return self.settings.update_settings(**updates)

    # ==================== Backup ====================

    def export_snapshot(self) -> dict[str, Any]:
        """Current document as a backup snapshot."""
        return export_snapshot(self.store.load(), now=self.clock())

    def export_data(self, directory: Path) -> Path:
        """Write a backup file into ``directory`` and return its path."""
        snapshot = self.export_snapshot()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / backup_filename(self.clock().date())
        path.write_text(dumps_snapshot(snapshot), encoding="utf-8")
        logger.info(f"Exported backup to: {path}")
        return path

    def restore(self, raw: str | bytes) -> Document:
        """Replace the whole document with a parsed backup.

        The current document is untouched when validation fails.
        """
        document = import_snapshot(raw)
        self.store.save(document)
        logger.info(
            f"Imported backup: {len(document.tasks)} tasks, {len(document.habits)} habits"
        )
        return document

    async def import_data(self, path: Path) -> Document:
        """Read a backup file off the event loop and restore it."""
        raw = await asyncio.to_thread(path.read_bytes)
        return self.restore(raw)

    def clear_all_data(self) -> Document:
        """Erase everything and start from the default document."""
        return self.store.clear()

    # ==================== Dashboard ====================

    def overview(self, today: date | None = None) -> Overview:
        """Figures for the dashboard view."""
        today = today or self.clock().date()
        tasks = self.list_tasks()
        return Overview(
            total_tasks=len(tasks),
            completed_tasks=sum(1 for t in tasks if t.status is TaskStatus.COMPLETED),
            in_progress_tasks=sum(1 for t in tasks if t.status is TaskStatus.IN_PROGRESS),
            high_priority_tasks=sum(1 for t in tasks if t.priority.value == "high"),
            todays_tasks=tasks_due_on(tasks, today),
            upcoming=upcoming_deadlines(tasks),
            habits=self.habits.summary(),
            timer_stats=self.get_timer_stats(),
        )
