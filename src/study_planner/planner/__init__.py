"""Planner domain: data model, task repository, habit engine and settings."""

from study_planner.planner.models import (
    AppSettings,
    Document,
    Habit,
    Priority,
    Task,
    TaskStatus,
    TimerSettings,
    TimerStats,
)

__all__ = [
    "AppSettings",
    "Document",
    "Habit",
    "Priority",
    "Task",
    "TaskStatus",
    "TimerSettings",
    "TimerStats",
]
