"""Persisted data model: tasks, habits, timer settings/stats and app settings.

Every model converts to and from the camelCase JSON shape stored in the
persistence medium and written to backup files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from study_planner.core.errors import ValidationError
from study_planner.core.timeutil import normalize_instant


class Priority(str, Enum):
    """Task priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Task workflow status."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    def next(self) -> TaskStatus:
        """Status that follows this one when cycling."""
        if self is TaskStatus.PENDING:
            return TaskStatus.IN_PROGRESS
        if self is TaskStatus.IN_PROGRESS:
            return TaskStatus.COMPLETED
        return TaskStatus.PENDING


def coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed} (got {value!r})") from e


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value


def _non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field_name} must be a non-negative integer (got {value!r})")
    return value


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field_name} must be an integer >= 1 (got {value!r})")
    return value


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a boolean (got {value!r})")
    return value


@dataclass
class Task:
    """A study task with an optional deadline."""
    id: str
    title: str
    created_at: str
    description: str = ""
    deadline: str | None = None
    priority: Priority = Priority.MEDIUM
    category: str = ""
    status: TaskStatus = TaskStatus.PENDING

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Create from the stored JSON shape.

        A legacy ``dueDate`` key is folded into ``deadline``.
        """
        if not isinstance(data, dict):
            raise ValidationError(f"task must be an object (got {type(data).__name__})")
        raw_deadline = data.get("deadline")
        if raw_deadline is None:
            raw_deadline = data.get("dueDate")
        return cls(
            id=_require_text(str(data["id"]) if data.get("id") is not None else None, "task id"),
            title=_require_text(data.get("title"), "title"),
            created_at=normalize_instant(data.get("createdAt")) or "",
            description=str(data.get("description") or ""),
            deadline=normalize_instant(raw_deadline),
            priority=coerce_enum(Priority, data.get("priority", "medium"), "priority"),
            category=str(data.get("category") or ""),
            status=coerce_enum(TaskStatus, data.get("status", "pending"), "status"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline,
            "priority": self.priority.value,
            "category": self.category,
            "status": self.status.value,
            "createdAt": self.created_at,
        }


@dataclass
class Habit:
    """A daily habit with streak bookkeeping."""
    id: str
    name: str
    created_at: str
    streak: int = 0
    completed_today: bool = False
    total_completions: int = 0
    last_completed: date | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Habit:
        """Create from the stored JSON shape."""
        if not isinstance(data, dict):
            raise ValidationError(f"habit must be an object (got {type(data).__name__})")
        last = data.get("lastCompleted")
        try:
            last_completed = date.fromisoformat(last) if last else None
        except (TypeError, ValueError) as e:
            raise ValidationError(f"lastCompleted must be YYYY-MM-DD (got {last!r})") from e
        return cls(
            id=_require_text(str(data["id"]) if data.get("id") is not None else None, "habit id"),
            name=_require_text(data.get("name"), "name"),
            created_at=normalize_instant(data.get("createdAt")) or "",
            streak=_non_negative_int(data.get("streak", 0), "streak"),
            completed_today=_bool(data.get("completedToday", False), "completedToday"),
            total_completions=_non_negative_int(data.get("totalCompletions", 0), "totalCompletions"),
            last_completed=last_completed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "streak": self.streak,
            "completedToday": self.completed_today,
            "totalCompletions": self.total_completions,
            "lastCompleted": self.last_completed.isoformat() if self.last_completed else None,
            "createdAt": self.created_at,
        }


@dataclass
class TimerSettings:
    """Pomodoro durations in minutes."""
    focus_time: int = 25
    short_break: int = 5
    long_break: int = 15
    sessions_until_long_break: int = 4

    _KEYS = {
        "focusTime": "focus_time",
        "shortBreak": "short_break",
        "longBreak": "long_break",
        "sessionsUntilLongBreak": "sessions_until_long_break",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimerSettings:
        if not isinstance(data, dict):
            raise ValidationError("timerSettings must be an object")
        defaults = cls()
        values = {
            attr: _positive_int(data.get(key, getattr(defaults, attr)), key)
            for key, attr in cls._KEYS.items()
        }
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class TimerStats:
    """Accumulated Pomodoro statistics; counters only grow until a clear."""
    sessions_today: int = 0
    focus_time_today: int = 0
    total_sessions: int = 0
    total_focus_time: int = 0

    _KEYS = {
        "sessionsToday": "sessions_today",
        "focusTimeToday": "focus_time_today",
        "totalSessions": "total_sessions",
        "totalFocusTime": "total_focus_time",
    }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimerStats:
        if not isinstance(data, dict):
            raise ValidationError("timerStats must be an object")
        values = {
            attr: _non_negative_int(data.get(key, 0), key)
            for key, attr in cls._KEYS.items()
        }
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class AppSettings:
    """User-facing application preferences."""
    dark_mode: bool = True
    notifications: bool = True

    _KEYS = {"darkMode": "dark_mode", "notifications": "notifications"}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppSettings:
        if not isinstance(data, dict):
            raise ValidationError("settings must be an object")
        defaults = cls()
        values = {
            attr: _bool(data.get(key, getattr(defaults, attr)), key)
            for key, attr in cls._KEYS.items()
        }
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in self._KEYS.items()}


@dataclass
class Document:
    """The single persisted root holding all planner state."""
    tasks: list[Task] = field(default_factory=list)
    habits: list[Habit] = field(default_factory=list)
    timer_settings: TimerSettings = field(default_factory=TimerSettings)
    timer_stats: TimerStats = field(default_factory=TimerStats)
    settings: AppSettings = field(default_factory=AppSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        """Create from the stored JSON shape, defaulting missing sections."""
        if not isinstance(data, dict):
            raise ValidationError("document must be a JSON object")
        tasks = data.get("tasks") or []
        habits = data.get("habits") or []
        if not isinstance(tasks, list):
            raise ValidationError("tasks must be an array")
        if not isinstance(habits, list):
            raise ValidationError("habits must be an array")
        return cls(
            tasks=[Task.from_dict(t) for t in tasks],
            habits=[Habit.from_dict(h) for h in habits],
            timer_settings=TimerSettings.from_dict(data.get("timerSettings") or {}),
            timer_stats=TimerStats.from_dict(data.get("timerStats") or {}),
            settings=AppSettings.from_dict(data.get("settings") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "habits": [h.to_dict() for h in self.habits],
            "timerSettings": self.timer_settings.to_dict(),
            "timerStats": self.timer_stats.to_dict(),
            "settings": self.settings.to_dict(),
        }
