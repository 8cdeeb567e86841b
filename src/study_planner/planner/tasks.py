"""Task repository plus the filter/sort helpers the views rely on."""

from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import TYPE_CHECKING, Any

from study_planner.core.errors import ValidationError
from study_planner.core.timeutil import (
    Clock,
    format_instant,
    local_date,
    normalize_instant,
    parse_instant,
    system_clock,
)
from study_planner.planner.models import Priority, Task, TaskStatus, coerce_enum

if TYPE_CHECKING:
    from study_planner.storage.store import Store

logger = logging.getLogger(__name__)

# Fields a caller may change through update()
UPDATABLE_FIELDS = {"title", "description", "deadline", "priority", "category", "status"}


def generate_id(now_ms: int, taken: set[str] | None = None) -> str:
    """Millisecond timestamp plus a random suffix, unique within ``taken``."""
    taken = taken or set()
    while True:
        candidate = f"{now_ms}{secrets.token_hex(4)}"
        if candidate not in taken:
            return candidate


class TaskRepository:
    """CRUD over the task collection of the planner document."""

    def __init__(self, store: Store, clock: Clock = system_clock):
        self.store = store
        self.clock = clock

    def list(self) -> list[Task]:
        """All tasks in creation order."""
        return self.store.load().tasks

    def get(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        return next((t for t in self.list() if t.id == task_id), None)

    def add(
        self,
        title: str,
        description: str = "",
        deadline: str | date | None = None,
        priority: Priority | str = Priority.MEDIUM,
        category: str = "",
        status: TaskStatus | str = TaskStatus.PENDING,
    ) -> Task:
        """Create a new task.

        Raises:
            ValidationError: On a blank title, an unparsable deadline, or an
                unknown priority/status.
        """
        if not title or not title.strip():
            raise ValidationError("title is required")

        now = self.clock()
        task = Task(
            id="",
            title=title.strip(),
            created_at=format_instant(now),
            description=description or "",
            deadline=normalize_instant(deadline),
            priority=coerce_enum(Priority, priority, "priority"),
            category=category or "",
            status=coerce_enum(TaskStatus, status, "status"),
        )

        with self.store.transaction() as doc:
            task.id = generate_id(int(now.timestamp() * 1000), {t.id for t in doc.tasks})
            doc.tasks.append(task)

        logger.info(f"Created task: {task.title} (ID: {task.id})")
        return task

    def update(self, task_id: str, **fields: Any) -> Task | None:
        """Merge ``fields`` into a task; ``None`` when the ID is absent.

        ``dueDate`` is accepted as an alias of ``deadline``.
        """
        if "dueDate" in fields:
            fields.setdefault("deadline", fields.pop("dueDate"))
        if "id" in fields or "created_at" in fields or "createdAt" in fields:
            raise ValidationError("id and createdAt cannot be changed")
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "title":
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError("title is required")
                changes[name] = value.strip()
            elif name == "deadline":
                changes[name] = normalize_instant(value)
            elif name == "priority":
                changes[name] = coerce_enum(Priority, value, "priority")
            elif name == "status":
                changes[name] = coerce_enum(TaskStatus, value, "status")
            else:
                changes[name] = "" if value is None else str(value)

        with self.store.transaction() as doc:
            task = next((t for t in doc.tasks if t.id == task_id), None)
            if task is None:
                logger.debug(f"Task not found for update: {task_id}")
                return None
            for name, value in changes.items():
                setattr(task, name, value)

        logger.info(f"Updated task: {task.title} (ID: {task_id})")
        return task

    def delete(self, task_id: str) -> None:
        """Delete a task; absent IDs are ignored."""
        with self.store.transaction() as doc:
            before = len(doc.tasks)
            doc.tasks = [t for t in doc.tasks if t.id != task_id]
            removed = before - len(doc.tasks)

        if removed:
            logger.info(f"Deleted task ID: {task_id}")

    def cycle_status(self, task_id: str) -> Task | None:
        """Advance pending -> in-progress -> completed -> pending."""
        with self.store.transaction() as doc:
            task = next((t for t in doc.tasks if t.id == task_id), None)
            if task is None:
                return None
            task.status = task.status.next()

        logger.info(f"Task {task_id} marked as {task.status.value}")
        return task


def filter_tasks(
    tasks: list[Task],
    search: str = "",
    priority: str = "all",
    status: str = "all",
) -> list[Task]:
    """Filter by case-insensitive text search, priority and status.

    ``"all"`` disables the priority or status filter.
    """
    needle = search.lower()
    result = []
    for task in tasks:
        matches_search = needle in task.title.lower() or needle in task.description.lower()
        matches_priority = priority == "all" or task.priority.value == priority
        matches_status = status == "all" or task.status.value == status
        if matches_search and matches_priority and matches_status:
            result.append(task)
    return result


def upcoming_deadlines(tasks: list[Task], limit: int = 5) -> list[Task]:
    """Open tasks ordered by deadline, soonest first; undated tasks last."""
    open_tasks = [t for t in tasks if t.status is not TaskStatus.COMPLETED]
    open_tasks.sort(
        key=lambda t: (t.deadline is None, parse_instant(t.deadline) if t.deadline else None)
    )
    return open_tasks[:limit]


def tasks_due_on(tasks: list[Task], day: date) -> list[Task]:
    """Tasks whose deadline falls on ``day`` in local time."""
    return [t for t in tasks if t.deadline and local_date(t.deadline) == day]
