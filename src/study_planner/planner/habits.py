"""Habit engine: CRUD plus the daily streak computation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

from study_planner.core.errors import ValidationError
from study_planner.core.timeutil import Clock, format_instant, system_clock
from study_planner.planner.models import Document, Habit
from study_planner.planner.tasks import generate_id

if TYPE_CHECKING:
    from study_planner.storage.store import Store

logger = logging.getLogger(__name__)


@dataclass
class HabitSummary:
    """Aggregate habit figures shown on the tracker and dashboard."""
    completed_today: int = 0
    total: int = 0
    longest_streak: int = 0
    average_streak: float = 0.0

    @property
    def completion_rate(self) -> float:
        """Percent of habits completed today (0-100)."""
        if self.total <= 0:
            return 0.0
        return (self.completed_today / self.total) * 100


def apply_toggle(habit: Habit, today: date) -> Habit:
    """Flip a habit's completion for ``today`` and recompute its streak.

    Completing continues the chain when the previous completion was
    yesterday (or the streak is empty); a longer gap restarts it at 1.
    Un-completing steps both counters back by one and leaves
    ``last_completed`` as it was.
    """
    if habit.completed_today:
        habit.completed_today = False
        habit.total_completions = max(0, habit.total_completions - 1)
        habit.streak = max(0, habit.streak - 1)
    else:
        habit.completed_today = True
        habit.total_completions += 1
        yesterday = today - timedelta(days=1)
        if habit.last_completed == yesterday or habit.streak == 0:
            habit.streak += 1
        else:
            habit.streak = 1
        habit.last_completed = today

    if habit.total_completions == 0:
        habit.streak = 0
    return habit


def roll_over(habits: list[Habit], today: date) -> int:
    """Clear ``completed_today`` on habits last completed before ``today``.

    Returns the number of habits changed.
    """
    changed = 0
    for habit in habits:
        if habit.completed_today and habit.last_completed != today:
            habit.completed_today = False
            changed += 1
    return changed


def summarize(habits: list[Habit]) -> HabitSummary:
    """Compute the habit overview figures."""
    if not habits:
        return HabitSummary()
    streaks = [h.streak for h in habits]
    return HabitSummary(
        completed_today=sum(1 for h in habits if h.completed_today),
        total=len(habits),
        longest_streak=max(streaks),
        average_streak=sum(streaks) / len(habits),
    )


class HabitEngine:
    """CRUD over the habit collection with streak bookkeeping.

    Usage:
        engine = HabitEngine(store)
        habit = engine.add("Read 20 pages")
        engine.toggle(habit.id)   # completes today, streak 1
    """

    def __init__(self, store: Store, clock: Clock = system_clock, reconcile_rollover: bool = True):
        self.store = store
        self.clock = clock
        self.reconcile_rollover = reconcile_rollover

    def today(self) -> date:
        """Current calendar date according to the engine clock."""
        return self.clock().date()

    def list(self) -> list[Habit]:
        """All habits in creation order."""
        if self.reconcile_rollover:
            document = self.store.load()
            if any(h.completed_today and h.last_completed != self.today() for h in document.habits):
                with self.store.transaction() as doc:
                    self._reconcile(doc)
                    return doc.habits
            return document.habits
        return self.store.load().habits

    def get(self, habit_id: str) -> Habit | None:
        """Get a habit by ID."""
        return next((h for h in self.list() if h.id == habit_id), None)

    def add(self, name: str) -> Habit:
        """Create a habit with an empty streak.

        Raises:
            ValidationError: If the name is blank.
        """
        if not name or not name.strip():
            raise ValidationError("name is required")

        now = self.clock()
        with self.store.transaction() as doc:
            self._reconcile(doc)
            habit = Habit(
                id=generate_id(int(now.timestamp() * 1000), {h.id for h in doc.habits}),
                name=name.strip(),
                created_at=format_instant(now),
            )
            doc.habits.append(habit)

        logger.info(f"Created habit: {habit.name} (ID: {habit.id})")
        return habit

    def toggle(self, habit_id: str, today: date | None = None) -> Habit | None:
        """Complete or un-complete a habit for today; ``None`` when absent."""
        today = today or self.today()
        with self.store.transaction() as doc:
            self._reconcile(doc, today)
            habit = next((h for h in doc.habits if h.id == habit_id), None)
            if habit is None:
                logger.debug(f"Habit not found for toggle: {habit_id}")
                return None
            apply_toggle(habit, today)

        logger.info(
            f"Habit {habit.name} {'completed' if habit.completed_today else 'un-completed'} "
            f"(streak {habit.streak}, total {habit.total_completions})"
        )
        return habit

    def delete(self, habit_id: str) -> None:
        """Delete a habit; absent IDs are ignored."""
        with self.store.transaction() as doc:
            self._reconcile(doc)
            before = len(doc.habits)
            doc.habits = [h for h in doc.habits if h.id != habit_id]
            removed = before - len(doc.habits)

        if removed:
            logger.info(f"Deleted habit ID: {habit_id}")

    def summary(self) -> HabitSummary:
        """Overview figures for the current habits."""
        return summarize(self.list())

    def _reconcile(self, doc: Document, today: date | None = None) -> None:
        if not self.reconcile_rollover:
            return
        changed = roll_over(doc.habits, today or self.today())
        if changed:
            logger.info(f"Day rollover: cleared completion on {changed} habit(s)")
