"""Pomodoro timer state machine with persisted session statistics."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from study_planner.planner.models import TimerSettings

if TYPE_CHECKING:
    from study_planner.storage.store import Store

logger = logging.getLogger(__name__)


class TimerPhase(Enum):
    """Current phase of the Pomodoro timer."""
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"

    @property
    def title(self) -> str:
        return {
            TimerPhase.FOCUS: "Focus Time",
            TimerPhase.SHORT_BREAK: "Short Break",
            TimerPhase.LONG_BREAK: "Long Break",
        }[self]


@dataclass
class TimerState:
    """Snapshot of the timer, handed to tick listeners."""
    phase: TimerPhase = TimerPhase.FOCUS
    is_running: bool = False
    remaining_seconds: int = 25 * 60
    phase_seconds: int = 25 * 60

    @property
    def time_remaining_display(self) -> str:
        """Format time remaining as MM:SS."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def progress_percent(self) -> float:
        """Progress through current phase (0-100)."""
        if self.phase_seconds <= 0:
            return 0.0
        elapsed = self.phase_seconds - self.remaining_seconds
        return min(100.0, max(0.0, (elapsed / self.phase_seconds) * 100))


@dataclass
class PhaseNotification:
    """A message for the presentation layer when a phase ends."""
    phase: TimerPhase
    title: str
    message: str


def phase_seconds(phase: TimerPhase, settings: TimerSettings) -> int:
    """Duration of ``phase`` in seconds."""
    if phase == TimerPhase.FOCUS:
        return settings.focus_time * 60
    elif phase == TimerPhase.SHORT_BREAK:
        return settings.short_break * 60
    return settings.long_break * 60


class TimerEngine:
    """Pomodoro timer with state machine and completion notifications.

    Only a natural end of a focus phase counts toward the statistics;
    ``skip()`` moves to the next phase without touching them.

    Usage:
        timer = TimerEngine(store)
        timer.on_notify.append(lambda n: print(n.title))
        timer.start()
        timer.tick()   # once per second, from TimerRunner or a UI loop
    """

    def __init__(self, store: Store):
        self.store = store
        self.settings = store.load().timer_settings
        self._phase = TimerPhase.FOCUS
        self._running = False
        self._remaining = phase_seconds(TimerPhase.FOCUS, self.settings)

        # Callbacks
        self.on_tick: list[Callable[[TimerState], None]] = []
        self.on_notify: list[Callable[[PhaseNotification], None]] = []

    @property
    def phase(self) -> TimerPhase:
        return self._phase

    @property
    def running(self) -> bool:
        return self._running

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    @property
    def state(self) -> TimerState:
        """Get current timer state (read-only copy)."""
        return TimerState(
            phase=self._phase,
            is_running=self._running,
            remaining_seconds=self._remaining,
            phase_seconds=phase_seconds(self._phase, self.settings),
        )

    def start(self) -> None:
        """Start or resume the timer."""
        if self._running:
            return
        self._running = True
        logger.info(f"Timer started: {self._phase.value} ({self.state.time_remaining_display} left)")

    def pause(self) -> None:
        """Pause the timer, keeping the remaining time."""
        if not self._running:
            return
        self._running = False
        logger.info(f"Timer paused: {self._phase.value} ({self.state.time_remaining_display} left)")

    def tick(self) -> None:
        """Advance the running timer by one second."""
        if not self._running:
            return

        if self._remaining > 0:
            self._remaining -= 1

        self._emit_tick()

        if self._remaining <= 0:
            self.complete()

    def complete(self) -> PhaseNotification:
        """Finish the current phase as if its countdown ran out."""
        completed_phase = self._phase

        if completed_phase == TimerPhase.FOCUS:
            with self.store.transaction() as doc:
                stats = doc.timer_stats
                stats.sessions_today += 1
                stats.total_sessions += 1
                stats.focus_time_today += self.settings.focus_time
                stats.total_focus_time += self.settings.focus_time
                sessions_today = stats.sessions_today

            # Determine next break type
            if sessions_today % self.settings.sessions_until_long_break == 0:
                self._phase = TimerPhase.LONG_BREAK
                notification = PhaseNotification(
                    phase=TimerPhase.LONG_BREAK,
                    title="Time for a Long Break!",
                    message=f"You've earned a {self.settings.long_break}-minute break.",
                )
            else:
                self._phase = TimerPhase.SHORT_BREAK
                notification = PhaseNotification(
                    phase=TimerPhase.SHORT_BREAK,
                    title="Time for a Short Break!",
                    message=f"Great job! You completed a {self.settings.focus_time}-minute "
                    f"focus session. Take a {self.settings.short_break}-minute break.",
                )
            logger.info(f"Focus phase complete ({sessions_today} today)! Next: {self._phase.value}")
        else:
            self._phase = TimerPhase.FOCUS
            notification = PhaseNotification(
                phase=TimerPhase.FOCUS,
                title="Break Complete!",
                message="Ready to focus again? Start your next session.",
            )
            logger.info("Break complete! Next: focus")

        self._remaining = phase_seconds(self._phase, self.settings)
        self._running = False

        for listener in self.on_notify:
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Error in on_notify callback: {e}")

        return notification

    def skip(self) -> None:
        """Jump to the next phase without recording a completed session."""
        if self._phase == TimerPhase.FOCUS:
            sessions_today = self.store.load().timer_stats.sessions_today
            until_long = self.settings.sessions_until_long_break
            if (sessions_today + 1) % until_long == 0:
                self._phase = TimerPhase.LONG_BREAK
            else:
                self._phase = TimerPhase.SHORT_BREAK
        else:
            self._phase = TimerPhase.FOCUS

        self._remaining = phase_seconds(self._phase, self.settings)
        self._running = False
        logger.info(f"Phase skipped. Next: {self._phase.value}")

    def reset(self) -> None:
        """Return to a fresh, paused focus phase."""
        self._phase = TimerPhase.FOCUS
        self._remaining = phase_seconds(TimerPhase.FOCUS, self.settings)
        self._running = False
        logger.info("Timer reset")

    def reload_settings(self) -> None:
        """Pick up changed durations from the store.

        An untouched, paused phase is resized to the new duration; a phase
        already in progress keeps its remaining time.
        """
        previous = phase_seconds(self._phase, self.settings)
        self.settings = self.store.load().timer_settings
        if not self._running and self._remaining == previous:
            self._remaining = phase_seconds(self._phase, self.settings)

    def get_summary(self) -> dict:
        """Get a summary of the current timer and stats."""
        stats = self.store.load().timer_stats
        state = self.state
        return {
            "phase": state.phase.value,
            "is_running": state.is_running,
            "time_remaining": state.time_remaining_display,
            "progress_percent": round(state.progress_percent, 1),
            "sessions_today": stats.sessions_today,
            "focus_time_today": stats.focus_time_today,
            "total_sessions": stats.total_sessions,
            "total_focus_time": stats.total_focus_time,
        }

    def _emit_tick(self) -> None:
        if not self.on_tick:
            return
        state = self.state
        for listener in self.on_tick:
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Error in on_tick callback: {e}")


class TimerRunner:
    """Drives ``TimerEngine.tick()`` from an asyncio loop.

    Usage:
        runner = TimerRunner(engine)
        engine.start()
        runner.start()
        ...
        await runner.stop()
    """

    def __init__(self, engine: TimerEngine, interval: float = 1.0):
        self.engine = engine
        self.interval = interval
        self._task: asyncio.Task | None = None
        self.error: Exception | None = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin ticking on the running event loop."""
        if self.is_active:
            return
        self._task = asyncio.create_task(self._tick_loop())

    async def stop(self) -> None:
        """Stop ticking; the engine keeps its state.

        Raises:
            Exception: Whatever ended the tick loop early, e.g. a StorageFault
                while recording a completed session.
        """
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self.error is not None:
            error, self.error = self.error, None
            raise error

    async def _tick_loop(self) -> None:
        """Main timer tick loop."""
        try:
            while True:
                await asyncio.sleep(self.interval)
                self.engine.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in timer tick loop: {e}")
            self.engine.pause()
            self.error = e
