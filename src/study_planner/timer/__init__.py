"""Pomodoro timer engine and its asyncio driver."""

from study_planner.timer.pomodoro import (
    PhaseNotification,
    TimerEngine,
    TimerPhase,
    TimerRunner,
    TimerState,
)

__all__ = [
    "PhaseNotification",
    "TimerEngine",
    "TimerPhase",
    "TimerRunner",
    "TimerState",
]
