# tests/test_timer.py

from __future__ import annotations

import asyncio

import pytest

from study_planner.core.errors import StorageFault
from study_planner.planner.settings import SettingsRepository
from study_planner.storage.store import Store
from study_planner.timer.pomodoro import (
    PhaseNotification,
    TimerEngine,
    TimerPhase,
    TimerRunner,
    TimerState,
)


@pytest.fixture()
def engine(store: Store) -> TimerEngine:
    return TimerEngine(store)


def _set_sessions_today(store: Store, value: int) -> None:
    with store.transaction() as doc:
        doc.timer_stats.sessions_today = value


class TestTimerEngine:
    def test_initial_state(self, engine: TimerEngine) -> None:
        assert engine.phase is TimerPhase.FOCUS
        assert engine.running is False
        assert engine.remaining_seconds == 25 * 60
        assert engine.state.time_remaining_display == "25:00"
        assert engine.state.progress_percent == 0.0

    def test_tick_counts_down_only_when_running(self, engine: TimerEngine) -> None:
        engine.tick()
        assert engine.remaining_seconds == 1500

        engine.start()
        engine.tick()
        engine.tick()
        assert engine.remaining_seconds == 1498

        engine.pause()
        engine.tick()
        assert engine.remaining_seconds == 1498

    def test_start_and_pause_are_idempotent(self, engine: TimerEngine) -> None:
        engine.start()
        engine.start()
        assert engine.running is True
        engine.pause()
        engine.pause()
        assert engine.running is False

    def test_focus_completion_records_stats_and_starts_short_break(
        self, engine: TimerEngine, store: Store
    ) -> None:
        notification = engine.complete()

        assert notification.phase is TimerPhase.SHORT_BREAK
        assert engine.phase is TimerPhase.SHORT_BREAK
        assert engine.remaining_seconds == 300
        assert engine.running is False

        stats = store.load().timer_stats
        assert stats.sessions_today == 1
        assert stats.total_sessions == 1
        assert stats.focus_time_today == 25
        assert stats.total_focus_time == 25

    def test_fourth_focus_session_earns_long_break(self, engine: TimerEngine, store: Store) -> None:
        _set_sessions_today(store, 3)

        notification = engine.complete()

        assert engine.phase is TimerPhase.LONG_BREAK
        assert engine.remaining_seconds == 900
        assert notification.title == "Time for a Long Break!"
        assert store.load().timer_stats.sessions_today == 4

    def test_break_completion_returns_to_focus_without_stats(
        self, engine: TimerEngine, store: Store
    ) -> None:
        engine.complete()
        before = store.load().timer_stats

        notification = engine.complete()

        assert notification.title == "Break Complete!"
        assert engine.phase is TimerPhase.FOCUS
        assert engine.remaining_seconds == 1500
        assert store.load().timer_stats == before

    def test_countdown_to_zero_completes_phase(self, store: Store) -> None:
        SettingsRepository(store).update_timer_settings(focusTime=1)
        engine = TimerEngine(store)
        engine.start()
        for _ in range(60):
            engine.tick()

        assert engine.phase is TimerPhase.SHORT_BREAK
        assert engine.running is False
        assert store.load().timer_stats.focus_time_today == 1

    def test_skip_does_not_touch_stats(self, engine: TimerEngine, store: Store) -> None:
        engine.start()
        engine.skip()
        assert engine.phase is TimerPhase.SHORT_BREAK
        assert engine.running is False
        assert store.load().timer_stats.total_sessions == 0

        engine.skip()
        assert engine.phase is TimerPhase.FOCUS
        assert engine.remaining_seconds == 1500

    def test_skip_picks_long_break_at_cycle_end(self, engine: TimerEngine, store: Store) -> None:
        _set_sessions_today(store, 3)
        engine.skip()
        assert engine.phase is TimerPhase.LONG_BREAK
        assert store.load().timer_stats.sessions_today == 3

    def test_reset(self, engine: TimerEngine) -> None:
        engine.complete()
        engine.start()
        engine.tick()
        engine.reset()
        assert engine.phase is TimerPhase.FOCUS
        assert engine.remaining_seconds == 1500
        assert engine.running is False

    def test_reload_settings_resizes_untouched_phase(self, engine: TimerEngine, store: Store) -> None:
        SettingsRepository(store).update_timer_settings(focusTime=50)
        engine.reload_settings()
        assert engine.remaining_seconds == 3000

    def test_reload_settings_keeps_phase_in_progress(self, engine: TimerEngine, store: Store) -> None:
        engine.start()
        engine.tick()
        SettingsRepository(store).update_timer_settings(focusTime=50)
        engine.reload_settings()
        assert engine.remaining_seconds == 1499

    def test_listeners_receive_ticks_and_notifications(self, engine: TimerEngine) -> None:
        ticks: list[TimerState] = []
        notes: list[PhaseNotification] = []
        engine.on_tick.append(ticks.append)
        engine.on_notify.append(notes.append)

        engine.start()
        engine.tick()
        engine.complete()

        assert ticks[0].remaining_seconds == 1499
        assert ticks[0].is_running is True
        assert [n.phase for n in notes] == [TimerPhase.SHORT_BREAK]

    def test_failing_listener_does_not_break_engine(self, engine: TimerEngine, store: Store) -> None:
        def broken(_: PhaseNotification) -> None:
            raise RuntimeError("display gone")

        engine.on_notify.append(broken)
        engine.complete()
        assert engine.phase is TimerPhase.SHORT_BREAK
        assert store.load().timer_stats.sessions_today == 1

    def test_summary(self, engine: TimerEngine) -> None:
        engine.complete()
        summary = engine.get_summary()
        assert summary["phase"] == "shortBreak"
        assert summary["time_remaining"] == "05:00"
        assert summary["sessions_today"] == 1


@pytest.mark.asyncio
async def test_runner_drives_engine(engine: TimerEngine) -> None:
    runner = TimerRunner(engine, interval=0.01)
    engine.start()
    runner.start()
    assert runner.is_active

    await asyncio.sleep(0.1)
    await runner.stop()

    assert not runner.is_active
    assert engine.remaining_seconds < 1500
    remaining = engine.remaining_seconds
    await asyncio.sleep(0.05)
    assert engine.remaining_seconds == remaining


@pytest.mark.asyncio
async def test_runner_surfaces_storage_fault_and_pauses_engine(failing_medium) -> None:
    store = Store(failing_medium)
    SettingsRepository(store).update_timer_settings(focusTime=1)
    engine = TimerEngine(store)
    failing_medium.failing = True

    runner = TimerRunner(engine, interval=0.001)
    engine.start()
    runner.start()

    for _ in range(500):
        if not runner.is_active:
            break
        await asyncio.sleep(0.01)

    assert not runner.is_active
    assert engine.running is False
    assert engine.remaining_seconds == 0
    with pytest.raises(StorageFault):
        await runner.stop()
    # The error is reported once
    await runner.stop()
