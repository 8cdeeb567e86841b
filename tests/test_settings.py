# tests/test_settings.py

from __future__ import annotations

import pytest

from study_planner.core.errors import ValidationError
from study_planner.planner.settings import SettingsRepository


@pytest.fixture()
def repo(store) -> SettingsRepository:
    return SettingsRepository(store)


def test_update_timer_settings_merges(repo: SettingsRepository) -> None:
    settings = repo.update_timer_settings(focusTime=50)
    assert settings.focus_time == 50
    assert settings.short_break == 5
    assert repo.get_timer_settings().focus_time == 50


@pytest.mark.parametrize("value", [0, -5, "25", 2.5, True])
def test_timer_settings_require_positive_integers(repo: SettingsRepository, value) -> None:
    with pytest.raises(ValidationError):
        repo.update_timer_settings(shortBreak=value)
    assert repo.get_timer_settings().short_break == 5


def test_unknown_keys_rejected(repo: SettingsRepository) -> None:
    with pytest.raises(ValidationError):
        repo.update_timer_settings(focus=50)
    with pytest.raises(ValidationError):
        repo.update_settings(theme="light")


def test_timer_stats_merge(repo: SettingsRepository) -> None:
    stats = repo.update_timer_stats(sessionsToday=0, totalSessions=12)
    assert stats.total_sessions == 12
    with pytest.raises(ValidationError):
        repo.update_timer_stats(totalFocusTime=-1)


def test_app_settings(repo: SettingsRepository) -> None:
    settings = repo.update_settings(darkMode=False)
    assert settings.dark_mode is False
    assert settings.notifications is True
    assert repo.get_settings().dark_mode is False
