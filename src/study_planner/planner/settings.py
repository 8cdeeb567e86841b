"""Settings repository: timer settings, timer stats and app settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from study_planner.core.errors import ValidationError
from study_planner.planner.models import AppSettings, TimerSettings, TimerStats

if TYPE_CHECKING:
    from study_planner.storage.store import Store

logger = logging.getLogger(__name__)


def _merge(current: dict[str, Any], updates: dict[str, Any], section: str) -> dict[str, Any]:
    unknown = set(updates) - set(current)
    if unknown:
        raise ValidationError(f"Unknown {section} fields: {', '.join(sorted(unknown))}")
    return {**current, **updates}


class SettingsRepository:
    """Get and shallow-merge the singleton settings sections.

    Updates take the camelCase keys of the stored document, e.g.
    ``update_timer_settings(focusTime=50)``.
    """

    def __init__(self, store: Store):
        self.store = store

    def get_timer_settings(self) -> TimerSettings:
        return self.store.load().timer_settings

    def update_timer_settings(self, **updates: Any) -> TimerSettings:
        """Merge new durations; every value must be an integer >= 1."""
        with self.store.transaction() as doc:
            merged = _merge(doc.timer_settings.to_dict(), updates, "timerSettings")
            doc.timer_settings = TimerSettings.from_dict(merged)

        logger.info(f"Updated timer settings: {doc.timer_settings.to_dict()}")
        return doc.timer_settings

    def get_timer_stats(self) -> TimerStats:
        return self.store.load().timer_stats

    def update_timer_stats(self, **updates: Any) -> TimerStats:
        """Merge counter values; every value must be a non-negative integer."""
        with self.store.transaction() as doc:
            merged = _merge(doc.timer_stats.to_dict(), updates, "timerStats")
            doc.timer_stats = TimerStats.from_dict(merged)

        logger.debug(f"Updated timer stats: {doc.timer_stats.to_dict()}")
        return doc.timer_stats

    def get_settings(self) -> AppSettings:
        return self.store.load().settings

    def update_settings(self, **updates: Any) -> AppSettings:
        with self.store.transaction() as doc:
            merged = _merge(doc.settings.to_dict(), updates, "settings")
            doc.settings = AppSettings.from_dict(merged)

        logger.info(f"Updated app settings: {doc.settings.to_dict()}")
        return doc.settings
