"""Instant and calendar-date helpers shared by the repositories."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable

from study_planner.core.errors import ValidationError

# Supplies "now" as an aware datetime; swapped out in tests.
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current instant in the local time zone."""
    return datetime.now().astimezone()


def format_instant(value: datetime) -> str:
    """Format an instant as UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        # Naive values are local wall-clock time
        value = value.astimezone()
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_instant(value: str | datetime | date) -> datetime:
    """Parse an ISO-8601 instant, date-time or date into an aware datetime.

    Raises:
        ValidationError: If the value cannot be interpreted as an instant.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.astimezone()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).astimezone()
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid date: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def normalize_instant(value: str | datetime | date | None) -> str | None:
    """Normalize an optional instant to its canonical string form."""
    if value is None or value == "":
        return None
    return format_instant(parse_instant(value))


def local_date(instant: str | datetime) -> date:
    """Calendar date of an instant in the local time zone."""
    return parse_instant(instant).astimezone().date()
