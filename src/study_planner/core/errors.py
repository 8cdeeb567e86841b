"""Error types raised by the study planner engine."""

from __future__ import annotations


class StudyPlannerError(Exception):
    """Base class for engine errors surfaced to callers."""


class ValidationError(StudyPlannerError, ValueError):
    """Malformed input: empty title, unparsable date, bad backup payload."""


class StorageFault(StudyPlannerError):
    """The persistence medium is unreadable or holds corrupt data."""
