"""Backup snapshot export and import."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from study_planner.core.errors import ValidationError
from study_planner.core.timeutil import format_instant, system_clock
from study_planner.planner.models import Document

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"
FILENAME_PREFIX = "study-planner-backup-"


class SnapshotEnvelope(BaseModel):
    """Top-level shape a backup file must have before its entries are read."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tasks: list[dict[str, Any]]
    habits: list[dict[str, Any]]
    timer_settings: dict[str, Any] | None = Field(default=None, alias="timerSettings")
    timer_stats: dict[str, Any] | None = Field(default=None, alias="timerStats")
    settings: dict[str, Any] | None = None
    export_date: str | None = Field(default=None, alias="exportDate")
    version: str | None = None


def export_snapshot(document: Document, now: datetime | None = None) -> dict[str, Any]:
    """The document plus ``exportDate`` and ``version``."""
    snapshot = document.to_dict()
    snapshot["exportDate"] = format_instant(now or system_clock())
    snapshot["version"] = SNAPSHOT_VERSION
    return snapshot


def dumps_snapshot(snapshot: dict[str, Any]) -> str:
    """Serialize a snapshot as indented JSON text."""
    return json.dumps(snapshot, indent=2, ensure_ascii=False)


def import_snapshot(raw: str | bytes) -> Document:
    """Parse and validate backup text into a document.

    Raises:
        ValidationError: If the text is not JSON, lacks ``tasks``/``habits``
            arrays, or holds malformed entries.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationError(f"Backup is not UTF-8 text: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValidationError("Invalid data format: expected a JSON object")

    try:
        envelope = SnapshotEnvelope.model_validate(data)
    except pydantic.ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValidationError(f"Invalid data format: {fields}") from e

    document = Document.from_dict(
        {
            "tasks": envelope.tasks,
            "habits": envelope.habits,
            "timerSettings": envelope.timer_settings or {},
            "timerStats": envelope.timer_stats or {},
            "settings": envelope.settings or {},
        }
    )
    logger.debug(
        f"Parsed snapshot version={envelope.version} exported={envelope.export_date}: "
        f"{len(document.tasks)} tasks, {len(document.habits)} habits"
    )
    return document


def backup_filename(day: date) -> str:
    """Conventional file name for a backup taken on ``day``."""
    return f"{FILENAME_PREFIX}{day.isoformat()}.json"
