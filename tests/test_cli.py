# tests/test_cli.py

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from study_planner.cli import main as cli_main
from study_planner.cli.main import app, setup_logging
from study_planner.core.config import get_config
from study_planner.planner.service import StudyPlanner
from study_planner.planner.settings import SettingsRepository
from study_planner.storage.store import Store

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STUDY_PLANNER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STUDY_PLANNER_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("STUDY_PLANNER_LOG_DIR", str(tmp_path / "logs"))
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "Study Planner v" in result.output


def test_task_lifecycle() -> None:
    result = runner.invoke(app, ["tasks", "--add", "Essay", "--deadline", "2025-01-27", "-p", "high"])
    assert result.exit_code == 0, result.output
    assert "Created task" in result.output

    result = runner.invoke(app, ["tasks"])
    assert "Essay" in result.output

    task_id = _task_ids()[0]
    result = runner.invoke(app, ["tasks", "--cycle", task_id])
    assert "in progress" in result.output


def test_invalid_input_exits_non_zero() -> None:
    result = runner.invoke(app, ["tasks", "--add", "Essay", "--deadline", "whenever"])
    assert result.exit_code == 1
    assert "Invalid date" in result.output

    result = runner.invoke(app, ["habits", "--toggle", "missing"])
    assert result.exit_code == 1


def test_habits() -> None:
    result = runner.invoke(app, ["habits", "--add", "Flashcards"])
    assert result.exit_code == 0
    habit_id = json.loads(_raw_document())["habits"][0]["id"]

    result = runner.invoke(app, ["habits", "--toggle", habit_id])
    assert "Streak: 1" in result.output


def test_timer_settings_and_stats() -> None:
    result = runner.invoke(app, ["timer-settings", "--focus", "50"])
    assert result.exit_code == 0
    assert "50 minutes" in result.output

    result = runner.invoke(app, ["timer-settings", "--focus", "0"])
    assert result.exit_code == 1

    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Sessions" in result.output


def test_timer_runs_one_phase(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDY_PLANNER_TIMER__TICK_SECONDS", "0.001")
    get_config.cache_clear()
    runner.invoke(app, ["timer-settings", "--focus", "1"])

    result = runner.invoke(app, ["timer"])

    assert result.exit_code == 0, result.output
    assert "Time for a Short Break!" in result.output
    assert json.loads(_raw_document())["timerStats"]["sessionsToday"] == 1


def test_timer_reports_storage_fault(monkeypatch: pytest.MonkeyPatch, failing_medium) -> None:
    monkeypatch.setenv("STUDY_PLANNER_TIMER__TICK_SECONDS", "0.001")
    get_config.cache_clear()
    store = Store(failing_medium)
    SettingsRepository(store).update_timer_settings(focusTime=1)
    failing_medium.failing = True
    monkeypatch.setattr(cli_main, "get_planner", lambda: StudyPlanner(store))

    result = runner.invoke(app, ["timer"])

    assert result.exit_code == 1
    assert "disk full" in result.output


def test_serve_applies_log_level_and_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []
    monkeypatch.setattr("study_planner.web.app.run_server", lambda **kw: calls.append(kw))

    try:
        result = runner.invoke(app, ["serve", "--log-level", "DEBUG", "--port", "9123"])

        assert result.exit_code == 0, result.output
        assert calls == [{"host": "127.0.0.1", "port": 9123}]
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert (tmp_path / "logs" / "server.log").exists()
    finally:
        setup_logging("WARNING")

def test_export_import_clear(tmp_path: Path) -> None:
    runner.invoke(app, ["tasks", "--add", "Essay"])

    result = runner.invoke(app, ["export", "--dir", str(tmp_path / "out")])
    assert result.exit_code == 0
    backup = next((tmp_path / "out").glob("study-planner-backup-*.json"))

    result = runner.invoke(app, ["clear", "--yes"])
    assert result.exit_code == 0
    assert json.loads(_raw_document())["tasks"] == []

    result = runner.invoke(app, ["import", str(backup), "--yes"])
    assert result.exit_code == 0
    assert "1 tasks" in result.output

    bad = tmp_path / "bad.json"
    bad.write_text('{"tasks": []}')
    result = runner.invoke(app, ["import", str(bad), "--yes"])
    assert result.exit_code == 1
    assert "Import failed" in result.output


def test_dashboard() -> None:
    runner.invoke(app, ["tasks", "--add", "Essay"])
    result = runner.invoke(app, ["dashboard"])
    assert result.exit_code == 0
    assert "Dashboard" in result.output


def _raw_document() -> str:
    from study_planner.storage.kv import SqliteKeyValueStore

    config = get_config()
    medium = SqliteKeyValueStore(config.db_path)
    try:
        return medium.get(config.storage_key)
    finally:
        medium.close()


def _task_ids() -> list[str]:
    return [t["id"] for t in json.loads(_raw_document())["tasks"]]
