# tests/test_api.py

from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from study_planner.planner.service import StudyPlanner
from study_planner.web.app import create_app


@pytest.fixture()
def client(planner: StudyPlanner) -> TestClient:
    return TestClient(create_app(planner))


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


class TestTaskRoutes:
    def test_create_list_update_delete(self, client: TestClient) -> None:
        resp = client.post("/api/tasks", json={"title": "Essay", "priority": "high"})
        assert resp.status_code == 201
        task = resp.json()
        assert task["status"] == "pending"
        assert task["createdAt"] == "2025-01-27T12:00:00.000Z"

        resp = client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        assert [t["id"] for t in client.get("/api/tasks", params={"status": "completed"}).json()] == [task["id"]]
        assert client.get("/api/tasks", params={"search": "nothing"}).json() == []

        assert client.delete(f"/api/tasks/{task['id']}").status_code == 204
        assert client.get("/api/tasks").json() == []

    def test_cycle(self, client: TestClient) -> None:
        task = client.post("/api/tasks", json={"title": "Essay"}).json()
        resp = client.post(f"/api/tasks/{task['id']}/cycle")
        assert resp.json()["status"] == "in-progress"

    def test_validation_errors_map_to_422(self, client: TestClient) -> None:
        assert client.post("/api/tasks", json={"title": "  "}).status_code == 422
        assert client.post("/api/tasks", json={"title": "x", "deadline": "soon"}).status_code == 422

    def test_unknown_task_is_404(self, client: TestClient) -> None:
        assert client.patch("/api/tasks/missing", json={"title": "x"}).status_code == 404
        assert client.post("/api/tasks/missing/cycle").status_code == 404


class TestHabitRoutes:
    def test_toggle(self, client: TestClient) -> None:
        habit = client.post("/api/habits", json={"name": "Flashcards"}).json()
        resp = client.post(f"/api/habits/{habit['id']}/toggle")
        assert resp.status_code == 200
        body = resp.json()
        assert body["completedToday"] is True
        assert body["streak"] == 1
        assert body["lastCompleted"] == "2025-01-27"

    def test_unknown_habit_is_404(self, client: TestClient) -> None:
        assert client.post("/api/habits/missing/toggle").status_code == 404


def test_settings_routes(client: TestClient) -> None:
    resp = client.put("/api/timer/settings", json={"focusTime": 50})
    assert resp.json()["focusTime"] == 50
    assert client.put("/api/timer/settings", json={"focusTime": 0}).status_code == 422
    assert client.get("/api/timer/stats").json()["totalSessions"] == 0
    assert client.put("/api/settings", json={"darkMode": False}).json() == {
        "darkMode": False,
        "notifications": True,
    }


def test_export_import_clear(client: TestClient) -> None:
    client.post("/api/tasks", json={"title": "Essay"})

    resp = client.get("/api/export")
    assert resp.status_code == 200
    assert "study-planner-backup-2025-01-27.json" in resp.headers["content-disposition"]
    snapshot = resp.json()

    assert client.post("/api/clear").status_code == 204
    assert client.get("/api/tasks").json() == []

    resp = client.post("/api/import", content=json.dumps(snapshot))
    assert resp.json() == {"tasks": 1, "habits": 0}
    assert client.get("/api/tasks").json()[0]["title"] == "Essay"

    assert client.post("/api/import", content='{"tasks": []}').status_code == 422
    assert len(client.get("/api/tasks").json()) == 1


def test_overview(client: TestClient) -> None:
    client.post("/api/tasks", json={"title": "Essay", "deadline": "2025-02-01T09:00:00Z"})
    body = client.get("/api/overview").json()
    assert body["total_tasks"] == 1
    assert body["upcoming"][0]["title"] == "Essay"
    assert body["habits"]["total"] == 0


def test_import_restores_outside_event_loop(client: TestClient, planner: StudyPlanner, monkeypatch) -> None:
    restore = planner.restore
    seen = []

    def tracking_restore(raw):
        try:
            asyncio.get_running_loop()
            seen.append("event loop")
        except RuntimeError:
            seen.append("worker thread")
        return restore(raw)

    monkeypatch.setattr(planner, "restore", tracking_restore)

    resp = client.post("/api/import", content=json.dumps({"tasks": [], "habits": []}))

    assert resp.status_code == 200
    assert seen == ["worker thread"]
