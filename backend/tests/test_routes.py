from __future__ import annotations

from datetime import date, timedelta

import pytest
from conftest import StubGenerator, week_payload
from fastapi.testclient import TestClient

from planner.db.session import dispose_engine
from planner.learning_paths import learning_path_service
from planner.main import app
from planner.study_plans import plan_service

START = date(2026, 10, 5)


def teardown_module() -> None:  # pragma: no cover - test cleanup
    dispose_engine()


@pytest.fixture
def client(monkeypatch) -> TestClient:
    monkeypatch.setattr(
        learning_path_service,
        "generator",
        StubGenerator(curriculum=lambda request: {"curriculum": [{"topic": f"{request.subject} basics"}]}),
    )
    monkeypatch.setattr(
        plan_service,
        "generator",
        StubGenerator(week=lambda request: week_payload("Python", f"Week {request.week_number}")),
    )
    return TestClient(app)


def _enroll(client: TestClient, username: str, subject: str = "Python", days: int = 4) -> dict:
    response = client.post(
        f"/api/learners/{username}/learning-paths",
        json={
            "subject": subject,
            "start_date": START.isoformat(),
            "end_date": (START + timedelta(days=days - 1)).isoformat(),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_enroll_and_list(client, username) -> None:
    created = _enroll(client, username)
    assert created["subject_name"] == "Python"
    assert created["days"][0]["topic"] == "Python basics"
    assert len(created["days"]) == 4

    response = client.get(f"/api/learners/{username}/learning-paths", params={"today": START.isoformat()})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [created["id"]]

    response = client.get(f"/api/learners/{username}/learning-paths", params={"state": "completed"})
    assert response.json() == []


def test_invalid_enrollment_is_rejected(client, username) -> None:
    response = client.post(
        f"/api/learners/{username}/learning-paths",
        json={"subject": "Python", "start_date": "2026-10-05", "end_date": "2026-10-01"},
    )
    assert response.status_code == 422


def test_duplicate_batch_returns_conflict(client, username) -> None:
    payload = [
        {"subject": "Math", "start_date": "2026-10-05", "end_date": "2026-10-09"},
        {"subject": "math", "start_date": "2026-10-05", "end_date": "2026-10-09"},
    ]
    response = client.post(f"/api/learners/{username}/learning-paths/batch", json=payload)
    assert response.status_code == 409
    assert response.json()["detail"]["subject"] == "math"


def test_day_transitions(client, username) -> None:
    path_id = _enroll(client, username)["id"]
    base = f"/api/learners/{username}/learning-paths/{path_id}"

    response = client.post(f"{base}/complete-day", json={"day": 2})
    assert response.status_code == 409
    assert response.json()["detail"]["current_day"] == 1

    response = client.post(f"{base}/complete-day", json={"day": 1})
    assert response.json()["current_day"] == 2
    response = client.post(f"{base}/uncomplete-day")
    assert response.json()["current_day"] == 1
    response = client.post(f"{base}/skip-day")
    assert response.json()["days"][0]["status"] == "skipped"

    response = client.put(base, json={"end_date": (START + timedelta(days=6)).isoformat()})
    assert response.status_code == 200
    assert response.json()["total_days"] == 7


def test_delete_flow(client, username) -> None:
    path_id = _enroll(client, username)["id"]
    base = f"/api/learners/{username}/learning-paths/{path_id}"

    check = client.get(f"{base}/check-delete").json()
    assert check["has_progress"] is False
    assert check["already_deleted"] is False

    assert client.delete(base).status_code == 200
    assert client.delete(base).json()["already_deleted"] is True
    assert client.get(base).status_code == 404
    assert client.get(f"/api/learners/{username}/learning-paths/missing/check-delete").status_code == 404


def test_preferences_update(client, username) -> None:
    _enroll(client, username)
    response = client.put(
        f"/api/learners/{username}/preferences",
        json={"daily_study_minutes": 45, "subject_session_durations": {"Python": {"min": 20, "max": 40}}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["daily_study_minutes"] == 45
    assert body["subject_session_durations"]["Python"] == {"min": 20, "max": 40}

    response = client.put(f"/api/learners/{username}/preferences", json={"daily_study_minutes": 5})
    assert response.status_code == 422


def test_plan_lifecycle(client, username) -> None:
    _enroll(client, username, days=20)
    assert client.get(f"/api/learners/{username}/plan/today").status_code == 404

    response = client.post(f"/api/learners/{username}/plan", params={"today": START.isoformat()})
    assert response.status_code == 201
    summary = response.json()
    assert summary["weeks_generated"] == 1
    assert summary["current_schedule"]["Monday"]["sessions"][0]["topic"] == "Week 1"

    response = client.get(
        f"/api/learners/{username}/plan/today",
        params={"today": (START + timedelta(days=8)).isoformat()},
    )
    assert response.status_code == 200
    view = response.json()
    assert view["current_week"] == 2
    assert view["schedule"]["Monday"]["sessions"][0]["topic"] == "Week 2"

    response = client.post(f"/api/learners/{username}/plan/rebalance")
    assert response.status_code == 409
    assert "retry_after" in response.json()["detail"]


def test_activity_lists_audit_events(client, username) -> None:
    _enroll(client, username)
    response = client.get(f"/api/learners/{username}/activity")
    assert response.status_code == 200
    kinds = {entry["event_type"] for entry in response.json()}
    assert {"learner_created", "learning_path_created"} <= kinds
    assert client.get(f"/api/learners/{username}/activity", params={"limit": 0}).status_code == 422
