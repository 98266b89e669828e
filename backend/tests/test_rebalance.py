from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from planner.curriculum_normalizer import generate_fallback_curriculum
from planner.db.session import dispose_engine, session_scope
from planner.errors import RebalanceSuppressed
from planner.learning_path_progress import complete_day
from planner.models import DurationPreference, Learner, LearningPath, StudyPlan
from planner.rebalance import apply_allocation, ensure_rebalance_allowed, plan_rebalance, rebalance_learner
from planner.repositories import learners, learning_paths

START = date(2026, 4, 6)


def teardown_module() -> None:  # pragma: no cover - test cleanup
    dispose_engine()


def _path(subject: str, username: str = "ada", total_days: int = 5) -> LearningPath:
    return LearningPath(
        username=username,
        subject_name=subject,
        start_date=START,
        end_date=START + timedelta(days=total_days - 1),
        total_days=total_days,
        curriculum=generate_fallback_curriculum(subject, total_days),
    )


def test_apply_allocation_touches_only_future_days() -> None:
    path = complete_day(_path("Python"), 1)
    before = path.curriculum["1"].duration_minutes
    updated = apply_allocation(path, 33)
    assert updated is not None
    assert updated.curriculum["1"].duration_minutes == before
    assert all(updated.curriculum[str(day)].duration_minutes == 33 for day in range(2, 6))
    assert apply_allocation(updated, 33) is None


def test_plan_rebalance_splits_daily_budget() -> None:
    learner = Learner(
        username="ada",
        daily_study_minutes=120,
        subject_session_durations={"Math": DurationPreference(minimum=30, maximum=45)},
    )
    result = plan_rebalance(learner, [_path("Math"), _path("History"), _path("Art")])
    assert result.allocation == {"Math": 40, "History": 40, "Art": 40}
    assert {path.subject_name for path in result.updated_paths} == {"Math", "History", "Art"}


def test_plan_rebalance_ignores_inactive_paths() -> None:
    learner = Learner(username="ada")
    deleted = _path("Art")
    deleted.deleted_at = datetime.now(timezone.utc)
    result = plan_rebalance(learner, [deleted])
    assert result.allocation == {}
    assert result.updated_paths == []


def test_cooldown_suppresses_rebalance() -> None:
    now = datetime(2026, 4, 6, 12, tzinfo=timezone.utc)
    plan = StudyPlan(
        username="ada",
        starts_on=START,
        ends_on=START + timedelta(days=29),
        prevent_rebalance_until=now + timedelta(hours=12),
    )
    with pytest.raises(RebalanceSuppressed) as excinfo:
        ensure_rebalance_allowed(plan, now)
    assert "retry_after" in excinfo.value.details
    ensure_rebalance_allowed(plan, now + timedelta(hours=13))
    ensure_rebalance_allowed(plan.model_copy(update={"prevent_rebalance_until": None}), now)


def test_rebalance_learner_persists_future_durations(username, events) -> None:
    with session_scope() as session:
        learner = learners.get_or_create(session, username)
        learner.daily_study_minutes = 90
        learners.upsert(session, learner)
        first = learning_paths.add(session, _path("Python", username))
        second = learning_paths.add(session, _path("Biology", username))

    result = rebalance_learner(username)

    assert result.allocation == {"Python": 45, "Biology": 45}
    with session_scope(commit=False) as session:
        for path_id in (first.path_id, second.path_id):
            stored = learning_paths.get(session, username, path_id)
            assert stored is not None
            assert {day.duration_minutes for day in stored.curriculum.values()} == {45}
    emitted = [event for event in events if event.name == "durations_rebalanced"]
    assert emitted and emitted[-1].payload["allocation"] == {"Python": 45, "Biology": 45}
