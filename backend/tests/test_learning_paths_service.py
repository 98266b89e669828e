from __future__ import annotations

from datetime import date, timedelta

import pytest
from conftest import StubGenerator, week_payload

from planner.config import Settings
from planner.curriculum_normalizer import generate_fallback_curriculum
from planner.db.session import dispose_engine, session_scope
from planner.errors import DuplicateEnrollment, FocusLimitReached, GenerationFailure, InvalidState, NotFound
from planner.learning_paths import (
    EnrollmentRequest,
    LearningPathService,
    check_before_delete,
    delete_learning_path,
    span_days,
)
from planner.models import DurationPreference, StudyPlan, Week
from planner.repositories import learners, learning_paths, study_plans
from planner.schedule_normalizer import normalize_schedule

START = date(2026, 9, 14)


def teardown_module() -> None:  # pragma: no cover - test cleanup
    dispose_engine()


def _titled(request):
    return {
        "curriculum": {
            str(day): {"topic": f"{request.subject} part {day}", "level": "beginner"}
            for day in range(1, request.total_days + 1)
        }
    }


def _service(**settings) -> LearningPathService:
    configured = Settings(**settings) if settings else None  # type: ignore[arg-type]
    return LearningPathService(StubGenerator(curriculum=_titled), settings=configured)


def _request(subject: str, days: int = 5, **kwargs) -> EnrollmentRequest:
    return EnrollmentRequest(subject=subject, start_date=START, end_date=START + timedelta(days=days - 1), **kwargs)


def test_enrollment_request_validation() -> None:
    assert _request("  Python ").subject == "Python"
    assert _request("Python", days=5).total_days == 5
    assert span_days(START, START) == 1
    with pytest.raises(ValueError):
        EnrollmentRequest(subject="Python", start_date=START, end_date=START - timedelta(days=1))
    with pytest.raises(ValueError):
        EnrollmentRequest(subject="   ", start_date=START, end_date=START)


def test_enroll_creates_path_and_updates_learner(username, events) -> None:
    service = _service()

    path = service.enroll(username, _request("Python", difficulty=3))

    assert path.total_days == 5
    assert path.curriculum["1"].topic == "Python part 1"
    assert {day.duration_minutes for day in path.curriculum.values()} == {120}
    request = service.generator.curriculum_requests[0]
    assert request.daily_minutes_target == 120
    assert request.difficulty == 3
    with session_scope(commit=False) as session:
        learner = learners.get(session, username)
    assert learner is not None
    assert learner.subjects == ["Python"]
    assert learner.subject_difficulties == {"Python": 3}
    assert learner.subject_end_dates == {"Python": START + timedelta(days=4)}
    enrolled = [event for event in events if event.name == "learning_path_enrolled"]
    assert enrolled and enrolled[-1].payload["path_id"] == path.path_id


def test_enroll_falls_back_to_template_curriculum(username, events) -> None:
    service = LearningPathService(StubGenerator(curriculum=GenerationFailure("offline")))

    path = service.enroll(username, _request("History", days=3))

    assert sorted(path.curriculum) == ["1", "2", "3"]
    assert all(day.topic for day in path.curriculum.values())
    fallbacks = [event for event in events if event.name == "generation_fallback"]
    assert fallbacks and fallbacks[-1].payload["kind"] == "curriculum"


def test_supplied_curriculum_skips_generation(username) -> None:
    service = _service()
    path = service.enroll(username, _request("Art", days=2, curriculum={"1": {"topic": "Colour"}}))
    assert path.curriculum["1"].topic == "Colour"
    assert service.generator.curriculum_requests == []


def test_duplicate_subject_is_rejected(username) -> None:
    service = _service()
    service.enroll(username, _request("Python"))
    with pytest.raises(DuplicateEnrollment):
        service.enroll(username, _request(" python "))
    with pytest.raises(DuplicateEnrollment):
        service.enroll_many(username, [_request("Math"), _request("MATH")])


def test_focus_limit_is_enforced(username) -> None:
    service = _service(PLANNER_FOCUS_LIMIT=2)
    with pytest.raises(FocusLimitReached) as excinfo:
        service.enroll_many(username, [_request("A"), _request("B"), _request("C")])
    assert excinfo.value.details["limit"] == 2
    with session_scope(commit=False) as session:
        assert learning_paths.list_active(session, username) == []


def test_enroll_many_generates_concurrently_and_rebalances(username) -> None:
    service = _service()

    created = service.enroll_many(username, [_request("Python"), _request("Biology")])

    assert [path.subject_name for path in created] == ["Python", "Biology"]
    assert {request.subject for request in service.generator.curriculum_requests} == {"Python", "Biology"}
    assert {request.daily_minutes_target for request in service.generator.curriculum_requests} == {60}
    for path in created:
        assert {day.duration_minutes for day in path.curriculum.values()} == {60}
    assert service.enroll_many(username, []) == []


def test_progress_transitions_and_listing(username) -> None:
    service = _service()
    path = service.enroll(username, _request("Chess", days=2))

    view = service.complete_day(username, path.path_id, 1, today=START)
    assert view.current_day == 2
    assert view.days[0].status == "completed"
    view = service.uncomplete_day(username, path.path_id, today=START)
    assert view.current_day == 1
    view = service.skip_day(username, path.path_id, today=START)
    assert view.days[0].status == "skipped"
    view = service.complete_day(username, path.path_id, 2, today=START + timedelta(days=1))
    assert view.status == "completed"

    assert service.list_active_learning_paths(username, START) == []
    completed = service.list_completed_learning_paths(username, START)
    assert [item.id for item in completed] == [path.path_id]
    with pytest.raises(InvalidState):
        service.complete_day(username, path.path_id, 3)


def test_behind_schedule_flag_in_views(username) -> None:
    service = _service()
    path = service.enroll(username, _request("Go", days=5))
    view = service.get_learning_path(username, path.path_id, today=START + timedelta(days=3))
    assert view.is_behind_schedule is True
    assert view.progress_percent == 0.0
    with pytest.raises(NotFound):
        service.get_learning_path(username, "missing")


def test_update_preserves_completed_days(username) -> None:
    service = _service()
    path = service.enroll(username, _request("Python", days=5))
    service.complete_day(username, path.path_id, 1)
    service.complete_day(username, path.path_id, 2)

    updated = service.update_learning_path(username, path.path_id, end_date=START + timedelta(days=7))

    assert updated.total_days == 8
    assert updated.current_day == 3
    assert updated.completed_days == [1, 2]
    assert updated.curriculum["1"].topic == "Python part 1"
    assert updated.curriculum["2"].topic == "Python part 2"
    assert updated.curriculum["3"].topic == "Python part 1"
    assert updated.curriculum["8"].topic == "Python part 6"
    assert service.generator.curriculum_requests[-1].total_days == 6


def test_update_cannot_drop_reached_days(username) -> None:
    service = _service()
    path = service.enroll(username, _request("Python", days=5))
    service.complete_day(username, path.path_id, 1)
    service.complete_day(username, path.path_id, 2)
    with pytest.raises(InvalidState):
        service.update_learning_path(username, path.path_id, end_date=START + timedelta(days=1))
    with pytest.raises(InvalidState):
        service.update_learning_path(username, path.path_id, end_date=START - timedelta(days=1))


def test_update_preferences_rebalances_paths(username) -> None:
    service = _service()
    first, second = service.enroll_many(username, [_request("Python"), _request("Biology")])

    learner = service.update_preferences(
        username,
        daily_study_minutes=90,
        subject_session_durations={"Python": DurationPreference(minimum=20, maximum=30)},
        timezone_name="Europe/Paris",
    )

    assert learner.daily_study_minutes == 90
    assert learner.timezone == "Europe/Paris"
    with session_scope(commit=False) as session:
        python = learning_paths.get(session, username, first.path_id)
        biology = learning_paths.get(session, username, second.path_id)
    assert {day.duration_minutes for day in python.curriculum.values()} == {30}
    assert {day.duration_minutes for day in biology.curriculum.values()} == {60}


def test_delete_removes_subject_everywhere(username, events) -> None:
    service = _service()
    path = service.enroll(username, _request("Python"))
    service.enroll(username, _request("Biology"))
    service.complete_day(username, path.path_id, 1)
    with session_scope() as session:
        study_plans.add(
            session,
            StudyPlan(
                username=username,
                starts_on=START,
                ends_on=START + timedelta(days=13),
                weeks=[Week(week_start=START, schedule=normalize_schedule(week_payload("Python", "Loops")))],
            ),
        )

    check = service.check_before_delete(username, path.path_id)
    assert check.has_progress is True
    assert check.completed_days == 1

    summary = service.delete_learning_path(username, path.path_id)

    assert summary.already_deleted is False
    with session_scope(commit=False) as session:
        learner = learners.get(session, username)
        plan = study_plans.get_active(session, username)
        remaining = learning_paths.list_active(session, username)
    assert learner is not None and learner.subjects == ["Biology"]
    assert "Python" not in learner.subject_end_dates
    assert plan is not None and plan.weeks[0].schedule["Monday"].sessions == []
    assert [item.subject_name for item in remaining] == ["Biology"]
    assert {day.duration_minutes for day in remaining[0].curriculum.values()} == {120}
    deleted = [event for event in events if event.name == "learning_path_deleted"]
    assert deleted and deleted[-1].payload["subject_removed"] is True

    again = service.delete_learning_path(username, path.path_id)
    assert again.already_deleted is True
    with pytest.raises(NotFound):
        service.get_learning_path(username, path.path_id)
    with pytest.raises(NotFound):
        service.check_before_delete(username, "missing")
    with pytest.raises(NotFound):
        service.delete_learning_path(username, "missing")


def test_module_level_delete_helpers(username) -> None:
    path = _service().enroll(username, _request("Drawing", days=2))
    assert check_before_delete(username, path.path_id).already_deleted is False
    assert delete_learning_path(username, path.path_id).id == path.path_id
    assert check_before_delete(username, path.path_id).already_deleted is True


def test_batch_failures_degrade_per_subject(username, events) -> None:
    def answer(request):
        if request.subject == "Physics":
            raise GenerationFailure("timeout")
        if request.subject == "Chemistry":
            return "```not a curriculum```"
        return _titled(request)

    service = LearningPathService(StubGenerator(curriculum=answer))

    python, physics, chemistry = service.enroll_many(
        username, [_request("Python"), _request("Physics"), _request("Chemistry")]
    )

    assert [python.curriculum[str(day)].topic for day in range(1, 6)] == [
        f"Python part {day}" for day in range(1, 6)
    ]
    template = generate_fallback_curriculum("Physics", 5)
    assert [physics.curriculum[key].topic for key in sorted(physics.curriculum)] == [
        template[key].topic for key in sorted(template)
    ]
    assert sorted(chemistry.curriculum) == ["1", "2", "3", "4", "5"]
    assert all(day.topic and not day.topic.startswith("Chemistry part") for day in chemistry.curriculum.values())
    fallbacks = [event.payload["subject"] for event in events if event.name == "generation_fallback"]
    assert fallbacks == ["Physics"]
    with session_scope(commit=False) as session:
        assert len(learning_paths.list_active(session, username)) == 3


def test_small_remaining_budget_never_writes_zero_minutes(username) -> None:
    service = _service()
    service.update_preferences(
        username,
        daily_study_minutes=101,
        subject_session_durations={"Math": DurationPreference(minimum=100)},
    )

    for subject in ("Math", "History", "Art"):
        service.enroll(username, _request(subject))

    with session_scope(commit=False) as session:
        paths = learning_paths.list_active(session, username)
    minutes = {path.subject_name: {day.duration_minutes for day in path.curriculum.values()} for path in paths}
    assert minutes == {"Math": {100}, "History": {15}, "Art": {15}}
