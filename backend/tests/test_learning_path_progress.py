from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from planner.curriculum_normalizer import generate_fallback_curriculum
from planner.errors import InvalidState, NotFound
from planner.learning_path_progress import (
    check_before_delete,
    complete_day,
    day_status,
    is_behind_schedule,
    progress_percent,
    skip_day,
    soft_delete,
    uncomplete_day,
)
from planner.models import LearningPath

START = date(2026, 3, 2)


def _path(total_days: int = 3, **kwargs) -> LearningPath:
    return LearningPath(
        username="ada",
        subject_name="Python",
        start_date=START,
        end_date=date(2026, 3, 1 + total_days),
        total_days=total_days,
        curriculum=generate_fallback_curriculum("Python", total_days),
        **kwargs,
    )


def test_complete_day_advances_and_finishes() -> None:
    path = _path()
    path = complete_day(path, 1)
    assert path.current_day == 2
    assert path.completed_days == [1]
    path = complete_day(complete_day(path, 2), 3)
    assert path.status == "completed"
    assert path.current_day == 4
    assert progress_percent(path) == 100.0


def test_complete_day_rejects_other_days() -> None:
    path = _path()
    with pytest.raises(InvalidState) as excinfo:
        complete_day(path, 2)
    assert excinfo.value.details["current_day"] == 1


def test_completed_path_rejects_more_progress() -> None:
    path = _path(total_days=1)
    path = complete_day(path, 1)
    with pytest.raises(InvalidState):
        complete_day(path, 2)
    with pytest.raises(InvalidState):
        skip_day(path)


def test_complete_day_does_not_mutate_input() -> None:
    path = _path()
    complete_day(path, 1)
    assert path.current_day == 1
    assert path.completed_days == []


def test_skip_day_marks_entry_and_advances() -> None:
    path = skip_day(_path())
    assert path.current_day == 2
    assert path.skipped_days == [1]
    assert path.curriculum["1"].skipped is True
    assert day_status(path, 1) == "skipped"
    assert day_status(path, 2) == "active"
    assert day_status(path, 3) == "future"
    assert progress_percent(path) == pytest.approx(33.3)


def test_uncomplete_reopens_previous_day() -> None:
    path = complete_day(complete_day(_path(total_days=2), 1), 2)
    reopened = uncomplete_day(path)
    assert reopened.status == "active"
    assert reopened.current_day == 2
    assert reopened.completed_days == [1]


def test_uncomplete_requires_a_completion() -> None:
    with pytest.raises(InvalidState):
        uncomplete_day(_path())
    with pytest.raises(InvalidState):
        uncomplete_day(skip_day(_path()))


def test_behind_schedule_detection() -> None:
    path = _path(total_days=10)
    assert is_behind_schedule(path, START) is False
    assert is_behind_schedule(path, date(2026, 3, 3)) is True
    assert is_behind_schedule(path, date(2026, 3, 3), tolerance=1) is False
    assert is_behind_schedule(path, date(2026, 2, 1)) is False
    finished = _path(total_days=1)
    finished = complete_day(finished, 1)
    assert is_behind_schedule(finished, date(2026, 6, 1)) is False


def test_check_before_delete_reports_progress() -> None:
    path = complete_day(_path(total_days=4), 1)
    summary = check_before_delete(path, path.path_id)
    assert summary.has_progress is True
    assert summary.completed_sessions == 1
    assert summary.completed_days == 1
    assert summary.progress_percent == 25.0
    assert summary.already_deleted is False


def test_check_before_delete_tombstone_and_missing() -> None:
    deleted = soft_delete(_path(), datetime(2026, 3, 5, tzinfo=timezone.utc))
    summary = check_before_delete(deleted, deleted.path_id)
    assert summary.already_deleted is True
    assert summary.has_progress is False
    with pytest.raises(NotFound):
        check_before_delete(None, "missing")
    with pytest.raises(InvalidState):
        complete_day(deleted, 1)
