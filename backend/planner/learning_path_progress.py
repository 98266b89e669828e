"""Day-advancement state machine for learning paths."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from .errors import InvalidState, NotFound
from .models import DayStatus, DeleteCheck, LearningPath


def _ensure_active(path: LearningPath) -> None:
    if path.is_deleted:
        raise InvalidState("Learning path has been removed.", details={"path_id": path.path_id})
    if path.status != "active":
        raise InvalidState("Learning path is already completed.", details={"path_id": path.path_id})


def _advance(path: LearningPath) -> None:
    if path.current_day >= path.total_days:
        path.status = "completed"
        path.current_day = path.total_days + 1
    else:
        path.current_day += 1
    path.updated_at = datetime.now(timezone.utc)


def day_status(path: LearningPath, day: int) -> DayStatus:
    if day in path.skipped_days:
        return "skipped"
    if day in path.completed_days or day < path.current_day:
        return "completed"
    if day == path.current_day and path.status == "active":
        return "active"
    return "future"


def complete_day(path: LearningPath, day: int) -> LearningPath:
    """Record completion of ``day``; only the current day can be completed."""
    _ensure_active(path)
    if day != path.current_day:
        raise InvalidState(
            f"Day {day} is not the current active day. Current day is {path.current_day}.",
            details={"path_id": path.path_id, "day": day, "current_day": path.current_day},
        )
    updated = path.model_copy(deep=True)
    if day not in updated.completed_days:
        updated.completed_days.append(day)
    _advance(updated)
    return updated


def skip_day(path: LearningPath) -> LearningPath:
    """Mark the current day skipped and move on without a completion record."""
    _ensure_active(path)
    updated = path.model_copy(deep=True)
    day = updated.current_day
    if day not in updated.skipped_days:
        updated.skipped_days.append(day)
    entry = updated.curriculum.get(str(day))
    if entry is not None:
        entry.skipped = True
    _advance(updated)
    return updated


def uncomplete_day(path: LearningPath) -> LearningPath:
    """Undo the completion of the day right before ``current_day``."""
    if path.is_deleted:
        raise InvalidState("Learning path has been removed.", details={"path_id": path.path_id})
    previous = path.current_day - 1
    if previous < 1 or previous not in path.completed_days:
        raise InvalidState(
            "Only the most recently completed day can be reopened.",
            details={"path_id": path.path_id, "current_day": path.current_day},
        )
    updated = path.model_copy(deep=True)
    updated.completed_days.remove(previous)
    updated.current_day = previous
    updated.status = "active"
    updated.updated_at = datetime.now(timezone.utc)
    return updated


def completed_day_count(path: LearningPath) -> int:
    return max(0, min(path.total_days, path.current_day - 1))


def progress_percent(path: LearningPath) -> float:
    return round(completed_day_count(path) / path.total_days * 100, 1)


def is_behind_schedule(path: LearningPath, today: date, tolerance: int = 0) -> bool:
    """True when the calendar implies a later day than ``current_day`` by more than ``tolerance``."""
    if path.status != "active" or path.is_deleted:
        return False
    days_since_start = (today - path.start_date).days
    if days_since_start < 0:
        return False
    expected_day = min(path.total_days, days_since_start + 1)
    return expected_day - path.current_day > tolerance


def check_before_delete(path: Optional[LearningPath], path_id: str) -> DeleteCheck:
    if path is None:
        raise NotFound("Learning path not found.", details={"path_id": path_id})
    if path.is_deleted:
        return DeleteCheck(
            id=path.path_id,
            subject_name=path.subject_name,
            has_progress=False,
            completed_sessions=0,
            completed_days=0,
            total_days=path.total_days,
            progress_percent=0.0,
            already_deleted=True,
        )
    completed_sessions = len(path.completed_days)
    return DeleteCheck(
        id=path.path_id,
        subject_name=path.subject_name,
        has_progress=completed_sessions > 0,
        completed_sessions=completed_sessions,
        completed_days=completed_day_count(path),
        total_days=path.total_days,
        progress_percent=progress_percent(path),
    )


def soft_delete(path: LearningPath, now: Optional[datetime] = None) -> LearningPath:
    updated = path.model_copy(deep=True)
    updated.deleted_at = now or datetime.now(timezone.utc)
    return updated


__all__ = [
    "check_before_delete",
    "complete_day",
    "completed_day_count",
    "day_status",
    "is_behind_schedule",
    "progress_percent",
    "skip_day",
    "soft_delete",
    "uncomplete_day",
]
