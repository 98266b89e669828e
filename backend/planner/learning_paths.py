"""Learning path enrollment, progress, and removal."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from .config import Settings, get_settings
from .curriculum_normalizer import generate_fallback_curriculum, normalize_curriculum, reindex_curriculum
from .db.session import session_scope
from .duration_budget import allocate, demands_for
from .errors import DuplicateEnrollment, FocusLimitReached, GenerationFailure, InvalidState, NotFound
from .generation import CurriculumRequest, ScheduleGenerator, get_generator
from .learning_path_progress import (
    check_before_delete as inspect_before_delete,
    complete_day as advance_completed,
    completed_day_count,
    day_status,
    is_behind_schedule,
    progress_percent,
    skip_day as advance_skipped,
    soft_delete,
    uncomplete_day as reopen_previous,
)
from .models import (
    Curriculum,
    DeleteCheck,
    DurationPreference,
    Learner,
    LearningPath,
    LearningPathDayView,
    LearningPathView,
    learner_today,
)
from .rebalance import rebalance_learner
from .repositories import learners, learning_paths
from .resource_catalog import ResourceCatalog
from .study_plans import plan_service
from .telemetry import emit_event

logger = logging.getLogger(__name__)


class EnrollmentRequest(BaseModel):
    subject: str = Field(..., min_length=1, max_length=120)
    start_date: date
    end_date: date
    difficulty: int = Field(default=2, ge=1, le=3)
    curriculum: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "EnrollmentRequest":
        self.subject = self.subject.strip()
        if not self.subject:
            raise ValueError("Subject cannot be blank.")
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date.")
        return self

    @property
    def total_days(self) -> int:
        return span_days(self.start_date, self.end_date)


def span_days(start: date, end: date) -> int:
    """Inclusive number of days between ``start`` and ``end``."""
    return (end - start).days + 1


def _same_subject(left: str, right: str) -> bool:
    return left.strip().lower() == right.strip().lower()


def build_view(path: LearningPath, today: date, tolerance: int = 0) -> LearningPathView:
    days: List[LearningPathDayView] = []
    for number in range(1, path.total_days + 1):
        entry = path.curriculum.get(str(number))
        if entry is None:
            continue
        days.append(
            LearningPathDayView(
                day_number=number,
                status=day_status(path, number),
                topic=entry.topic,
                level=entry.level,
                duration_minutes=entry.duration_minutes,
                focus_level=entry.focus_level,
                key_topics=list(entry.key_topics),
                sub_topics=list(entry.sub_topics),
                resources=list(entry.resources),
            )
        )
    return LearningPathView(
        id=path.path_id,
        subject_name=path.subject_name,
        start_date=path.start_date,
        end_date=path.end_date,
        total_days=path.total_days,
        current_day=path.current_day,
        status=path.status,
        difficulty=path.difficulty,
        progress_percent=progress_percent(path),
        is_behind_schedule=is_behind_schedule(path, today, tolerance),
        completed_sessions_count=len(path.completed_days),
        days=days,
    )


class LearningPathService:
    def __init__(
        self,
        generator: Optional[ScheduleGenerator] = None,
        *,
        settings: Optional[Settings] = None,
        catalog: Optional[ResourceCatalog] = None,
    ) -> None:
        self._generator = generator
        self._settings = settings
        self._catalog = catalog

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def generator(self) -> ScheduleGenerator:
        if self._generator is None:
            self._generator = get_generator(self.settings)
        return self._generator

    @generator.setter
    def generator(self, value: Optional[ScheduleGenerator]) -> None:
        self._generator = value

    # enrollment -----------------------------------------------------------

    def _daily_target(self, learner: Learner, subjects: Sequence[str], subject: str) -> int:
        names = list(subjects)
        if not any(_same_subject(name, subject) for name in names):
            names.append(subject)
        allocation = allocate(learner.daily_study_minutes, demands_for(names, learner.subject_session_durations))
        return allocation.get(subject, learner.daily_study_minutes)

    def build_curriculum(
        self,
        learner: Learner,
        subject: str,
        total_days: int,
        difficulty: int,
        supplied: Optional[Dict[str, Any]] = None,
        *,
        subjects: Sequence[str] = (),
    ) -> Curriculum:
        """Normalised curriculum for ``subject``; template content when generation fails."""
        prefs = learner.subject_session_durations
        if supplied is not None:
            return normalize_curriculum(supplied, total_days, subject, prefs, difficulty=difficulty, catalog=self._catalog)
        request = CurriculumRequest(
            subject=subject,
            total_days=total_days,
            difficulty=difficulty,
            daily_minutes_target=self._daily_target(learner, subjects or learner.subjects, subject),
            study_goal=learner.study_goal,
        )
        try:
            raw = self.generator.request_curriculum(request)
        except GenerationFailure as exc:
            logger.warning("Curriculum generation failed for %s (%s): %s", learner.username, subject, exc)
            emit_event(
                "generation_fallback",
                kind="curriculum",
                username=learner.username,
                subject=subject,
                error=str(exc),
            )
            return generate_fallback_curriculum(subject, total_days, difficulty, prefs, catalog=self._catalog)
        return normalize_curriculum(raw, total_days, subject, prefs, difficulty=difficulty, catalog=self._catalog)

    def _check_capacity(self, active: Sequence[LearningPath], subjects: Sequence[str]) -> None:
        limit = self.settings.focus_limit
        if len(active) + len(subjects) > limit:
            raise FocusLimitReached(
                f"You can focus on at most {limit} subjects at once. Complete or remove a subject first.",
                details={"limit": limit, "active": len(active)},
            )
        seen: List[str] = [path.subject_name for path in active]
        for subject in subjects:
            if any(_same_subject(existing, subject) for existing in seen):
                raise DuplicateEnrollment(
                    f"You are already enrolled in {subject}.",
                    details={"subject": subject},
                )
            seen.append(subject)

    def _persist_enrollment(self, username: str, request: EnrollmentRequest, curriculum: Curriculum) -> LearningPath:
        with session_scope() as session:
            if learning_paths.find_active_for_subject(session, username, request.subject) is not None:
                raise DuplicateEnrollment(
                    f"You are already enrolled in {request.subject}.",
                    details={"subject": request.subject},
                )
            path = learning_paths.add(
                session,
                LearningPath(
                    username=username,
                    subject_name=request.subject,
                    start_date=request.start_date,
                    end_date=request.end_date,
                    total_days=request.total_days,
                    difficulty=request.difficulty,
                    curriculum=curriculum,
                ),
            )
            learner = learners.get_or_create(session, username)
            if not any(_same_subject(name, request.subject) for name in learner.subjects):
                learner.subjects.append(request.subject)
            learner.subject_difficulties[request.subject] = request.difficulty
            learner.subject_end_dates[request.subject] = request.end_date
            learners.upsert(session, learner)
        return path

    def _finish_enrollment(self, username: str, created: Sequence[LearningPath]) -> List[LearningPath]:
        rebalance_learner(username)
        results: List[LearningPath] = []
        with session_scope(commit=False) as session:
            for path in created:
                results.append(learning_paths.get(session, username, path.path_id) or path)
        for path in results:
            emit_event(
                "learning_path_enrolled",
                username=path.username,
                path_id=path.path_id,
                subject=path.subject_name,
                total_days=path.total_days,
                difficulty=path.difficulty,
            )
        return results

    def enroll(self, username: str, request: EnrollmentRequest) -> LearningPath:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            active = learning_paths.list_active(session, username)
        self._check_capacity(active, [request.subject])
        curriculum = self.build_curriculum(
            learner,
            request.subject,
            request.total_days,
            request.difficulty,
            request.curriculum,
            subjects=[path.subject_name for path in active],
        )
        path = self._persist_enrollment(learner.username, request, curriculum)
        return self._finish_enrollment(learner.username, [path])[0]

    def enroll_many(self, username: str, requests: Sequence[EnrollmentRequest]) -> List[LearningPath]:
        """Enroll several subjects at once, generating their curricula concurrently."""
        if not requests:
            return []
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            active = learning_paths.list_active(session, username)
        self._check_capacity(active, [request.subject for request in requests])

        subjects = [path.subject_name for path in active] + [request.subject for request in requests]
        workers = min(self.settings.planner_generation_workers, len(requests))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="curriculum") as pool:
            futures = [
                pool.submit(
                    self.build_curriculum,
                    learner,
                    request.subject,
                    request.total_days,
                    request.difficulty,
                    request.curriculum,
                    subjects=subjects,
                )
                for request in requests
            ]
            curricula = [future.result() for future in futures]

        created = [
            self._persist_enrollment(learner.username, request, curriculum)
            for request, curriculum in zip(requests, curricula)
        ]
        return self._finish_enrollment(learner.username, created)

    # updates --------------------------------------------------------------

    def _require(self, session: Any, username: str, path_id: str) -> LearningPath:
        path = learning_paths.get(session, username, path_id)
        if path is None:
            raise NotFound("Learning path not found.", details={"path_id": path_id})
        return path

    def update_learning_path(
        self,
        username: str,
        path_id: str,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        difficulty: Optional[int] = None,
    ) -> LearningPath:
        """Change dates or difficulty, keeping every day before ``current_day`` verbatim."""
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            path = self._require(session, username, path_id)

        new_start = start_date or path.start_date
        new_end = end_date or path.end_date
        new_difficulty = difficulty or path.difficulty
        if new_end < new_start:
            raise InvalidState("end_date must not be before start_date.", details={"path_id": path_id})
        new_total = span_days(new_start, new_end)
        preserved = completed_day_count(path)
        minimum = path.current_day if path.status == "active" else preserved
        if new_total < minimum:
            raise InvalidState(
                f"The new dates leave {new_total} days but day {minimum} has already been reached.",
                details={"path_id": path_id, "total_days": new_total, "current_day": path.current_day},
            )

        curriculum: Curriculum = {
            str(day): path.curriculum[str(day)]
            for day in range(1, preserved + 1)
            if str(day) in path.curriculum
        }
        remaining = new_total - preserved
        if remaining > 0:
            fresh = self.build_curriculum(learner, path.subject_name, remaining, new_difficulty)
            curriculum.update(reindex_curriculum(fresh, preserved))

        updated = path.model_copy(deep=True)
        updated.start_date = new_start
        updated.end_date = new_end
        updated.total_days = new_total
        updated.difficulty = new_difficulty
        updated.curriculum = curriculum
        updated.completed_days = [day for day in path.completed_days if day <= new_total]
        updated.skipped_days = [day for day in path.skipped_days if day <= new_total]
        if path.current_day > new_total:
            updated.status = "completed"
            updated.current_day = new_total + 1
        else:
            updated.status = "active"
        updated.updated_at = datetime.now(timezone.utc)

        with session_scope() as session:
            saved = learning_paths.save(session, updated)
            learner = learners.get_or_create(session, username)
            learner.subject_difficulties[saved.subject_name] = new_difficulty
            learner.subject_end_dates[saved.subject_name] = new_end
            learners.upsert(session, learner)
        logger.info("Updated learning path %s: %s days, %s preserved", path_id, new_total, preserved)
        rebalance_learner(username)
        emit_event(
            "learning_path_updated",
            username=saved.username,
            path_id=path_id,
            total_days=new_total,
            preserved_days=preserved,
        )
        with session_scope(commit=False) as session:
            return learning_paths.get(session, username, path_id) or saved

    def update_preferences(
        self,
        username: str,
        *,
        daily_study_minutes: Optional[int] = None,
        subject_session_durations: Optional[Dict[str, DurationPreference]] = None,
        timezone_name: Optional[str] = None,
        study_goal: Optional[str] = None,
    ) -> Learner:
        """Update the learner's budget settings and rebalance future durations."""
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            changes: Dict[str, Any] = {}
            if daily_study_minutes is not None:
                changes["daily_study_minutes"] = daily_study_minutes
            if subject_session_durations is not None:
                merged = dict(learner.subject_session_durations)
                merged.update(subject_session_durations)
                changes["subject_session_durations"] = merged
            if timezone_name is not None:
                changes["timezone"] = timezone_name
            if study_goal is not None:
                changes["study_goal"] = study_goal
            learner = Learner.model_validate({**learner.model_dump(), **changes})
            learner = learners.upsert(session, learner)
        rebalance_learner(learner.username)
        return learner

    # progress -------------------------------------------------------------

    def _view(self, learner: Learner, path: LearningPath, today: Optional[date]) -> LearningPathView:
        return build_view(
            path,
            today or learner_today(learner),
            self.settings.behind_schedule_tolerance_days,
        )

    def list_active_learning_paths(self, username: str, today: Optional[date] = None) -> List[LearningPathView]:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            paths = learning_paths.list_active(session, username)
        return [self._view(learner, path, today) for path in paths]

    def list_completed_learning_paths(self, username: str, today: Optional[date] = None) -> List[LearningPathView]:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            paths = learning_paths.list_completed(session, username)
        return [self._view(learner, path, today) for path in paths]

    def get_learning_path(self, username: str, path_id: str, today: Optional[date] = None) -> LearningPathView:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            path = self._require(session, username, path_id)
        return self._view(learner, path, today)

    def _transition(self, username: str, path_id: str, step: Any, today: Optional[date]) -> LearningPathView:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            path = self._require(session, username, path_id)
            saved = learning_paths.save(session, step(path))
        return self._view(learner, saved, today)

    def complete_day(self, username: str, path_id: str, day: int, today: Optional[date] = None) -> LearningPathView:
        return self._transition(username, path_id, lambda path: advance_completed(path, day), today)

    def skip_day(self, username: str, path_id: str, today: Optional[date] = None) -> LearningPathView:
        return self._transition(username, path_id, advance_skipped, today)

    def uncomplete_day(self, username: str, path_id: str, today: Optional[date] = None) -> LearningPathView:
        return self._transition(username, path_id, reopen_previous, today)

    # removal --------------------------------------------------------------

    def check_before_delete(self, username: str, path_id: str) -> DeleteCheck:
        with session_scope(commit=False) as session:
            path = learning_paths.get(session, username, path_id, include_deleted=True)
        return inspect_before_delete(path, path_id)

    def delete_learning_path(self, username: str, path_id: str, *, now: Optional[datetime] = None) -> DeleteCheck:
        """Soft delete; the subject leaves the learner only when no other active path uses it."""
        subject_removed = False
        with session_scope() as session:
            path = learning_paths.get(session, username, path_id, include_deleted=True)
            if path is None:
                raise NotFound("Learning path not found.", details={"path_id": path_id})
            summary = inspect_before_delete(path, path_id)
            if summary.already_deleted:
                return summary
            learning_paths.save(session, soft_delete(path, now))
            if learning_paths.find_active_for_subject(session, username, path.subject_name) is None:
                learner = learners.get_or_create(session, username)
                learner.subjects = [name for name in learner.subjects if not _same_subject(name, path.subject_name)]
                learner.subject_difficulties.pop(path.subject_name, None)
                learner.subject_end_dates.pop(path.subject_name, None)
                learners.upsert(session, learner)
                subject_removed = True

        if subject_removed:
            plan_service.remove_subject_from_plan(username, path.subject_name)
        rebalance_learner(username)
        emit_event(
            "learning_path_deleted",
            username=path.username,
            path_id=path.path_id,
            subject=path.subject_name,
            had_progress=summary.has_progress,
            subject_removed=subject_removed,
        )
        return summary


learning_path_service = LearningPathService()


def check_before_delete(username: str, path_id: str) -> DeleteCheck:
    return learning_path_service.check_before_delete(username, path_id)


def delete_learning_path(username: str, path_id: str) -> DeleteCheck:
    return learning_path_service.delete_learning_path(username, path_id)


__all__ = [
    "EnrollmentRequest",
    "LearningPathService",
    "build_view",
    "check_before_delete",
    "delete_learning_path",
    "learning_path_service",
    "span_days",
]
