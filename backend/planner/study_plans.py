"""Rolling study plan lifecycle: creation, weekly rollover, and rebalancing."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from .config import Settings, get_settings
from .db.session import session_scope
from .errors import GenerationFailure, NotFound
from .generation import ScheduleGenerator, WeekRequest, get_generator
from .models import (
    WEEKDAYS,
    GeneratedPlan,
    Learner,
    LearningPath,
    PlanWeekView,
    StudyPlan,
    Week,
    WeekSchedule,
    learner_today,
)
from .rebalance import ensure_rebalance_allowed, rebalance_learner
from .repositories import learners, learning_paths, study_plans
from .resource_catalog import ResourceCatalog
from .schedule_normalizer import normalize_generated_plan, normalize_schedule, schedule_to_payload
from .telemetry import emit_event
from .weekly_rollover import (
    CoveredTopics,
    WeeklyRolloverGenerator,
    extract_covered_topics,
    plan_lock,
    week_index_for,
)

logger = logging.getLogger(__name__)

DEFAULT_PLAN_DAYS = 29
UPCOMING_TOPIC_WINDOW = 7


class RepositoryWeekStore:
    """Week store that appends each generated week in its own transaction."""

    def reload(self, plan: StudyPlan) -> StudyPlan:
        with session_scope(commit=False) as session:
            fresh = study_plans.get(session, plan.plan_id)
        return fresh or plan

    def append_week(self, plan: StudyPlan, week: Week) -> StudyPlan:
        with session_scope() as session:
            updated = study_plans.append_week(session, plan.plan_id, week)
        if updated is None:
            raise NotFound("Study plan not found.", details={"plan_id": plan.plan_id})
        return updated


def plan_end_date(learner: Learner, starts_on: date) -> date:
    """Farthest subject end date after ``starts_on``, else a four-week horizon."""
    candidates = [value for value in learner.subject_end_dates.values() if value > starts_on]
    if candidates:
        return max(candidates)
    return starts_on + timedelta(days=DEFAULT_PLAN_DAYS)


def completed_topics(paths: Sequence[LearningPath]) -> Dict[str, List[str]]:
    topics: Dict[str, List[str]] = {}
    for path in paths:
        done = [
            path.curriculum[str(day)].topic
            for day in sorted(path.completed_days)
            if str(day) in path.curriculum
        ]
        if done:
            topics[path.subject_name] = done
    return topics


def upcoming_topics(paths: Sequence[LearningPath], window: int = UPCOMING_TOPIC_WINDOW) -> Dict[str, List[str]]:
    topics: Dict[str, List[str]] = {}
    for path in paths:
        if path.status != "active":
            continue
        last = min(path.total_days, path.current_day + window - 1)
        upcoming = [
            path.curriculum[str(day)].topic
            for day in range(path.current_day, last + 1)
            if str(day) in path.curriculum
        ]
        if upcoming:
            topics[path.subject_name] = upcoming
    return topics


def build_week_request(
    learner: Learner,
    plan: StudyPlan,
    week_index: int,
    previous: Optional[WeekSchedule],
    covered: CoveredTopics,
    paths: Sequence[LearningPath],
    *,
    mode: Optional[str] = None,
    current_date: Optional[date] = None,
    current_plan: Optional[dict] = None,
) -> WeekRequest:
    week_start = plan.starts_on + timedelta(weeks=week_index)
    return WeekRequest(
        username=learner.username,
        mode=mode or ("initial" if week_index == 0 else "next_week"),  # type: ignore[arg-type]
        subjects=list(learner.subjects),
        subject_difficulties=dict(learner.subject_difficulties),
        subject_end_dates=dict(learner.subject_end_dates),
        subject_session_durations={
            name: prefs.model_dump(by_alias=True) for name, prefs in learner.subject_session_durations.items()
        },
        daily_study_minutes=learner.daily_study_minutes,
        study_goal=learner.study_goal,
        current_date=current_date or week_start,
        week_number=week_index + 1,
        week_start_date=week_start,
        previous_week_schedule=schedule_to_payload(previous) if previous else {},
        all_covered_topics={subject: list(topics) for subject, topics in covered.items()},
        completed_topics=completed_topics(paths),
        learning_path_topics=upcoming_topics(paths),
        current_plan=current_plan or {},
    )


def remove_subject(schedule: WeekSchedule, subject: str) -> bool:
    """Drop every session of ``subject`` in place. Returns whether anything changed."""
    target = subject.strip().lower()
    changed = False
    for day in WEEKDAYS:
        entry = schedule.get(day)
        if entry is None:
            continue
        kept = [session for session in entry.sessions if session.subject.strip().lower() != target]
        if len(kept) != len(entry.sessions):
            entry.sessions = kept
            changed = True
    return changed


class StudyPlanService:
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
        self.store = RepositoryWeekStore()

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

    def _load_context(self, username: str) -> Tuple[Learner, List[LearningPath], Optional[StudyPlan]]:
        with session_scope() as session:
            learner = learners.get_or_create(session, username)
            paths = learning_paths.list_active(session, username)
            plan = study_plans.get_active(session, username)
        return learner, paths, plan

    def _rollover(self, learner: Learner, paths: Sequence[LearningPath]) -> WeeklyRolloverGenerator:
        def request_factory(
            plan: StudyPlan,
            week_index: int,
            previous: Optional[WeekSchedule],
            covered: CoveredTopics,
        ) -> WeekRequest:
            return build_week_request(learner, plan, week_index, previous, covered, paths)

        return WeeklyRolloverGenerator(
            self.generator,
            store=self.store,
            request_factory=request_factory,
            prefs=learner.subject_session_durations,
            catalog=self._catalog,
        )

    def _generate_first_week(self, learner: Learner, plan: StudyPlan, request: WeekRequest) -> Optional[GeneratedPlan]:
        try:
            raw = self.generator.request_week_schedule(request)
        except GenerationFailure as exc:
            logger.warning("Initial week generation failed for %s: %s", learner.username, exc)
            emit_event(
                "generation_fallback",
                kind="week",
                username=learner.username,
                plan_id=plan.plan_id,
                week_index=0,
                mode=request.mode,
                error=str(exc),
            )
            return None
        return normalize_generated_plan(raw, learner.subject_session_durations, self._catalog)

    def _store_new_plan(self, plan: StudyPlan, mode: str) -> StudyPlan:
        with session_scope() as session:
            archived = study_plans.archive_active(session, plan.username)
            saved = study_plans.add(session, plan)
        emit_event(
            "plan_created",
            username=saved.username,
            plan_id=saved.plan_id,
            mode=mode,
            archived=archived,
            weeks=len(saved.weeks),
        )
        return saved

    def create_plan(
        self,
        username: str,
        today: Optional[date] = None,
        *,
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        """Create the learner's active plan with week 0, archiving any previous one.

        When week 0 cannot be generated the plan is stored without weeks and
        the rollover retries on the next read.
        """
        moment = now or datetime.now(timezone.utc)
        learner, paths, _ = self._load_context(username)
        starts_on = today or learner_today(learner, moment)
        plan = StudyPlan(
            username=learner.username,
            title=f"Study Plan starting {starts_on.isoformat()}",
            starts_on=starts_on,
            ends_on=plan_end_date(learner, starts_on),
            target_minutes_per_week=learner.daily_study_minutes * 7,
            prevent_rebalance_until=moment + timedelta(hours=self.settings.plan_cooldown_hours),
        )
        request = build_week_request(learner, plan, 0, None, {}, paths, mode="initial", current_date=starts_on)
        generated = self._generate_first_week(learner, plan, request)
        if generated is not None:
            plan.weeks = [Week(week_start=starts_on, schedule=generated.schedule)]
            plan.strategy_summary = generated.strategy_summary
            plan.change_log = list(generated.change_log)
        return self._store_new_plan(plan, "initial")

    def get_active_plan(self, username: str) -> StudyPlan:
        with session_scope(commit=False) as session:
            plan = study_plans.get_active(session, username)
        if plan is None:
            raise NotFound("No active study plan.", details={"username": username})
        return plan

    def get_plan_for_week(self, username: str, today: Optional[date] = None) -> PlanWeekView:
        learner, paths, plan = self._load_context(username)
        if plan is None:
            raise NotFound("No active study plan.", details={"username": learner.username})
        current = today or learner_today(learner)
        return self._rollover(learner, paths).get_plan_for_week(plan, current)

    def get_schedule_for_today(self, username: str, today: Optional[date] = None) -> WeekSchedule:
        return self.get_plan_for_week(username, today).schedule

    def rebalance_plan(
        self,
        username: str,
        today: Optional[date] = None,
        *,
        now: Optional[datetime] = None,
    ) -> StudyPlan:
        """Rebalance durations and replace the active plan with an optimised one."""
        moment = now or datetime.now(timezone.utc)
        learner, _, plan = self._load_context(username)
        if plan is None:
            raise NotFound("No active study plan.", details={"username": learner.username})
        ensure_rebalance_allowed(plan, moment)

        allocation = rebalance_learner(learner.username).allocation
        learner, paths, _ = self._load_context(username)
        starts_on = today or learner_today(learner, moment)

        index = week_index_for(plan, starts_on)
        current_week = plan.weeks[min(index, len(plan.weeks) - 1)].schedule if plan.weeks else None
        covered = extract_covered_topics(plan.weeks, len(plan.weeks))

        replacement = StudyPlan(
            username=learner.username,
            title=f"Study Plan starting {starts_on.isoformat()}",
            starts_on=starts_on,
            ends_on=plan_end_date(learner, starts_on),
            target_minutes_per_week=learner.daily_study_minutes * 7,
            prevent_rebalance_until=moment + timedelta(hours=self.settings.rebalance_cooldown_hours),
        )
        request = build_week_request(
            learner,
            replacement,
            0,
            current_week,
            covered,
            paths,
            mode="rebalance",
            current_date=starts_on,
            current_plan={
                "plan_id": plan.plan_id,
                "strategy_summary": plan.strategy_summary,
                "schedule": schedule_to_payload(current_week) if current_week else {},
                "allocation": allocation,
            },
        )
        generated = self._generate_first_week(learner, replacement, request)
        if generated is not None:
            replacement.weeks = [Week(week_start=starts_on, schedule=generated.schedule)]
            replacement.strategy_summary = generated.strategy_summary
            replacement.change_log = list(generated.change_log)
        elif current_week is not None:
            replacement.weeks = [
                Week(
                    week_start=starts_on,
                    schedule=normalize_schedule(
                        {"schedule": schedule_to_payload(current_week)},
                        learner.subject_session_durations,
                        self._catalog,
                    ),
                )
            ]
            replacement.strategy_summary = plan.strategy_summary
            replacement.change_log = ["Kept the previous week's schedule; generation was unavailable."]
        return self._store_new_plan(replacement, "rebalance")

    def remove_subject_from_plan(self, username: str, subject: str) -> Optional[StudyPlan]:
        """Scrub ``subject`` from every stored week of the active plan."""
        with session_scope(commit=False) as session:
            plan = study_plans.get_active(session, username)
        if plan is None:
            return None
        with plan_lock(plan.plan_id):
            with session_scope() as session:
                current = study_plans.get(session, plan.plan_id)
                if current is None:
                    return None
                changed = False
                for week in current.weeks:
                    changed = remove_subject(week.schedule, subject) or changed
                if current.legacy_schedule:
                    legacy = normalize_schedule({"schedule": current.legacy_schedule}, None, self._catalog)
                    if remove_subject(legacy, subject):
                        current.legacy_schedule = schedule_to_payload(legacy)
                        changed = True
                if not changed:
                    return current
                logger.info("Removed %s from plan %s", subject, current.plan_id)
                return study_plans.save(session, current)


plan_service = StudyPlanService()


def get_schedule_for_today(username: str, today: Optional[date] = None) -> WeekSchedule:
    return plan_service.get_schedule_for_today(username, today)


__all__ = [
    "RepositoryWeekStore",
    "StudyPlanService",
    "build_week_request",
    "completed_topics",
    "get_schedule_for_today",
    "plan_end_date",
    "plan_service",
    "remove_subject",
    "upcoming_topics",
]
