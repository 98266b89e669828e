"""Lazy, strictly sequential week generation for rolling study plans."""

from __future__ import annotations

import logging
import math
import threading
import weakref
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Protocol

from .duration_budget import PreferenceTable
from .errors import GenerationFailure
from .generation import ScheduleGenerator, WeekRequest
from .models import WEEKDAYS, PlanWeekView, StudyPlan, Week, WeekSchedule, empty_week
from .resource_catalog import ResourceCatalog
from .schedule_normalizer import normalize_schedule, schedule_to_payload
from .telemetry import emit_event

logger = logging.getLogger(__name__)

CoveredTopics = Dict[str, List[str]]
RequestFactory = Callable[[StudyPlan, int, Optional[WeekSchedule], CoveredTopics], WeekRequest]


class WeekStore(Protocol):
    """Persistence seam for the append-only week list of a plan."""

    def reload(self, plan: StudyPlan) -> StudyPlan: ...

    def append_week(self, plan: StudyPlan, week: Week) -> StudyPlan: ...


class InMemoryWeekStore:
    """Keeps weeks on the plan object itself."""

    def reload(self, plan: StudyPlan) -> StudyPlan:
        return plan

    def append_week(self, plan: StudyPlan, week: Week) -> StudyPlan:
        plan.weeks.append(week)
        return plan


# Entries vanish once no caller holds the lock.
_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


def plan_lock(plan_id: str) -> threading.Lock:
    with _locks_guard:
        lock = _locks.get(plan_id)
        if lock is None:
            lock = threading.Lock()
            _locks[plan_id] = lock
        return lock


def total_weeks(plan: StudyPlan) -> int:
    return max(1, math.ceil((plan.ends_on - plan.starts_on).days / 7))


def week_index_for(plan: StudyPlan, today: date) -> int:
    index = (today - plan.starts_on).days // 7
    return min(max(index, 0), total_weeks(plan) - 1)


def add_covered_topics(covered: CoveredTopics, schedule: WeekSchedule) -> CoveredTopics:
    for day in WEEKDAYS:
        entry = schedule.get(day)
        if entry is None:
            continue
        for session in entry.sessions:
            if not session.subject or not session.topic:
                continue
            topics = covered.setdefault(session.subject, [])
            if session.topic not in topics:
                topics.append(session.topic)
    return covered


def extract_covered_topics(weeks: List[Week], up_to_index: int) -> CoveredTopics:
    """Subject -> topics scheduled in weeks ``0..up_to_index-1``."""
    covered: CoveredTopics = {}
    for week in weeks[:up_to_index]:
        add_covered_topics(covered, week.schedule)
    return covered


def default_request_factory(
    plan: StudyPlan,
    week_index: int,
    previous: Optional[WeekSchedule],
    covered: CoveredTopics,
) -> WeekRequest:
    week_start = plan.starts_on + timedelta(weeks=week_index)
    return WeekRequest(
        username=plan.username,
        mode="next_week",
        current_date=week_start,
        week_number=week_index + 1,
        week_start_date=week_start,
        previous_week_schedule=schedule_to_payload(previous) if previous else {},
        all_covered_topics={subject: list(topics) for subject, topics in covered.items()},
    )


class WeeklyRolloverGenerator:
    """Extends a plan's week list up to the week containing ``today``.

    Week ``i + 1`` is requested with week ``i``'s schedule and every topic
    scheduled so far, so weeks are produced one at a time under a per-plan
    lock and the week list is re-read once the lock is held.
    """

    def __init__(
        self,
        generator: ScheduleGenerator,
        *,
        store: Optional[WeekStore] = None,
        request_factory: Optional[RequestFactory] = None,
        prefs: Optional[PreferenceTable] = None,
        catalog: Optional[ResourceCatalog] = None,
    ) -> None:
        self._generator = generator
        self._store = store or InMemoryWeekStore()
        self._request_factory = request_factory or default_request_factory
        self._prefs = prefs
        self._catalog = catalog

    def _migrate_legacy(self, plan: StudyPlan) -> StudyPlan:
        if plan.weeks or not plan.legacy_schedule:
            return plan
        logger.info("Migrating legacy single-week schedule for plan %s", plan.plan_id)
        week = Week(
            week_start=plan.starts_on,
            schedule=normalize_schedule({"schedule": plan.legacy_schedule}, self._prefs, self._catalog),
        )
        return self._store.append_week(plan, week)

    def _generate_week(self, plan: StudyPlan, index: int, covered: CoveredTopics) -> Optional[Week]:
        previous = plan.weeks[index - 1].schedule if index > 0 else None
        request = self._request_factory(plan, index, previous, covered)
        try:
            raw = self._generator.request_week_schedule(request)
        except GenerationFailure as exc:
            logger.warning("Week %s generation failed for plan %s: %s", index + 1, plan.plan_id, exc)
            emit_event(
                "generation_fallback",
                kind="week",
                username=plan.username,
                plan_id=plan.plan_id,
                week_index=index,
                error=str(exc),
            )
            return None
        schedule = normalize_schedule(raw, self._prefs, self._catalog)
        week = Week(week_start=plan.starts_on + timedelta(weeks=index), schedule=schedule)
        emit_event(
            "week_generated",
            plan_id=plan.plan_id,
            week_index=index,
            session_count=sum(len(day.sessions) for day in schedule.values()),
        )
        return week

    def ensure_weeks(self, plan: StudyPlan, week_index: int) -> StudyPlan:
        """Generate any missing weeks ``0..week_index`` in order. Stops at the first failure."""
        with plan_lock(plan.plan_id):
            plan = self._migrate_legacy(self._store.reload(plan))
            if len(plan.weeks) > week_index:
                return plan
            covered = extract_covered_topics(plan.weeks, len(plan.weeks))
            for index in range(len(plan.weeks), week_index + 1):
                week = self._generate_week(plan, index, covered)
                if week is None:
                    break
                plan = self._store.append_week(plan, week)
                add_covered_topics(covered, week.schedule)
            return plan

    def get_schedule_for_today(self, plan: StudyPlan, today: Optional[date] = None) -> WeekSchedule:
        return self.get_plan_for_week(plan, today).schedule

    def get_plan_for_week(self, plan: StudyPlan, today: Optional[date] = None) -> PlanWeekView:
        current = today or date.today()
        index = week_index_for(plan, current)
        plan = self.ensure_weeks(plan, index)
        if index < len(plan.weeks):
            week = plan.weeks[index]
            schedule = normalize_schedule({"schedule": schedule_to_payload(week.schedule)}, self._prefs, self._catalog)
            week_start = week.week_start
        else:
            schedule = empty_week()
            week_start = plan.starts_on + timedelta(weeks=index)
        return PlanWeekView(
            plan_id=plan.plan_id,
            schedule=schedule,
            week_start=week_start,
            current_week=index + 1,
            total_weeks=total_weeks(plan),
            is_cycle_complete=current > plan.ends_on,
            days_remaining=max(0, (plan.ends_on - current).days),
            strategy_summary=plan.strategy_summary,
        )


def get_schedule_for_today(
    plan: StudyPlan,
    today: Optional[date] = None,
    *,
    generator: ScheduleGenerator,
    store: Optional[WeekStore] = None,
) -> WeekSchedule:
    return WeeklyRolloverGenerator(generator, store=store).get_schedule_for_today(plan, today)


__all__ = [
    "CoveredTopics",
    "InMemoryWeekStore",
    "WeekStore",
    "WeeklyRolloverGenerator",
    "add_covered_topics",
    "default_request_factory",
    "extract_covered_topics",
    "get_schedule_for_today",
    "plan_lock",
    "total_weeks",
    "week_index_for",
]
