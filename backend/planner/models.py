"""Domain models shared by the planner core, services, and routes."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

FocusLevel = Literal["low", "medium", "high"]
ResourceType = Literal["article", "video", "course", "tool"]
Level = Literal["beginner", "intermediate", "advanced"]
DayStatus = Literal["future", "active", "completed", "skipped"]

FOCUS_LEVELS = ("low", "medium", "high")
RESOURCE_TYPES = ("article", "video", "course", "tool")
LEVELS = ("beginner", "intermediate", "advanced")

GLOBAL_MIN_SESSION_MINUTES = 25
GLOBAL_MAX_SESSION_MINUTES = 600
PREFERENCE_MIN_FLOOR = 15
PREFERENCE_MAX_DEFAULT = 240


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Resource(BaseModel):
    title: str
    url: str
    type: ResourceType = "article"


class Session(BaseModel):
    """Canonical study activity inside one weekday of a week schedule."""

    subject: str
    topic: str = ""
    duration_minutes: int = Field(default=60, ge=1)
    focus_level: FocusLevel = "medium"
    key_topics: List[str] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)


class DaySchedule(BaseModel):
    sessions: List[Session] = Field(default_factory=list)


WeekSchedule = Dict[str, DaySchedule]


def empty_week() -> WeekSchedule:
    return {day: DaySchedule() for day in WEEKDAYS}


class Week(BaseModel):
    week_start: date
    schedule: WeekSchedule = Field(default_factory=empty_week)


class GeneratedPlan(BaseModel):
    """Normalised generator output for a whole plan (schedule plus narrative)."""

    schedule: WeekSchedule = Field(default_factory=empty_week)
    strategy_summary: str = ""
    change_log: List[str] = Field(default_factory=list)


class StudyPlan(BaseModel):
    plan_id: str = Field(default_factory=_new_id)
    username: str
    title: str = "Study Plan"
    status: Literal["active", "archived"] = "active"
    starts_on: date
    ends_on: date
    target_minutes_per_week: int = Field(default=0, ge=0)
    prevent_rebalance_until: Optional[datetime] = None
    weeks: List[Week] = Field(default_factory=list)
    strategy_summary: str = ""
    change_log: List[str] = Field(default_factory=list)
    legacy_schedule: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=_now)


class PlanWeekView(BaseModel):
    """The schedule shown for a given calendar day together with cycle bookkeeping."""

    plan_id: str
    schedule: WeekSchedule
    week_start: date
    current_week: int = Field(ge=1)
    total_weeks: int = Field(ge=1)
    is_cycle_complete: bool = False
    days_remaining: int = Field(default=0, ge=0)
    strategy_summary: str = ""


class DurationPreference(BaseModel):
    """Learner-declared per-session duration range for one subject."""

    model_config = ConfigDict(populate_by_name=True)

    minimum: Optional[int] = Field(default=None, alias="min")
    maximum: Optional[int] = Field(default=None, alias="max")

    def bounds(self) -> tuple[int, int]:
        """Resolved [min, max] with the floor and default ceiling applied."""
        low = max(PREFERENCE_MIN_FLOOR, int(self.minimum)) if self.minimum is not None else PREFERENCE_MIN_FLOOR
        high = max(low, int(self.maximum)) if self.maximum is not None else max(low, PREFERENCE_MAX_DEFAULT)
        return low, high


class DayCurriculum(BaseModel):
    topic: str
    level: Level = "beginner"
    duration_minutes: int = Field(default=60, ge=1)
    focus_level: FocusLevel = "medium"
    key_topics: List[str] = Field(default_factory=list)
    sub_topics: List[str] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)
    skipped: bool = False


Curriculum = Dict[str, DayCurriculum]


class LearningPath(BaseModel):
    path_id: str = Field(default_factory=_new_id)
    username: str
    subject_name: str
    start_date: date
    end_date: date
    total_days: int = Field(ge=1)
    current_day: int = Field(default=1, ge=1)
    status: Literal["active", "completed"] = "active"
    curriculum: Curriculum = Field(default_factory=dict)
    difficulty: int = Field(default=2, ge=1, le=3)
    completed_days: List[int] = Field(default_factory=list)
    skipped_days: List[int] = Field(default_factory=list)
    deleted_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Learner(BaseModel):
    username: str
    timezone: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    daily_study_minutes: int = Field(default=120, ge=15)
    subject_session_durations: Dict[str, DurationPreference] = Field(default_factory=dict)
    subject_difficulties: Dict[str, int] = Field(default_factory=dict)
    subject_end_dates: Dict[str, date] = Field(default_factory=dict)
    study_goal: str = ""
    created_at: datetime = Field(default_factory=_now)

    @field_validator("username")
    @classmethod
    def _normalize_username(cls, value: str) -> str:
        return normalize_username(value)

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        return normalise_timezone(value)


class DeleteCheck(BaseModel):
    """Pre-delete inspection so callers can warn before removing a path."""

    id: str
    subject_name: str
    has_progress: bool
    completed_sessions: int = 0
    completed_days: int = 0
    total_days: int
    progress_percent: float = 0.0
    already_deleted: bool = False


class LearningPathDayView(BaseModel):
    day_number: int
    status: DayStatus
    topic: str
    level: Level
    duration_minutes: int
    focus_level: FocusLevel
    key_topics: List[str] = Field(default_factory=list)
    sub_topics: List[str] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)


class LearningPathView(BaseModel):
    id: str
    subject_name: str
    start_date: date
    end_date: date
    total_days: int
    current_day: int
    status: Literal["active", "completed"]
    difficulty: int
    progress_percent: float
    is_behind_schedule: bool
    completed_sessions_count: int
    days: List[LearningPathDayView] = Field(default_factory=list)


def normalize_username(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized:
        raise ValueError("Username cannot be empty.")
    return normalized


def normalise_timezone(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None
    try:
        zone = ZoneInfo(trimmed)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Ignoring unsupported timezone value: %s", trimmed)
        return None
    return zone.key


def learner_today(learner: Learner, now: Optional[datetime] = None) -> date:
    """Calendar date in the learner's timezone (UTC when unset)."""
    moment = now or _now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if learner.timezone:
        return moment.astimezone(ZoneInfo(learner.timezone)).date()
    return moment.astimezone(timezone.utc).date()


__all__ = [
    "Curriculum",
    "DayCurriculum",
    "DaySchedule",
    "DeleteCheck",
    "DurationPreference",
    "FOCUS_LEVELS",
    "GLOBAL_MAX_SESSION_MINUTES",
    "GLOBAL_MIN_SESSION_MINUTES",
    "GeneratedPlan",
    "LEVELS",
    "Learner",
    "LearningPath",
    "LearningPathDayView",
    "LearningPathView",
    "PlanWeekView",
    "RESOURCE_TYPES",
    "Resource",
    "Session",
    "StudyPlan",
    "WEEKDAYS",
    "Week",
    "WeekSchedule",
    "empty_week",
    "learner_today",
    "normalise_timezone",
    "normalize_username",
]
