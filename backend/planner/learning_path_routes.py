"""REST endpoints for learning path enrollment, progress, and preferences."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field, ValidationError

from .db.session import session_scope
from .errors import PlannerError
from .learning_paths import EnrollmentRequest, learning_path_service
from .models import DeleteCheck, DurationPreference, LearningPathView
from .plan_routes import raise_http
from .repositories import learners

router = APIRouter(prefix="/api/learners/{username}", tags=["learning-paths"])
logger = logging.getLogger(__name__)


class LearningPathUpdateRequest(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=3)


class CompleteDayRequest(BaseModel):
    day: int = Field(..., ge=1)


class PreferencesRequest(BaseModel):
    daily_study_minutes: Optional[int] = Field(default=None, ge=15, le=1440)
    subject_session_durations: Optional[Dict[str, DurationPreference]] = None
    timezone: Optional[str] = None
    study_goal: Optional[str] = Field(default=None, max_length=2000)


class PreferencesPayload(BaseModel):
    username: str
    timezone: Optional[str] = None
    subjects: List[str] = Field(default_factory=list)
    daily_study_minutes: int
    subject_session_durations: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    study_goal: str = ""


class ActivityEntry(BaseModel):
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


@router.get("/learning-paths", response_model=List[LearningPathView])
def list_learning_paths(
    username: str,
    state: str = Query(default="active", pattern="^(active|completed)$"),
    today: Optional[date] = Query(default=None),
) -> List[LearningPathView]:
    try:
        if state == "completed":
            return learning_path_service.list_completed_learning_paths(username, today)
        return learning_path_service.list_active_learning_paths(username, today)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/learning-paths", response_model=LearningPathView, status_code=status.HTTP_201_CREATED)
def enroll(username: str, request: EnrollmentRequest) -> LearningPathView:
    try:
        path = learning_path_service.enroll(username, request)
        return learning_path_service.get_learning_path(username, path.path_id)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/learning-paths/batch", response_model=List[LearningPathView], status_code=status.HTTP_201_CREATED)
def enroll_many(username: str, requests: List[EnrollmentRequest]) -> List[LearningPathView]:
    try:
        paths = learning_path_service.enroll_many(username, requests)
        return [learning_path_service.get_learning_path(username, path.path_id) for path in paths]
    except PlannerError as exc:
        raise_http(exc)


@router.get("/learning-paths/{path_id}", response_model=LearningPathView)
def get_learning_path(username: str, path_id: str, today: Optional[date] = Query(default=None)) -> LearningPathView:
    try:
        return learning_path_service.get_learning_path(username, path_id, today)
    except PlannerError as exc:
        raise_http(exc)


@router.put("/learning-paths/{path_id}", response_model=LearningPathView)
def update_learning_path(username: str, path_id: str, request: LearningPathUpdateRequest) -> LearningPathView:
    try:
        learning_path_service.update_learning_path(
            username,
            path_id,
            start_date=request.start_date,
            end_date=request.end_date,
            difficulty=request.difficulty,
        )
        return learning_path_service.get_learning_path(username, path_id)
    except PlannerError as exc:
        raise_http(exc)


@router.get("/learning-paths/{path_id}/check-delete", response_model=DeleteCheck)
def check_delete(username: str, path_id: str) -> DeleteCheck:
    try:
        return learning_path_service.check_before_delete(username, path_id)
    except PlannerError as exc:
        raise_http(exc)


@router.delete("/learning-paths/{path_id}", response_model=DeleteCheck)
def delete_learning_path(username: str, path_id: str) -> DeleteCheck:
    try:
        return learning_path_service.delete_learning_path(username, path_id)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/learning-paths/{path_id}/complete-day", response_model=LearningPathView)
def complete_day(
    username: str,
    path_id: str,
    request: CompleteDayRequest,
    today: Optional[date] = Query(default=None),
) -> LearningPathView:
    try:
        return learning_path_service.complete_day(username, path_id, request.day, today)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/learning-paths/{path_id}/uncomplete-day", response_model=LearningPathView)
def uncomplete_day(username: str, path_id: str, today: Optional[date] = Query(default=None)) -> LearningPathView:
    try:
        return learning_path_service.uncomplete_day(username, path_id, today)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/learning-paths/{path_id}/skip-day", response_model=LearningPathView)
def skip_day(username: str, path_id: str, today: Optional[date] = Query(default=None)) -> LearningPathView:
    try:
        return learning_path_service.skip_day(username, path_id, today)
    except PlannerError as exc:
        raise_http(exc)


@router.put("/preferences", response_model=PreferencesPayload)
def update_preferences(username: str, request: PreferencesRequest) -> PreferencesPayload:
    try:
        learner = learning_path_service.update_preferences(
            username,
            daily_study_minutes=request.daily_study_minutes,
            subject_session_durations=request.subject_session_durations,
            timezone_name=request.timezone,
            study_goal=request.study_goal,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except PlannerError as exc:
        raise_http(exc)
    logger.info("Preferences updated for %s", learner.username)
    return PreferencesPayload(
        username=learner.username,
        timezone=learner.timezone,
        subjects=list(learner.subjects),
        daily_study_minutes=learner.daily_study_minutes,
        subject_session_durations={
            name: prefs.model_dump(by_alias=True) for name, prefs in learner.subject_session_durations.items()
        },
        study_goal=learner.study_goal,
    )


@router.get("/activity", response_model=List[ActivityEntry])
def list_activity(username: str, limit: int = Query(default=20, ge=1, le=200)) -> List[ActivityEntry]:
    with session_scope(commit=False) as session:
        rows = learners.recent_events(session, username, limit)
    return [ActivityEntry(**row) for row in rows]


__all__ = ["router"]
