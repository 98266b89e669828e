"""REST endpoints for the learner's rolling study plan."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from .errors import InvalidState, NotFound, PlannerError, RebalanceSuppressed
from .models import PlanWeekView, StudyPlan, WeekSchedule
from .study_plans import plan_service

router = APIRouter(prefix="/api/learners/{username}/plan", tags=["plan"])
logger = logging.getLogger(__name__)


class PlanSummaryPayload(BaseModel):
    plan_id: str
    status: str
    starts_on: date
    ends_on: date
    target_minutes_per_week: int
    prevent_rebalance_until: Optional[datetime] = None
    strategy_summary: str = ""
    change_log: List[str] = Field(default_factory=list)
    weeks_generated: int = 0
    current_schedule: Optional[WeekSchedule] = None


def raise_http(exc: PlannerError) -> NoReturn:
    """Translate a domain error into the matching HTTP error."""
    detail: Dict[str, Any] = {"message": str(exc), **exc.details}
    if isinstance(exc, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from exc
    if isinstance(exc, InvalidState):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc
    logger.exception("Unhandled planner error")
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail) from exc


def _summary(plan: StudyPlan) -> PlanSummaryPayload:
    return PlanSummaryPayload(
        plan_id=plan.plan_id,
        status=plan.status,
        starts_on=plan.starts_on,
        ends_on=plan.ends_on,
        target_minutes_per_week=plan.target_minutes_per_week,
        prevent_rebalance_until=plan.prevent_rebalance_until,
        strategy_summary=plan.strategy_summary,
        change_log=list(plan.change_log),
        weeks_generated=len(plan.weeks),
        current_schedule=plan.weeks[0].schedule if plan.weeks else None,
    )


@router.post("", response_model=PlanSummaryPayload, status_code=status.HTTP_201_CREATED)
def create_plan(username: str, today: Optional[date] = Query(default=None)) -> PlanSummaryPayload:
    try:
        plan = plan_service.create_plan(username, today)
    except PlannerError as exc:
        raise_http(exc)
    return _summary(plan)


@router.get("/today", response_model=PlanWeekView)
def plan_for_today(username: str, today: Optional[date] = Query(default=None)) -> PlanWeekView:
    try:
        return plan_service.get_plan_for_week(username, today)
    except PlannerError as exc:
        raise_http(exc)


@router.post("/rebalance", response_model=PlanSummaryPayload)
def rebalance_plan(username: str, today: Optional[date] = Query(default=None)) -> PlanSummaryPayload:
    try:
        plan = plan_service.rebalance_plan(username, today)
    except RebalanceSuppressed as exc:
        logger.info("Rebalance for %s suppressed until %s", username, exc.details.get("retry_after"))
        raise_http(exc)
    except PlannerError as exc:
        raise_http(exc)
    return _summary(plan)


__all__ = ["PlanSummaryPayload", "raise_http", "router"]
