"""Database-backed study plan repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import LearnerModel, StudyPlanModel
from ..models import StudyPlan, Week, normalize_username
from .learners import learners


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StudyPlanRepository:
    def get(self, session: Session, plan_id: str) -> StudyPlan | None:
        model = session.get(StudyPlanModel, plan_id)
        if model is None:
            return None
        return self._to_domain(model)

    def get_active(self, session: Session, username: str) -> StudyPlan | None:
        stmt = (
            select(StudyPlanModel)
            .join(LearnerModel, StudyPlanModel.learner_id == LearnerModel.id)
            .where(LearnerModel.username == normalize_username(username), StudyPlanModel.status == "active")
            .order_by(StudyPlanModel.created_at.desc())
        )
        model = session.execute(stmt).scalars().first()
        if model is None:
            return None
        return self._to_domain(model)

    def list_for(self, session: Session, username: str) -> List[StudyPlan]:
        stmt = (
            select(StudyPlanModel)
            .join(LearnerModel, StudyPlanModel.learner_id == LearnerModel.id)
            .where(LearnerModel.username == normalize_username(username))
            .order_by(StudyPlanModel.created_at)
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def archive_active(self, session: Session, username: str) -> List[str]:
        """Archive every active plan of ``username``; returns the archived ids."""
        stmt = (
            select(StudyPlanModel)
            .join(LearnerModel, StudyPlanModel.learner_id == LearnerModel.id)
            .where(LearnerModel.username == normalize_username(username), StudyPlanModel.status == "active")
        )
        archived: List[str] = []
        for model in session.execute(stmt).scalars():
            model.status = "archived"
            archived.append(model.id)
        session.flush()
        return archived

    def add(self, session: Session, plan: StudyPlan) -> StudyPlan:
        learner = learners.require_model(session, plan.username)
        model = StudyPlanModel(id=plan.plan_id, learner_id=learner.id)
        self._apply(model, plan)
        session.add(model)
        session.flush()
        learners.record_audit(session, learner.id, "plan_created", {"plan_id": model.id})
        return self._to_domain(model)

    def save(self, session: Session, plan: StudyPlan) -> StudyPlan:
        model = session.get(StudyPlanModel, plan.plan_id)
        if model is None:
            return self.add(session, plan)
        self._apply(model, plan)
        session.flush()
        return self._to_domain(model)

    def append_week(self, session: Session, plan_id: str, week: Week) -> StudyPlan | None:
        model = session.get(StudyPlanModel, plan_id, with_for_update=True)
        if model is None:
            return None
        weeks = list(model.weeks or [])
        weeks.append(week.model_dump(mode="json"))
        model.weeks = weeks
        session.flush()
        return self._to_domain(model)

    def _apply(self, model: StudyPlanModel, plan: StudyPlan) -> None:
        model.title = plan.title
        model.status = plan.status
        model.starts_on = plan.starts_on
        model.ends_on = plan.ends_on
        model.target_minutes_per_week = plan.target_minutes_per_week
        model.prevent_rebalance_until = plan.prevent_rebalance_until
        model.weeks = [week.model_dump(mode="json") for week in plan.weeks]
        model.strategy_summary = plan.strategy_summary
        model.change_log = list(plan.change_log)
        model.legacy_schedule = plan.legacy_schedule

    def _to_domain(self, model: StudyPlanModel) -> StudyPlan:
        return StudyPlan(
            plan_id=model.id,
            username=model.learner.username,
            title=model.title,
            status=model.status,  # type: ignore[arg-type]
            starts_on=model.starts_on,
            ends_on=model.ends_on,
            target_minutes_per_week=model.target_minutes_per_week,
            prevent_rebalance_until=_aware(model.prevent_rebalance_until),
            weeks=[Week.model_validate(entry) for entry in model.weeks or []],
            strategy_summary=model.strategy_summary or "",
            change_log=list(model.change_log or []),
            legacy_schedule=model.legacy_schedule,
            created_at=_aware(model.created_at) or datetime.now(timezone.utc),
        )


study_plans = StudyPlanRepository()

__all__ = ["StudyPlanRepository", "study_plans"]
