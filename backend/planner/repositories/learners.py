"""Database-backed learner repository."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.models import LearnerModel, PersistenceAuditEventModel
from ..models import DurationPreference, Learner, normalize_username


class LearnerRepository:
    def get(self, session: Session, username: str) -> Learner | None:
        model = self.get_model(session, username)
        if model is None:
            return None
        return self._to_domain(model)

    def get_model(self, session: Session, username: str) -> LearnerModel | None:
        normalized = normalize_username(username)
        stmt = select(LearnerModel).where(LearnerModel.username == normalized)
        return session.execute(stmt).scalar_one_or_none()

    def require_model(self, session: Session, username: str) -> LearnerModel:
        model = self.get_model(session, username)
        if model is None:
            model = LearnerModel(
                username=normalize_username(username),
                daily_study_minutes=get_settings().default_daily_minutes,
            )
            session.add(model)
            session.flush()
            self.record_audit(session, model.id, "learner_created", {"username": model.username})
        return model

    def get_or_create(self, session: Session, username: str) -> Learner:
        return self._to_domain(self.require_model(session, username))

    def upsert(self, session: Session, learner: Learner) -> Learner:
        model = self.require_model(session, learner.username)
        model.timezone = learner.timezone
        model.subjects = list(learner.subjects)
        model.daily_study_minutes = learner.daily_study_minutes
        model.subject_session_durations = {
            name: prefs.model_dump(by_alias=True, exclude_none=True)
            for name, prefs in learner.subject_session_durations.items()
        }
        model.subject_difficulties = dict(learner.subject_difficulties)
        model.subject_end_dates = {name: value.isoformat() for name, value in learner.subject_end_dates.items()}
        model.study_goal = learner.study_goal
        session.flush()
        return self._to_domain(model)

    def record_audit(
        self,
        session: Session,
        learner_id: Optional[str],
        event_type: str,
        payload: Dict[str, Any],
    ) -> None:
        session.add(
            PersistenceAuditEventModel(
                learner_id=learner_id,
                event_type=event_type,
                payload=payload,
                actor="system",
            )
        )

    def record_event(self, session: Session, username: str, event_type: str, payload: Dict[str, Any]) -> None:
        model = self.require_model(session, username)
        self.record_audit(session, model.id, event_type, payload)

    def recent_events(self, session: Session, username: str, limit: int = 20) -> List[Dict[str, Any]]:
        model = self.get_model(session, username)
        if model is None:
            return []
        stmt = (
            select(PersistenceAuditEventModel)
            .where(PersistenceAuditEventModel.learner_id == model.id)
            .order_by(PersistenceAuditEventModel.created_at.desc())
            .limit(limit)
        )
        return [
            {"event_type": row.event_type, "payload": dict(row.payload or {}), "created_at": row.created_at}
            for row in session.execute(stmt).scalars()
        ]

    def _to_domain(self, model: LearnerModel) -> Learner:
        durations: Dict[str, DurationPreference] = {}
        for name, prefs in (model.subject_session_durations or {}).items():
            if isinstance(prefs, dict):
                durations[name] = DurationPreference.model_validate(prefs)
        end_dates: Dict[str, date] = {}
        for name, value in (model.subject_end_dates or {}).items():
            if isinstance(value, str) and value:
                end_dates[name] = date.fromisoformat(value)
        return Learner(
            username=model.username,
            timezone=model.timezone,
            subjects=list(model.subjects or []),
            daily_study_minutes=model.daily_study_minutes,
            subject_session_durations=durations,
            subject_difficulties=dict(model.subject_difficulties or {}),
            subject_end_dates=end_dates,
            study_goal=model.study_goal or "",
            created_at=model.created_at,
        )


learners = LearnerRepository()

__all__ = ["LearnerRepository", "learners"]
