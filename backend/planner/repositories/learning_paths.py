"""Database-backed learning path repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.models import LearnerModel, LearningPathModel
from ..models import DayCurriculum, LearningPath, normalize_username
from .learners import learners


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LearningPathRepository:
    def _owned(self, username: str):  # type: ignore[no-untyped-def]
        return (
            select(LearningPathModel)
            .join(LearnerModel, LearningPathModel.learner_id == LearnerModel.id)
            .where(LearnerModel.username == normalize_username(username))
        )

    def get(self, session: Session, username: str, path_id: str, *, include_deleted: bool = False) -> LearningPath | None:
        stmt = self._owned(username).where(LearningPathModel.id == path_id)
        if not include_deleted:
            stmt = stmt.where(LearningPathModel.deleted_at.is_(None))
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    def list_active(self, session: Session, username: str) -> List[LearningPath]:
        stmt = (
            self._owned(username)
            .where(LearningPathModel.status == "active", LearningPathModel.deleted_at.is_(None))
            .order_by(LearningPathModel.created_at.desc())
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def list_completed(self, session: Session, username: str) -> List[LearningPath]:
        stmt = (
            self._owned(username)
            .where(LearningPathModel.status == "completed", LearningPathModel.deleted_at.is_(None))
            .order_by(LearningPathModel.updated_at.desc())
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def find_active_for_subject(self, session: Session, username: str, subject: str) -> LearningPath | None:
        stmt = self._owned(username).where(
            func.lower(LearningPathModel.subject_name) == subject.strip().lower(),
            LearningPathModel.status == "active",
            LearningPathModel.deleted_at.is_(None),
        )
        model = session.execute(stmt).scalars().first()
        if model is None:
            return None
        return self._to_domain(model)

    def add(self, session: Session, path: LearningPath) -> LearningPath:
        learner = learners.require_model(session, path.username)
        model = LearningPathModel(id=path.path_id, learner_id=learner.id)
        self._apply(model, path)
        session.add(model)
        session.flush()
        learners.record_audit(
            session,
            learner.id,
            "learning_path_created",
            {"path_id": model.id, "subject": path.subject_name},
        )
        return self._to_domain(model)

    def save(self, session: Session, path: LearningPath) -> LearningPath:
        model = session.get(LearningPathModel, path.path_id, with_for_update=True)
        if model is None:
            return self.add(session, path)
        self._apply(model, path)
        session.flush()
        return self._to_domain(model)

    def _apply(self, model: LearningPathModel, path: LearningPath) -> None:
        model.subject_name = path.subject_name
        model.start_date = path.start_date
        model.end_date = path.end_date
        model.total_days = path.total_days
        model.current_day = path.current_day
        model.status = path.status
        model.difficulty = path.difficulty
        model.curriculum = {key: day.model_dump(mode="json") for key, day in path.curriculum.items()}
        model.completed_days = sorted(set(path.completed_days))
        model.skipped_days = sorted(set(path.skipped_days))
        model.deleted_at = path.deleted_at

    def _to_domain(self, model: LearningPathModel) -> LearningPath:
        return LearningPath(
            path_id=model.id,
            username=model.learner.username,
            subject_name=model.subject_name,
            start_date=model.start_date,
            end_date=model.end_date,
            total_days=model.total_days,
            current_day=model.current_day,
            status=model.status,  # type: ignore[arg-type]
            difficulty=model.difficulty,
            curriculum={
                key: DayCurriculum.model_validate(entry) for key, entry in (model.curriculum or {}).items()
            },
            completed_days=list(model.completed_days or []),
            skipped_days=list(model.skipped_days or []),
            deleted_at=_aware(model.deleted_at),
            created_at=_aware(model.created_at) or datetime.now(timezone.utc),
            updated_at=_aware(model.updated_at) or datetime.now(timezone.utc),
        )


learning_paths = LearningPathRepository()

__all__ = ["LearningPathRepository", "learning_paths"]
