"""ORM models backing the planner persistence layer."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class LearnerModel(TimestampMixin, Base):
    __tablename__ = "learners"
    __table_args__ = (Index("ix_learners_username", "username", unique=True),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    subjects: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    daily_study_minutes: Mapped[int] = mapped_column(Integer, default=120, nullable=False)
    subject_session_durations: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    subject_difficulties: Mapped[dict[str, int]] = mapped_column(JSONType, default=dict, nullable=False)
    subject_end_dates: Mapped[dict[str, str]] = mapped_column(JSONType, default=dict, nullable=False)
    study_goal: Mapped[str] = mapped_column(Text, default="", nullable=False)

    study_plans: Mapped[list["StudyPlanModel"]] = relationship(
        back_populates="learner", cascade="all, delete-orphan"
    )
    learning_paths: Mapped[list["LearningPathModel"]] = relationship(
        back_populates="learner", cascade="all, delete-orphan"
    )


class StudyPlanModel(TimestampMixin, Base):
    __tablename__ = "study_plans"
    __table_args__ = (Index("ix_study_plans_learner_status", "learner_id", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    learner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), default="Study Plan", nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    starts_on: Mapped[date] = mapped_column(Date, nullable=False)
    ends_on: Mapped[date] = mapped_column(Date, nullable=False)
    target_minutes_per_week: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    prevent_rebalance_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    weeks: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    strategy_summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    change_log: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    legacy_schedule: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    learner: Mapped[LearnerModel] = relationship(back_populates="study_plans")


class LearningPathModel(TimestampMixin, Base):
    __tablename__ = "learning_paths"
    __table_args__ = (Index("ix_learning_paths_learner_subject", "learner_id", "subject_name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    learner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("learners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    current_day: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    curriculum: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    completed_days: Mapped[list[int]] = mapped_column(JSONType, default=list, nullable=False)
    skipped_days: Mapped[list[int]] = mapped_column(JSONType, default=list, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    learner: Mapped[LearnerModel] = relationship(back_populates="learning_paths")


class PersistenceAuditEventModel(Base):
    __tablename__ = "persistence_audit_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    learner_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("learners.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    learner: Mapped[LearnerModel | None] = relationship()


__all__ = [
    "LearnerModel",
    "LearningPathModel",
    "PersistenceAuditEventModel",
    "StudyPlanModel",
]
