"""Learners, rolling study plans, and learning paths."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_01_planner_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "learners",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("subjects", sa.JSON(), nullable=False),
        sa.Column("daily_study_minutes", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("subject_session_durations", sa.JSON(), nullable=False),
        sa.Column("subject_difficulties", sa.JSON(), nullable=False),
        sa.Column("subject_end_dates", sa.JSON(), nullable=False),
        sa.Column("study_goal", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index("ix_learners_username", "learners", ["username"], unique=True)

    op.create_table(
        "study_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("learner_id", sa.String(length=36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False, server_default="Study Plan"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("starts_on", sa.Date(), nullable=False),
        sa.Column("ends_on", sa.Date(), nullable=False),
        sa.Column("target_minutes_per_week", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("prevent_rebalance_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("weeks", sa.JSON(), nullable=False),
        sa.Column("strategy_summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("change_log", sa.JSON(), nullable=False),
        sa.Column("legacy_schedule", sa.JSON(), nullable=True),
    )
    op.create_index("ix_study_plans_learner_id", "study_plans", ["learner_id"])
    op.create_index("ix_study_plans_learner_status", "study_plans", ["learner_id", "status"])

    op.create_table(
        "learning_paths",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("learner_id", sa.String(length=36), sa.ForeignKey("learners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("current_day", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("difficulty", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("curriculum", sa.JSON(), nullable=False),
        sa.Column("completed_days", sa.JSON(), nullable=False),
        sa.Column("skipped_days", sa.JSON(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_learning_paths_learner_id", "learning_paths", ["learner_id"])
    op.create_index("ix_learning_paths_learner_subject", "learning_paths", ["learner_id", "subject_name"])

    op.create_table(
        "persistence_audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("learner_id", sa.String(length=36), sa.ForeignKey("learners.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("persistence_audit_events")
    op.drop_index("ix_learning_paths_learner_subject", table_name="learning_paths")
    op.drop_index("ix_learning_paths_learner_id", table_name="learning_paths")
    op.drop_table("learning_paths")
    op.drop_index("ix_study_plans_learner_status", table_name="study_plans")
    op.drop_index("ix_study_plans_learner_id", table_name="study_plans")
    op.drop_table("study_plans")
    op.drop_index("ix_learners_username", table_name="learners")
    op.drop_table("learners")
