"""Rewrites future curriculum durations so active subjects share the daily budget."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .db.session import session_scope
from .duration_budget import allocate, demands_for
from .errors import RebalanceSuppressed
from .models import Learner, LearningPath, StudyPlan
from .repositories import learners, learning_paths
from .telemetry import emit_event

logger = logging.getLogger(__name__)


@dataclass
class RebalanceResult:
    allocation: Dict[str, int] = field(default_factory=dict)
    updated_paths: List[LearningPath] = field(default_factory=list)


def apply_allocation(path: LearningPath, minutes: int) -> Optional[LearningPath]:
    """Copy of ``path`` with every day from ``current_day`` on set to ``minutes``.

    Returns ``None`` when nothing would change. Earlier days are never touched.
    """
    if not path.curriculum:
        return None
    updated = path.model_copy(deep=True)
    changed = False
    for day in range(path.current_day, path.total_days + 1):
        entry = updated.curriculum.get(str(day))
        if entry is None or entry.duration_minutes == minutes:
            continue
        entry.duration_minutes = minutes
        changed = True
    if not changed:
        return None
    updated.updated_at = datetime.now(timezone.utc)
    return updated


def plan_rebalance(learner: Learner, paths: Sequence[LearningPath]) -> RebalanceResult:
    """Allocate the learner's daily minutes across active paths and rewrite their future days."""
    active = [path for path in paths if path.status == "active" and not path.is_deleted]
    if not active:
        return RebalanceResult()

    subjects: List[str] = []
    for path in active:
        if path.subject_name not in subjects:
            subjects.append(path.subject_name)
    allocation = allocate(
        learner.daily_study_minutes,
        demands_for(subjects, learner.subject_session_durations),
    )
    logger.info(
        "Budget rebalancing for %s: limit=%s allocation=%s",
        learner.username,
        learner.daily_study_minutes,
        allocation,
    )

    result = RebalanceResult(allocation=allocation)
    for path in active:
        minutes = allocation.get(path.subject_name)
        if minutes is None:
            continue
        updated = apply_allocation(path, minutes)
        if updated is not None:
            result.updated_paths.append(updated)
    return result


def rebalance_learner(username: str) -> RebalanceResult:
    """Recompute the allocation and persist it, one transaction per learning path.

    Each path is re-read inside its own transaction so progress recorded
    since the allocation was computed is kept.
    """
    with session_scope() as session:
        learner = learners.get_or_create(session, username)
        paths = learning_paths.list_active(session, username)
    planned = plan_rebalance(learner, paths)

    result = RebalanceResult(allocation=dict(planned.allocation))
    for candidate in planned.updated_paths:
        minutes = planned.allocation[candidate.subject_name]
        with session_scope() as session:
            current = learning_paths.get(session, username, candidate.path_id)
            if current is None or current.status != "active":
                continue
            updated = apply_allocation(current, minutes)
            if updated is None:
                continue
            result.updated_paths.append(learning_paths.save(session, updated))

    if result.allocation:
        emit_event(
            "durations_rebalanced",
            username=learner.username,
            daily_limit=learner.daily_study_minutes,
            allocation=result.allocation,
            updated_paths=[path.path_id for path in result.updated_paths],
        )
    return result


def ensure_rebalance_allowed(plan: StudyPlan, now: Optional[datetime] = None) -> None:
    moment = now or datetime.now(timezone.utc)
    until = plan.prevent_rebalance_until
    if until is None:
        return
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if moment < until:
        raise RebalanceSuppressed(
            "Plan rebalance is temporarily prevented to allow the new schedule to settle. Please try again later.",
            details={"plan_id": plan.plan_id, "retry_after": until.isoformat()},
        )


__all__ = [
    "RebalanceResult",
    "apply_allocation",
    "ensure_rebalance_allowed",
    "plan_rebalance",
    "rebalance_learner",
]
