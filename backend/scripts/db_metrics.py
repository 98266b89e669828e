"""Print a one-off JSON snapshot of pool health and planner row counts."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from planner.db.models import LearnerModel, LearningPathModel, StudyPlanModel
from planner.db.monitoring import probe_database
from planner.db.session import get_engine, session_scope

LOGGER = logging.getLogger("planner.db_metrics")


def collect_counts() -> Dict[str, int]:
    with session_scope(commit=False) as session:
        learners = session.execute(select(func.count()).select_from(LearnerModel)).scalar_one()
        active_plans = session.execute(
            select(func.count()).select_from(StudyPlanModel).where(StudyPlanModel.status == "active")
        ).scalar_one()
        active_paths = session.execute(
            select(func.count())
            .select_from(LearningPathModel)
            .where(LearningPathModel.status == "active", LearningPathModel.deleted_at.is_(None))
        ).scalar_one()
    return {
        "learners": int(learners),
        "active_plans": int(active_plans),
        "active_learning_paths": int(active_paths),
    }


def build_snapshot(engine: Engine) -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pool": probe_database(engine),
        "counts": collect_counts(),
    }


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        print(json.dumps(build_snapshot(get_engine())))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
