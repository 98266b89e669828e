"""Repository layer over the SQLAlchemy session."""

from .learners import LearnerRepository, learners
from .learning_paths import LearningPathRepository, learning_paths
from .study_plans import StudyPlanRepository, study_plans

__all__ = [
    "LearnerRepository",
    "LearningPathRepository",
    "StudyPlanRepository",
    "learners",
    "learning_paths",
    "study_plans",
]
