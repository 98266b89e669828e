"""Domain errors raised by the planning core."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PlannerError(RuntimeError):
    """Base class for errors surfaced by the planner."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})


class GenerationFailure(PlannerError):
    """Raised when the generation collaborator is unreachable or returns unusable content.

    Always recovered locally by falling back to deterministic template content.
    """


class InvalidState(PlannerError):
    """Raised when an operation is not allowed in the entity's current state."""


class RebalanceSuppressed(InvalidState):
    """Raised when a rebalance is requested while the plan cooldown is active."""


class FocusLimitReached(InvalidState):
    """Raised when enrolling would exceed the learner's simultaneous subject limit."""


class DuplicateEnrollment(InvalidState):
    """Raised when the learner already has an active path for the subject."""


class NotFound(PlannerError):
    """Raised when a learner, plan, or learning path does not exist for the caller."""


__all__ = [
    "DuplicateEnrollment",
    "FocusLimitReached",
    "GenerationFailure",
    "InvalidState",
    "NotFound",
    "PlannerError",
    "RebalanceSuppressed",
]
