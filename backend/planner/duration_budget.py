"""Daily time-budget allocation across concurrently studied subjects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from .models import (
    GLOBAL_MAX_SESSION_MINUTES,
    GLOBAL_MIN_SESSION_MINUTES,
    PREFERENCE_MIN_FLOOR,
    DurationPreference,
)

logger = logging.getLogger(__name__)

PreferenceLike = Union[DurationPreference, Mapping[str, Any]]
PreferenceTable = Mapping[str, PreferenceLike]


@dataclass(frozen=True)
class SubjectDemand:
    name: str
    prefs: Optional[DurationPreference] = None


def coerce_preference(value: Optional[PreferenceLike]) -> Optional[DurationPreference]:
    if value is None:
        return None
    if isinstance(value, DurationPreference):
        return value
    if isinstance(value, Mapping):
        try:
            return DurationPreference.model_validate(dict(value))
        except ValidationError:
            logger.warning("Ignoring malformed duration preference: %s", value)
            return None
    return None


def find_preference(subject: str, table: Optional[PreferenceTable]) -> Optional[DurationPreference]:
    """Exact subject match first, then case-insensitive."""
    if not table:
        return None
    if subject in table:
        return coerce_preference(table[subject])
    lowered = subject.lower()
    for name, prefs in table.items():
        if name.lower() == lowered:
            return coerce_preference(prefs)
    return None


def clamp_duration(subject: str, duration: int, table: Optional[PreferenceTable]) -> int:
    """Clamp to the subject's declared range, or to the global session bounds."""
    prefs = find_preference(subject, table)
    if prefs is not None:
        low, high = prefs.bounds()
    else:
        low, high = GLOBAL_MIN_SESSION_MINUTES, GLOBAL_MAX_SESSION_MINUTES
    return min(high, max(low, int(duration)))


def demands_for(subjects: Iterable[str], table: Optional[PreferenceTable]) -> List[SubjectDemand]:
    return [SubjectDemand(name=name, prefs=find_preference(name, table)) for name in subjects]


def allocate(total_budget_minutes: int, subjects: Sequence[SubjectDemand]) -> Dict[str, int]:
    """Water-fill ``total_budget_minutes`` across ``subjects``.

    Each pass computes ``fair = remaining // len(pool)``. Subjects with
    preferences whose range excludes ``fair`` are pinned to the violated bound
    and leave the pool; a pass that pins nobody hands ``fair`` to everyone
    left, never less than the 15 minute floor. Subjects never reached (budget
    exhausted) get the same floor.
    """
    if not subjects or total_budget_minutes <= 0:
        return {}

    allocation: Dict[str, int] = {}
    pool = list(subjects)
    remaining = int(total_budget_minutes)

    for _ in range(len(subjects)):
        if not pool:
            break
        fair_share = remaining // len(pool)
        still_open: List[SubjectDemand] = []
        for demand in pool:
            if demand.prefs is None:
                still_open.append(demand)
                continue
            low, high = demand.prefs.bounds()
            if fair_share < low:
                allocation[demand.name] = low
                remaining -= low
            elif fair_share > high:
                allocation[demand.name] = high
                remaining -= high
            else:
                still_open.append(demand)

        if len(still_open) == len(pool):
            for demand in pool:
                allocation[demand.name] = max(fair_share, PREFERENCE_MIN_FLOOR)
            pool = []
            break
        pool = still_open
        if remaining <= 0:
            break

    for demand in subjects:
        allocation.setdefault(demand.name, PREFERENCE_MIN_FLOOR)
    return allocation


__all__ = [
    "SubjectDemand",
    "allocate",
    "clamp_duration",
    "coerce_preference",
    "demands_for",
    "find_preference",
]
