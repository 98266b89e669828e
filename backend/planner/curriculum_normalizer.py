"""Gapless day-by-day curricula for a single subject, with deterministic fallbacks."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from .duration_budget import PreferenceTable, clamp_duration
from .models import LEVELS, Curriculum, DayCurriculum, Resource
from .resource_catalog import ResourceCatalog, resolve_catalog
from .schedule_normalizer import (
    coerce_focus_level,
    coerce_string_list,
    ensure_video_and_article,
    normalize_resource,
    whole_minutes,
)

logger = logging.getLogger(__name__)

DEFAULT_DAY_MINUTES = 60

# (level, difficulty) -> minutes for template curricula.
FALLBACK_DURATIONS: Dict[tuple, int] = {
    ("beginner", 1): 30,
    ("beginner", 2): 45,
    ("beginner", 3): 60,
    ("intermediate", 1): 45,
    ("intermediate", 2): 60,
    ("intermediate", 3): 75,
    ("advanced", 1): 60,
    ("advanced", 2): 75,
    ("advanced", 3): 90,
}

_DIGITS = re.compile(r"\d+")


def level_for_day(day: int, total_days: int) -> str:
    progress = day / max(1, total_days)
    if progress <= 0.3:
        return "beginner"
    if progress <= 0.7:
        return "intermediate"
    return "advanced"


def fallback_focus_level(level: str, difficulty: int) -> str:
    if difficulty == 1:
        return "medium" if level == "advanced" else "low"
    if difficulty == 3:
        return "medium" if level == "beginner" else "high"
    return "medium"


def specific_key_topics(subject: str, topic: str, level: str, day: int, catalog: ResourceCatalog) -> List[str]:
    tier = catalog.tier_topics(subject, level)
    if tier:
        count = len(tier)
        return [tier[(day - 1) % count], tier[day % count], f"Focus: {topic}"]
    return [f"{subject}: {topic}", f"{subject} key principles", f"{subject} practice exercises"]


def specific_sub_topics(
    subject: str, topic: str, level: str, difficulty: int, catalog: ResourceCatalog
) -> List[str]:
    sub_topics = [f"{anchor} — review & practice" for anchor in catalog.tier_topics(subject, level)[:3]]
    sub_topics.append(f"{topic}: detailed walkthrough")
    sub_topics.append(f"{topic}: practice exercises")
    if difficulty == 1:
        sub_topics.insert(0, f"{subject}: prerequisites and preparation")
    elif difficulty == 3:
        sub_topics.append(f"{subject}: advanced challenges")
    return sub_topics


def _template_day(
    subject: str,
    day: int,
    total_days: int,
    difficulty: int,
    prefs: Optional[PreferenceTable],
    catalog: ResourceCatalog,
    *,
    focus_level: str,
    base_minutes: int,
) -> DayCurriculum:
    level = level_for_day(day, total_days)
    tier = catalog.tier_topics(subject, level)
    topic = tier[(day - 1) % len(tier)] if tier else f"{subject} - Day {day}"
    return DayCurriculum(
        topic=topic,
        level=level,
        duration_minutes=clamp_duration(subject, base_minutes, prefs),
        focus_level=focus_level,
        key_topics=specific_key_topics(subject, topic, level, day, catalog),
        sub_topics=specific_sub_topics(subject, topic, level, difficulty, catalog),
        resources=catalog.curriculum_resources(subject, topic),
    )


def _day_minutes(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return DEFAULT_DAY_MINUTES
    if isinstance(value, (int, float, str)):
        if isinstance(value, str):
            value = "".join(_DIGITS.findall(value))
            if not value:
                return DEFAULT_DAY_MINUTES
        minutes = whole_minutes(value)
        return DEFAULT_DAY_MINUTES if minutes is None else minutes
    return DEFAULT_DAY_MINUTES


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _normalize_resources(value: Any, subject: str, topic: str, catalog: ResourceCatalog) -> List[Resource]:
    resources = [
        resource
        for resource in (normalize_resource(item, catalog) for item in coerce_string_list(value))
        if resource is not None
    ]
    return ensure_video_and_article(resources, subject, topic, catalog)


def _well_formed_day(
    entry: Mapping[str, Any],
    subject: str,
    day: int,
    total_days: int,
    prefs: Optional[PreferenceTable],
    catalog: ResourceCatalog,
) -> DayCurriculum:
    topic = str(entry.get("topic") or "").strip() or f"{subject} - Day {day}"
    level = entry.get("level")
    if not isinstance(level, str) or level.strip().lower() not in LEVELS:
        level = level_for_day(day, total_days)
    else:
        level = level.strip().lower()
    return DayCurriculum(
        topic=topic,
        level=level,
        duration_minutes=clamp_duration(subject, _day_minutes(entry.get("duration_minutes")), prefs),
        focus_level=coerce_focus_level(entry.get("focus_level")),
        key_topics=_text_list(entry.get("key_topics")),
        sub_topics=_text_list(entry.get("sub_topics")),
        resources=_normalize_resources(entry.get("resources"), subject, topic, catalog),
        skipped=bool(entry.get("skipped", False)),
    )


def _days_by_key(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, Mapping) and "curriculum" in raw and isinstance(raw["curriculum"], (Mapping, list)):
        raw = raw["curriculum"]
    if isinstance(raw, list):
        return {str(index + 1): entry for index, entry in enumerate(raw)}
    if isinstance(raw, Mapping):
        return {str(key).strip(): entry for key, entry in raw.items()}
    return {}


def normalize_curriculum(
    raw: Any,
    total_days: int,
    subject: str,
    prefs: Optional[PreferenceTable] = None,
    *,
    difficulty: int = 2,
    catalog: Optional[ResourceCatalog] = None,
) -> Curriculum:
    """Exactly ``total_days`` entries keyed ``"1"``..``"N"``, whatever ``raw`` holds."""
    active_catalog = resolve_catalog(catalog)
    total = max(1, int(total_days))
    days = _days_by_key(raw)
    normalized: Curriculum = {}
    filled = 0
    for day in range(1, total + 1):
        entry = days.get(str(day))
        if isinstance(entry, DayCurriculum):
            entry = entry.model_dump()
        if isinstance(entry, Mapping):
            normalized[str(day)] = _well_formed_day(entry, subject, day, total, prefs, active_catalog)
            continue
        filled += 1
        normalized[str(day)] = _template_day(
            subject,
            day,
            total,
            difficulty,
            prefs,
            active_catalog,
            focus_level="medium",
            base_minutes=DEFAULT_DAY_MINUTES,
        )
    if filled:
        logger.info("Filled %s of %s curriculum days for %s from templates", filled, total, subject)
    return normalized


def generate_fallback_curriculum(
    subject: str,
    total_days: int,
    difficulty: int = 2,
    prefs: Optional[PreferenceTable] = None,
    *,
    catalog: Optional[ResourceCatalog] = None,
) -> Curriculum:
    """Template curriculum used whenever generation is unavailable."""
    active_catalog = resolve_catalog(catalog)
    total = max(1, int(total_days))
    curriculum: Curriculum = {}
    for day in range(1, total + 1):
        level = level_for_day(day, total)
        curriculum[str(day)] = _template_day(
            subject,
            day,
            total,
            difficulty,
            prefs,
            active_catalog,
            focus_level=fallback_focus_level(level, difficulty),
            base_minutes=FALLBACK_DURATIONS.get((level, difficulty), DEFAULT_DAY_MINUTES),
        )
    return curriculum


def reindex_curriculum(curriculum: Mapping[str, DayCurriculum], offset: int) -> Curriculum:
    """Shift day keys by ``offset`` so regenerated days follow preserved ones."""
    return {str(int(key) + offset): day for key, day in curriculum.items()}


__all__ = [
    "FALLBACK_DURATIONS",
    "fallback_focus_level",
    "generate_fallback_curriculum",
    "level_for_day",
    "normalize_curriculum",
    "reindex_curriculum",
    "specific_key_topics",
    "specific_sub_topics",
]
