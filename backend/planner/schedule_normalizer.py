"""Convert arbitrary generator week payloads into the canonical 7-day schedule."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

from .duration_budget import PreferenceTable, clamp_duration
from .models import (
    FOCUS_LEVELS,
    RESOURCE_TYPES,
    WEEKDAYS,
    DaySchedule,
    GeneratedPlan,
    Resource,
    Session,
    WeekSchedule,
)
from .resource_catalog import ResourceCatalog, resolve_catalog

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Study Session"
DEFAULT_DURATION_MINUTES = 60

_DAY_LOOKUP = {day.lower(): day for day in WEEKDAYS}
_LIST_SPLIT = re.compile(r"[,;]+")
_SITE_HINT = re.compile(r"site:(\S+)")
_SITE_HINT_STRIP = re.compile(r"site:\S+\s*")
_TIME_RANGE_PREFIX = re.compile(
    r"^\s*\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?\s*[-–]\s*\d{1,2}:\d{2}\s*(?:[AaPp]\.?[Mm]\.?)?\s*:?\s*"
)
_LEADING_NUMBER = re.compile(r"^[+-]?\d+(?:\.\d+)?")
_LEADING_INT = re.compile(r"^[+-]?\d+")
_HOUR_SUFFIX = re.compile(r"^\d+(?:\.\d+)?\s*h\b")


@dataclass(frozen=True)
class ObjectInput:
    payload: Mapping[str, Any]


@dataclass(frozen=True)
class EncodedStringInput:
    payload: Mapping[str, Any]
    raw: str


@dataclass(frozen=True)
class FreeTextInput:
    text: str


@dataclass(frozen=True)
class AbsentInput:
    raw: Any = None


SessionInput = Union[ObjectInput, EncodedStringInput, FreeTextInput, AbsentInput]


def classify_session(entry: Any) -> SessionInput:
    """Tag a raw session entry by shape so each shape is handled explicitly."""
    if isinstance(entry, Mapping):
        if any(key in entry for key in ("subject", "topic")):
            return ObjectInput(entry)
        return AbsentInput(entry)
    if isinstance(entry, str):
        text = entry.strip()
        if not text:
            return AbsentInput(entry)
        if text.startswith("{"):
            try:
                decoded = json.loads(text)
            except ValueError:
                decoded = None
            if isinstance(decoded, Mapping) and "subject" in decoded:
                return EncodedStringInput(decoded, text)
        return FreeTextInput(text)
    return AbsentInput(entry)


def whole_minutes(value: Union[int, float, str]) -> Optional[int]:
    """Integer minutes, or ``None`` when the value is not finite or not convertible."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return int(value)
    except (ValueError, OverflowError):
        return None


def parse_duration(value: Any) -> int:
    """Interpret a loosely typed duration as minutes.

    Numbers up to 12 are hours. Strings mentioning hours are float hours.
    Other strings use their leading integer. Anything else is 60.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_DURATION_MINUTES
    if isinstance(value, (int, float)):
        minutes = whole_minutes(value)
        if minutes is None:
            return DEFAULT_DURATION_MINUTES
        return minutes * 60 if 0 < minutes <= 12 else minutes
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if not cleaned:
            return DEFAULT_DURATION_MINUTES
        if "hour" in cleaned or " h" in cleaned or _HOUR_SUFFIX.match(cleaned):
            match = _LEADING_NUMBER.match(cleaned)
            if not match:
                return DEFAULT_DURATION_MINUTES
            minutes = whole_minutes(float(match.group(0)) * 60)
            return DEFAULT_DURATION_MINUTES if minutes is None else minutes
        match = _LEADING_INT.match(cleaned)
        if not match:
            return DEFAULT_DURATION_MINUTES
        return parse_duration(whole_minutes(match.group(0)))
    return DEFAULT_DURATION_MINUTES


def coerce_focus_level(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in FOCUS_LEVELS:
        return value.strip().lower()
    return "medium"


def coerce_resource_type(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in RESOURCE_TYPES:
        return value.strip().lower()
    return "article"


def coerce_string_list(value: Any) -> List[Any]:
    """Lists pass through; comma/semicolon strings are split; anything else is empty."""
    if isinstance(value, str):
        return [part.strip() for part in _LIST_SPLIT.split(value) if part.strip()]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def is_valid_url(url: str) -> bool:
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in {"http", "https"}:
        return False
    host = parsed.hostname or ""
    return "." in host or host == "localhost"


def sanitize_url(url: str, title: str, catalog: ResourceCatalog) -> str:
    """Rewrite ``site:`` hints and invalid URLs; valid URLs pass through unchanged."""
    candidate = url.strip()
    hint = _SITE_HINT.search(candidate)
    if hint:
        domain = hint.group(1)
        candidate = domain if domain.startswith("http") else f"https://{domain}"
    if is_valid_url(candidate):
        return candidate
    query = title.strip() or candidate
    return catalog.web_search_url(query)


def normalize_resource(entry: Any, catalog: ResourceCatalog) -> Optional[Resource]:
    if isinstance(entry, str):
        text = entry.strip()
        if not text:
            return None
        return Resource(title=text, url=sanitize_url(text, text, catalog), type="article")
    if not isinstance(entry, Mapping):
        return None

    title = str(_first_present(entry, "title", "name", "label") or "").strip()
    url = str(_first_present(entry, "url", "link", "href") or "").strip()

    if "site:" in title:
        hint = _SITE_HINT.search(title)
        if hint:
            url = f"https://{hint.group(1)}"
            title = _SITE_HINT_STRIP.sub("", title).strip()
    if "site:" in url:
        hint = _SITE_HINT.search(url)
        if hint:
            url = f"https://{hint.group(1)}"

    if not title and url:
        title = url
    if not url and title:
        url = title
    if not title and not url:
        return None

    return Resource(
        title=title,
        url=sanitize_url(url, title, catalog),
        type=coerce_resource_type(_first_present(entry, "type", "kind")),
    )


def ensure_video_and_article(
    resources: List[Resource], subject: str, topic: str, catalog: ResourceCatalog
) -> List[Resource]:
    kinds = {resource.type for resource in resources}
    completed = list(resources)
    if "video" not in kinds:
        completed.append(catalog.video_guide(subject, topic))
    if "article" not in kinds:
        completed.append(catalog.documentation_resource(subject, topic))
    return completed


def _session_from_payload(
    payload: Mapping[str, Any],
    prefs: Optional[PreferenceTable],
    catalog: ResourceCatalog,
) -> Session:
    subject = str(payload.get("subject") or DEFAULT_SUBJECT).strip() or DEFAULT_SUBJECT
    topic_value = payload.get("topic")
    topic = str(topic_value).strip() if topic_value is not None else ""

    key_topics = [
        str(item).strip()
        for item in coerce_string_list(_first_present(payload, "key_topics", "keyTopics", "topics", "key_points"))
        if isinstance(item, (str, int, float)) and str(item).strip()
    ]
    if not key_topics:
        key_topics = catalog.default_key_topics(subject, topic)

    resources = [
        resource
        for resource in (
            normalize_resource(item, catalog)
            for item in coerce_string_list(_first_present(payload, "resources", "resource_links", "links"))
        )
        if resource is not None
    ]
    if not resources:
        resources = catalog.resources_for(subject)

    duration = parse_duration(_first_present(payload, "duration_minutes", "duration"))
    return Session(
        subject=subject,
        topic=topic,
        duration_minutes=clamp_duration(subject, duration, prefs),
        focus_level=coerce_focus_level(payload.get("focus_level")),
        key_topics=key_topics,
        resources=ensure_video_and_article(resources, subject, topic, catalog),
    )


def _session_from_text(text: str, prefs: Optional[PreferenceTable], catalog: ResourceCatalog) -> Session:
    cleaned = _TIME_RANGE_PREFIX.sub("", text, count=1).strip() or text.strip()
    subject = re.split(r"[:(]", cleaned, maxsplit=1)[0].strip() or DEFAULT_SUBJECT
    return Session(
        subject=subject,
        topic=cleaned,
        duration_minutes=clamp_duration(subject, DEFAULT_DURATION_MINUTES, prefs),
        focus_level="medium",
        key_topics=catalog.default_key_topics(subject, cleaned),
        resources=ensure_video_and_article(catalog.resources_for(subject), subject, cleaned, catalog),
    )


def normalize_session(
    entry: Any,
    prefs: Optional[PreferenceTable] = None,
    catalog: Optional[ResourceCatalog] = None,
) -> Optional[Session]:
    """Return the canonical session for one raw entry, or ``None`` when it carries nothing."""
    active_catalog = resolve_catalog(catalog)
    tagged = classify_session(entry)
    if isinstance(tagged, (ObjectInput, EncodedStringInput)):
        return _session_from_payload(tagged.payload, prefs, active_catalog)
    if isinstance(tagged, FreeTextInput):
        return _session_from_text(tagged.text, prefs, active_catalog)
    return None


def _day_name(key: Any) -> Optional[str]:
    if isinstance(key, str):
        return _DAY_LOOKUP.get(key.strip().lower())
    return None


def _day_keyed(mapping: Mapping[Any, Any]) -> Dict[str, Any]:
    keyed: Dict[str, Any] = {}
    for key, value in mapping.items():
        day = _day_name(key)
        if day and day not in keyed:
            keyed[day] = value
    return keyed


def _flatten_positional(entries: List[Any]) -> Dict[str, Any]:
    by_day: Dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        embedded = _day_keyed(entry)
        if embedded:
            day = next(name for name in WEEKDAYS if name in embedded)
            by_day[day] = embedded[day]
            continue
        day = _day_name(entry.get("day"))
        if day:
            by_day[day] = entry
    return by_day


def _extract_schedule(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return {}

    schedule: Any = None
    if isinstance(raw, Mapping):
        schedule = raw.get("schedule")
        if schedule is None:
            schedule = raw.get("optimized_schedule")
        if schedule is None and _day_keyed(raw):
            schedule = raw
    elif isinstance(raw, list):
        schedule = raw

    if isinstance(schedule, list):
        return _flatten_positional(schedule)
    if isinstance(schedule, Mapping):
        keyed = _day_keyed(schedule)
        if keyed:
            return keyed
        return _flatten_positional(list(schedule.values()))
    return {}


def _sessions_for_day(entry: Any, day: str) -> List[Any]:
    if isinstance(entry, Mapping):
        nested = _day_keyed(entry).get(day)
        if nested is not None:
            entry = nested
    if isinstance(entry, list):
        return entry
    if isinstance(entry, Mapping):
        sessions = entry.get("sessions")
        if isinstance(sessions, list):
            return sessions
        if isinstance(sessions, (Mapping, str)):
            return [sessions]
    return []


def normalize_schedule(
    raw: Any,
    prefs: Optional[PreferenceTable] = None,
    catalog: Optional[ResourceCatalog] = None,
) -> WeekSchedule:
    """Canonical Monday..Sunday schedule for any input; never raises."""
    active_catalog = resolve_catalog(catalog)
    by_day = _extract_schedule(raw)
    normalized: WeekSchedule = {}
    for day in WEEKDAYS:
        sessions: List[Session] = []
        for entry in _sessions_for_day(by_day.get(day), day):
            session = normalize_session(entry, prefs, active_catalog)
            if session is not None:
                sessions.append(session)
        normalized[day] = DaySchedule(sessions=sessions)
    return normalized


def normalize_generated_plan(
    raw: Any,
    prefs: Optional[PreferenceTable] = None,
    catalog: Optional[ResourceCatalog] = None,
) -> GeneratedPlan:
    """Normalise a whole plan payload, keeping its narrative fields."""
    summary = ""
    change_log: List[str] = []
    if isinstance(raw, Mapping):
        summary_value = _first_present(raw, "strategy_summary", "predicted_improvement")
        summary = str(summary_value).strip() if summary_value is not None else ""
        change_log = [str(item).strip() for item in coerce_string_list(raw.get("change_log")) if str(item).strip()]
    return GeneratedPlan(
        schedule=normalize_schedule(raw, prefs, catalog),
        strategy_summary=summary,
        change_log=change_log,
    )


def schedule_to_payload(schedule: WeekSchedule) -> Dict[str, Any]:
    return {day: schedule[day].model_dump(mode="json") for day in WEEKDAYS if day in schedule}


__all__ = [
    "AbsentInput",
    "EncodedStringInput",
    "FreeTextInput",
    "ObjectInput",
    "SessionInput",
    "classify_session",
    "coerce_focus_level",
    "coerce_resource_type",
    "coerce_string_list",
    "ensure_video_and_article",
    "is_valid_url",
    "normalize_generated_plan",
    "normalize_resource",
    "normalize_schedule",
    "normalize_session",
    "parse_duration",
    "sanitize_url",
    "schedule_to_payload",
    "whole_minutes",
]
