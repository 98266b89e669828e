from __future__ import annotations

import pytest

from planner.curriculum_normalizer import (
    FALLBACK_DURATIONS,
    fallback_focus_level,
    generate_fallback_curriculum,
    level_for_day,
    normalize_curriculum,
    reindex_curriculum,
)
from planner.models import DayCurriculum


def test_empty_input_yields_leveled_template_curriculum() -> None:
    curriculum = normalize_curriculum({}, 10, "Python", {})
    assert list(curriculum.keys()) == [str(day) for day in range(1, 11)]
    levels = [curriculum[str(day)].level for day in range(1, 11)]
    assert levels[:3] == ["beginner"] * 3
    assert levels[3:7] == ["intermediate"] * 4
    assert levels[7:] == ["advanced"] * 3
    for day in curriculum.values():
        assert day.key_topics
        assert day.resources
        assert {resource.type for resource in day.resources} >= {"video", "article"}


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "garbage",
        7,
        [],
        {"curriculum": None},
        {"1": "x"},
        {"curriculum": {"1": {"duration_minutes": float("inf")}}},
        {"curriculum": {"1": {"duration_minutes": float("nan")}}},
        {"curriculum": {"1": {"duration_minutes": "9" * 5000}}},
    ],
)
def test_normalize_curriculum_is_total(raw) -> None:
    curriculum = normalize_curriculum(raw, 4, "Chemistry")
    assert list(curriculum.keys()) == ["1", "2", "3", "4"]


def test_gaps_are_filled_and_extra_days_dropped() -> None:
    raw = {
        "curriculum": {
            "1": {"topic": "Variables", "level": "Beginner", "duration_minutes": "45 minutes"},
            "3": {"topic": "Functions", "focus_level": "high", "skipped": True},
            "9": {"topic": "Beyond the end"},
        }
    }
    curriculum = normalize_curriculum(raw, 4, "Python")
    assert set(curriculum) == {"1", "2", "3", "4"}
    assert curriculum["1"].topic == "Variables"
    assert curriculum["1"].level == "beginner"
    assert curriculum["1"].duration_minutes == 45
    assert curriculum["3"].focus_level == "high"
    assert curriculum["3"].skipped is True
    assert curriculum["2"].topic != ""
    assert curriculum["4"].level == "advanced"


def test_list_curriculum_is_keyed_by_position() -> None:
    curriculum = normalize_curriculum([{"topic": "A"}, {"topic": "B"}], 2, "Art")
    assert curriculum["1"].topic == "A"
    assert curriculum["2"].topic == "B"


def test_day_durations_respect_preferences() -> None:
    raw = {"1": {"topic": "Sets", "duration_minutes": 300}}
    curriculum = normalize_curriculum(raw, 1, "Math", {"Math": {"min": 20, "max": 50}})
    assert curriculum["1"].duration_minutes == 50


def test_fallback_curriculum_uses_difficulty_durations() -> None:
    curriculum = generate_fallback_curriculum("History", 10, difficulty=3)
    assert curriculum["1"].duration_minutes == FALLBACK_DURATIONS[("beginner", 3)]
    assert curriculum["10"].duration_minutes == FALLBACK_DURATIONS[("advanced", 3)]
    assert curriculum["1"].focus_level == "medium"
    assert curriculum["10"].focus_level == "high"
    assert any("advanced challenges" in item for item in curriculum["5"].sub_topics)
    assert curriculum["1"].resources[0].title == "History - Video Overview"


def test_fallback_curriculum_is_deterministic() -> None:
    first = generate_fallback_curriculum("Biology", 6, difficulty=1)
    second = generate_fallback_curriculum("Biology", 6, difficulty=1)
    assert first == second
    assert first["1"].sub_topics[0] == "Biology: prerequisites and preparation"


def test_level_and_focus_helpers() -> None:
    assert level_for_day(3, 10) == "beginner"
    assert level_for_day(7, 10) == "intermediate"
    assert level_for_day(8, 10) == "advanced"
    assert level_for_day(1, 1) == "advanced"
    assert fallback_focus_level("beginner", 1) == "low"
    assert fallback_focus_level("advanced", 1) == "medium"
    assert fallback_focus_level("intermediate", 2) == "medium"


def test_reindex_shifts_day_keys() -> None:
    days = {"1": DayCurriculum(topic="A"), "2": DayCurriculum(topic="B")}
    shifted = reindex_curriculum(days, 3)
    assert list(shifted) == ["4", "5"]
    assert shifted["5"].topic == "B"


def test_non_finite_day_minutes_use_default_duration() -> None:
    raw = {
        "curriculum": {
            "1": {"topic": "Syntax", "duration_minutes": float("inf")},
            "2": {"topic": "Loops", "duration_minutes": float("nan")},
            "3": {"topic": "Functions", "duration_minutes": "about 1 2 0 minutes"},
        }
    }
    curriculum = normalize_curriculum(raw, 3, "Python", {})
    assert curriculum["1"].duration_minutes == 60
    assert curriculum["2"].duration_minutes == 60
    assert curriculum["3"].duration_minutes == 120
