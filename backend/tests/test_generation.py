from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from planner import generation
from planner.config import Settings
from planner.errors import GenerationFailure
from planner.generation import (
    AgentScheduleGenerator,
    CurriculumRequest,
    FallbackScheduleGenerator,
    WeekRequest,
    get_generator,
    parse_generated_payload,
    strip_json_fences,
)


def _settings(**overrides) -> Settings:
    values = {"PLANNER_GENERATION_MODE": "agent", "PLANNER_AGENT_MODEL": "gpt-5-mini"}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


def _week_request() -> WeekRequest:
    today = date(2026, 5, 4)
    return WeekRequest(username="ada", current_date=today, week_start_date=today)


def test_strip_json_fences() -> None:
    assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_json_fences("  {}  ") == "{}"


def test_parse_generated_payload_variants() -> None:
    assert parse_generated_payload({"schedule": {}}) == {"schedule": {}}
    assert parse_generated_payload('```\n[1, 2]\n```') == [1, 2]
    assert parse_generated_payload(_week_request())["username"] == "ada"
    with pytest.raises(GenerationFailure):
        parse_generated_payload("not json")
    with pytest.raises(GenerationFailure):
        parse_generated_payload("   ")
    with pytest.raises(GenerationFailure):
        parse_generated_payload(42)


def test_fallback_generator_always_fails() -> None:
    fallback = FallbackScheduleGenerator()
    with pytest.raises(GenerationFailure):
        fallback.request_week_schedule(_week_request())
    with pytest.raises(GenerationFailure):
        fallback.request_curriculum(CurriculumRequest(subject="Art", total_days=3))


def test_get_generator_follows_mode() -> None:
    assert isinstance(get_generator(_settings(PLANNER_GENERATION_MODE="fallback")), FallbackScheduleGenerator)
    assert isinstance(get_generator(_settings()), AgentScheduleGenerator)


def test_agent_generator_parses_runner_output(monkeypatch) -> None:
    captured = {}

    def fake_run_sync(agent, prompt, context=None):
        captured["agent"] = agent
        captured["prompt"] = prompt
        return SimpleNamespace(final_output='```json\n{"schedule": {"Monday": []}}\n```')

    monkeypatch.setattr(generation.Runner, "run_sync", fake_run_sync)
    result = AgentScheduleGenerator(_settings()).request_week_schedule(_week_request())

    assert result == {"schedule": {"Monday": []}}
    assert '"username": "ada"' in captured["prompt"]
    assert captured["agent"].model == "gpt-5-mini"


def test_agent_generator_wraps_errors(monkeypatch) -> None:
    def boom(agent, prompt, context=None):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(generation.Runner, "run_sync", boom)
    with pytest.raises(GenerationFailure) as excinfo:
        AgentScheduleGenerator(_settings()).request_curriculum(CurriculumRequest(subject="Art", total_days=3))
    assert "rate limited" in str(excinfo.value)
