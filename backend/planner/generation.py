"""Generation collaborator: asks an LLM agent for week schedules and curricula."""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from time import perf_counter
from typing import Any, Dict, List, Literal, Optional, Protocol, cast

from agents import Agent, ModelSettings, Runner
from openai.types.shared.reasoning import Reasoning
from openai.types.shared.reasoning_effort import ReasoningEffort
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .errors import GenerationFailure

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```\s*$")


class WeekRequest(BaseModel):
    """Context handed to the generator for one week of a rolling plan."""

    username: str
    mode: Literal["initial", "next_week", "rebalance"] = "next_week"
    subjects: List[str] = Field(default_factory=list)
    subject_difficulties: Dict[str, int] = Field(default_factory=dict)
    subject_end_dates: Dict[str, date] = Field(default_factory=dict)
    subject_session_durations: Dict[str, Dict[str, Optional[int]]] = Field(default_factory=dict)
    daily_study_minutes: int = 120
    study_goal: str = ""
    current_date: date
    week_number: int = Field(default=1, ge=1)
    week_start_date: date
    previous_week_schedule: Dict[str, Any] = Field(default_factory=dict)
    all_covered_topics: Dict[str, List[str]] = Field(default_factory=dict)
    completed_topics: Dict[str, List[str]] = Field(default_factory=dict)
    learning_path_topics: Dict[str, List[str]] = Field(default_factory=dict)
    current_plan: Dict[str, Any] = Field(default_factory=dict)


class CurriculumRequest(BaseModel):
    subject: str
    total_days: int = Field(ge=1)
    difficulty: int = Field(default=2, ge=1, le=3)
    daily_minutes_target: int = 60
    study_goal: str = ""


class ScheduleGenerator(Protocol):
    """Anything able to produce raw (possibly malformed) schedule and curriculum payloads."""

    def request_week_schedule(self, request: WeekRequest) -> Any: ...

    def request_curriculum(self, request: CurriculumRequest) -> Any: ...


def strip_json_fences(text: str) -> str:
    cleaned = _FENCE_OPEN.sub("", text.strip())
    return _FENCE_CLOSE.sub("", cleaned).strip()


def parse_generated_payload(output: Any) -> Any:
    """Decode agent output into plain JSON data, raising ``GenerationFailure`` when unusable."""
    if isinstance(output, BaseModel):
        return output.model_dump(mode="json")
    if isinstance(output, (dict, list)):
        return output
    if not isinstance(output, str):
        raise GenerationFailure(f"Unsupported generator output type: {type(output).__name__}")
    cleaned = strip_json_fences(output)
    if not cleaned:
        raise GenerationFailure("Generator returned an empty response.")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise GenerationFailure(f"Generator returned invalid JSON: {exc}") from exc


def _reasoning_effort(value: str) -> ReasoningEffort:
    allowed = {"minimal", "low", "medium", "high"}
    effort = value if value in allowed else "medium"
    return cast(ReasoningEffort, effort)


_WEEK_INSTRUCTIONS = (
    "You are a study planner. Produce a schedule for exactly one week (Monday to Sunday) covering the "
    "learner's subjects. Respect per-subject session duration ranges and the daily minute budget. Continue "
    "from the previous week's schedule and never repeat a topic listed in all_covered_topics or "
    "completed_topics. Respond only with JSON of the form "
    '{"schedule": {"Monday": {"sessions": [{"subject", "topic", "duration_minutes", "focus_level", '
    '"key_topics", "resources": [{"title", "url", "type"}]}]}, ...}, "strategy_summary": "..."}. '
    "Each session needs at least one video and one article resource."
)

_CURRICULUM_INSTRUCTIONS = (
    "You are a curriculum designer. Produce a day-by-day curriculum for one subject progressing from "
    "beginner to advanced. Respond only with JSON of the form "
    '{"curriculum": {"1": {"topic", "level", "duration_minutes", "focus_level", "key_topics", '
    '"sub_topics", "resources": [{"title", "url", "type"}]}, ...}} with one entry per day and no gaps.'
)

_AGENT_CACHE: dict[tuple[str, str, str], Agent[Any]] = {}


def _planner_agent(kind: str, model: str, effort: str) -> Agent[Any]:
    key = (kind, model, effort)
    if key not in _AGENT_CACHE:
        instructions = _WEEK_INSTRUCTIONS if kind == "week" else _CURRICULUM_INSTRUCTIONS
        _AGENT_CACHE[key] = Agent[Any](
            name=f"Study Planner {kind.title()} Generator",
            instructions=instructions,
            model=model,
            tools=[],
            model_settings=ModelSettings(
                reasoning=Reasoning(effort=_reasoning_effort(effort)),
                store=False,
            ),
        )
    return _AGENT_CACHE[key]


class AgentScheduleGenerator:
    """Generator backed by an OpenAI Agents SDK agent."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def _run(self, kind: str, payload: BaseModel) -> Any:
        agent = _planner_agent(kind, self._settings.planner_agent_model, self._settings.planner_agent_reasoning)
        prompt = (
            "Respond strictly with JSON.\n\nCONTEXT:\n"
            f"{json.dumps(payload.model_dump(mode='json'), ensure_ascii=False, indent=2)}"
        )
        started = perf_counter()
        try:
            result = Runner.run_sync(agent, prompt, context=None)
        except Exception as exc:  # noqa: BLE001
            raise GenerationFailure(f"Planner agent call failed: {exc}") from exc
        latency_ms = round((perf_counter() - started) * 1000.0, 2)
        logger.debug("Planner agent (%s) responded in %sms", kind, latency_ms)
        return parse_generated_payload(result.final_output)

    def request_week_schedule(self, request: WeekRequest) -> Any:
        return self._run("week", request)

    def request_curriculum(self, request: CurriculumRequest) -> Any:
        return self._run("curriculum", request)


class FallbackScheduleGenerator:
    """Generator used when model calls are switched off; every request degrades to templates."""

    def request_week_schedule(self, request: WeekRequest) -> Any:
        raise GenerationFailure("Schedule generation is disabled.")

    def request_curriculum(self, request: CurriculumRequest) -> Any:
        raise GenerationFailure("Curriculum generation is disabled.")


def get_generator(settings: Optional[Settings] = None) -> ScheduleGenerator:
    resolved = settings or get_settings()
    if resolved.planner_generation_mode == "fallback":
        return FallbackScheduleGenerator()
    return AgentScheduleGenerator(resolved)


__all__ = [
    "AgentScheduleGenerator",
    "CurriculumRequest",
    "FallbackScheduleGenerator",
    "ScheduleGenerator",
    "WeekRequest",
    "get_generator",
    "parse_generated_payload",
    "strip_json_fences",
]
