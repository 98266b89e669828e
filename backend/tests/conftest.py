from __future__ import annotations

import os
import uuid
from typing import Any, Callable, Dict, List, Optional

import pytest

os.environ.setdefault("PLANNER_DATABASE_URL", "sqlite://")
os.environ.setdefault("PLANNER_GENERATION_MODE", "fallback")
os.environ.setdefault("PLANNER_PERSIST_TELEMETRY", "false")

from planner.errors import GenerationFailure  # noqa: E402
from planner.generation import CurriculumRequest, WeekRequest  # noqa: E402
from planner.telemetry import TelemetryEvent, register_listener, unregister_listener  # noqa: E402


class StubGenerator:
    """Records every request and answers from canned payloads or callables."""

    def __init__(
        self,
        week: Any = None,
        curriculum: Any = None,
    ) -> None:
        self.week = week
        self.curriculum = curriculum
        self.week_requests: List[WeekRequest] = []
        self.curriculum_requests: List[CurriculumRequest] = []

    @staticmethod
    def _answer(source: Any, request: Any) -> Any:
        if source is None:
            raise GenerationFailure("stub has no payload")
        if isinstance(source, Exception):
            raise source
        if callable(source):
            return source(request)
        return source

    def request_week_schedule(self, request: WeekRequest) -> Any:
        self.week_requests.append(request)
        return self._answer(self.week, request)

    def request_curriculum(self, request: CurriculumRequest) -> Any:
        self.curriculum_requests.append(request)
        return self._answer(self.curriculum, request)


def week_payload(subject: str, topic: str, minutes: int = 45) -> Dict[str, Any]:
    return {
        "schedule": {
            "Monday": {
                "sessions": [
                    {
                        "subject": subject,
                        "topic": topic,
                        "duration_minutes": minutes,
                        "focus_level": "high",
                        "key_topics": [topic],
                        "resources": [
                            {"title": "Docs", "url": "https://docs.example.com", "type": "article"},
                            {"title": "Talk", "url": "https://video.example.com/watch", "type": "video"},
                        ],
                    }
                ]
            }
        },
        "strategy_summary": f"Focus on {topic}",
    }


@pytest.fixture
def stub_generator() -> Callable[..., StubGenerator]:
    return StubGenerator


@pytest.fixture
def events() -> Any:
    recorded: List[TelemetryEvent] = []
    register_listener(recorded.append)
    yield recorded
    unregister_listener(recorded.append)


@pytest.fixture
def username() -> str:
    return f"learner-{uuid.uuid4().hex[:8]}"


def names(events: List[TelemetryEvent], name: Optional[str] = None) -> List[TelemetryEvent]:
    return [event for event in events if name is None or event.name == name]
