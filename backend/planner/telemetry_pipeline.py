"""Telemetry listener that persists planner lifecycle events to the audit table."""

from __future__ import annotations

import logging
from typing import Set

from .db.session import session_scope
from .repositories.learners import learners
from .telemetry import TelemetryEvent, register_listener, unregister_listener

logger = logging.getLogger(__name__)

_MONITORED_EVENTS: Set[str] = {
    "plan_created",
    "durations_rebalanced",
    "generation_fallback",
    "learning_path_enrolled",
    "learning_path_updated",
    "learning_path_deleted",
}

_installed = False


def persist_event(event: TelemetryEvent) -> None:
    if event.name not in _MONITORED_EVENTS:
        return
    username = event.payload.get("username")
    if not isinstance(username, str) or not username.strip():
        return
    try:
        with session_scope() as session:
            learners.record_event(session, username, event.name, event.payload)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to persist telemetry event %s for username=%s", event.name, username)


def install() -> None:
    global _installed
    if not _installed:
        register_listener(persist_event)
        _installed = True


def uninstall() -> None:
    global _installed
    if _installed:
        unregister_listener(persist_event)
        _installed = False


__all__ = ["install", "persist_event", "uninstall"]
