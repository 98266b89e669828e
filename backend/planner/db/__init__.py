"""Database utilities for the study planner."""

from .monitoring import probe_database
from .session import (
    dispose_engine,
    get_engine,
    get_session_factory,
    session_scope,
)

__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "probe_database",
    "session_scope",
]
