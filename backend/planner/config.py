import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    planner_agent_model: str = Field("gpt-5", alias="PLANNER_AGENT_MODEL")
    planner_agent_reasoning: Literal["minimal", "low", "medium", "high"] = Field("medium", alias="PLANNER_AGENT_REASONING")
    planner_generation_mode: Literal["agent", "fallback"] = Field("agent", alias="PLANNER_GENERATION_MODE")
    planner_generation_workers: int = Field(4, ge=1, alias="PLANNER_GENERATION_WORKERS")
    database_url: Optional[str] = Field(None, alias="PLANNER_DATABASE_URL")
    database_pool_size: int = Field(10, alias="PLANNER_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="PLANNER_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="PLANNER_DATABASE_ECHO")
    database_auto_create: bool = Field(False, alias="PLANNER_DATABASE_AUTO_CREATE")
    default_daily_minutes: int = Field(120, ge=15, alias="PLANNER_DEFAULT_DAILY_MINUTES")
    focus_limit: int = Field(6, ge=1, alias="PLANNER_FOCUS_LIMIT")
    plan_cooldown_hours: int = Field(24, ge=0, alias="PLANNER_PLAN_COOLDOWN_HOURS")
    rebalance_cooldown_hours: int = Field(12, ge=0, alias="PLANNER_REBALANCE_COOLDOWN_HOURS")
    behind_schedule_tolerance_days: int = Field(0, ge=0, alias="PLANNER_BEHIND_SCHEDULE_TOLERANCE_DAYS")
    persist_telemetry: bool = Field(True, alias="PLANNER_PERSIST_TELEMETRY")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
