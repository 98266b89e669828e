import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .db.monitoring import probe_database
from .db.session import get_engine
from .learning_path_routes import router as learning_path_router
from .logging_config import configure_logging
from .plan_routes import router as plan_router
from .telemetry_pipeline import install as install_telemetry_pipeline


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Study Planner Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(plan_router)
app.include_router(learning_path_router)

settings_snapshot = get_settings()
logger.info("Backend starting with generation mode: %s", settings_snapshot.planner_generation_mode)
logger.info("OpenAI API key configured: %s", bool(settings_snapshot.openai_api_key))
if settings_snapshot.persist_telemetry:
    install_telemetry_pipeline()


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "generation_mode": settings.planner_generation_mode}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    try:
        engine = get_engine()
        snapshot = probe_database(engine)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "pool": snapshot,
        "persistence_mode": engine.dialect.name,
        "generation_mode": settings.planner_generation_mode,
    }
