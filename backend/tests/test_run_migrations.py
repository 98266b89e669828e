from __future__ import annotations

import types

import pytest
from sqlalchemy import create_engine, inspect

from scripts import run_migrations as runner


def test_resolve_database_url_prefers_config(monkeypatch) -> None:
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    config.set_main_option("sqlalchemy.url", "sqlite:///configured.db")
    monkeypatch.setenv("PLANNER_DATABASE_URL", "sqlite:///ignored.db")
    assert runner.resolve_database_url(config) == "sqlite:///configured.db"


def test_resolve_database_url_falls_back_to_env(monkeypatch) -> None:
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    monkeypatch.setenv("PLANNER_DATABASE_URL", "postgresql://planner:p%40ss@db/planner")
    assert runner.resolve_database_url(config) == "postgresql://planner:p%40ss@db/planner"
    assert config.get_main_option("sqlalchemy.url") == "postgresql://planner:p%40ss@db/planner"


def test_resolve_database_url_requires_a_url(monkeypatch) -> None:
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    monkeypatch.delenv("PLANNER_DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        runner.resolve_database_url(config)


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    runner.wait_for_database(f"sqlite:///{tmp_path / 'ready.sqlite'}", timeout=2, poll_interval=0.1)


def test_wait_for_database_times_out(monkeypatch) -> None:
    class DummyEngine:
        def connect(self) -> types.SimpleNamespace:
            raise runner.OperationalError("SELECT 1", {}, Exception("boom"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: DummyEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", timeout=0, poll_interval=0)


def test_run_migrations_creates_planner_tables(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'planner.sqlite'}"
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    config.set_main_option("sqlalchemy.url", url)

    runner.run_migrations("head", timeout=2, poll_interval=0.1, config=config)

    engine = create_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"learners", "study_plans", "learning_paths", "persistence_audit_events"} <= tables


def test_main_reports_failures(monkeypatch) -> None:
    def broken(*args, **kwargs) -> None:
        raise RuntimeError("no database")

    monkeypatch.setattr(runner, "run_migrations", broken)
    assert runner.main(["--timeout", "0"]) == 1
