# tests/conftest.py

from __future__ import annotations

from datetime import UTC
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskwise.core.state import AppState
from taskwise.tasks.task_store import TaskStore

from .fakes import AllowAllRateLimiter, FakeLLMClient


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskwise",
        user_id="alice",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        tz=UTC,
        scheduler_enabled=False,
        sweep_interval_seconds=900,
        sweep_max_runtime_seconds=None,
        scheduler_poll_seconds=0.01,
        digest_hour=8,
        digest_minute=0,
        llm_models=["fake-model"],
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, llm: FakeLLMClient) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep a real SQLite TaskStore here because its correctness is part
    of what we want to test.
    """
    return AppState(
        settings=settings,
        llm=llm,
        task_store=store,
        rate_limiter=AllowAllRateLimiter(),
    )
