# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskfeed.config import Settings
from taskfeed.tasks.memory_store import InMemoryTaskStore
from taskfeed.tasks.task_service import TaskService
from taskfeed.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings pointing at a per-test tmp directory.

    We build Settings directly rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    return Settings(
        app_name="taskfeed-test",
        log_level="DEBUG",
        log_to_file=False,
        store_backend="sqlite",
        data_dir=tmp_path / "data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
    )


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """
    Both conforming store implementations.

    NOTE: the SQLite store is real (file in tmp_path) because its
    correctness is part of what we want to test.
    """
    if request.param == "sqlite":
        return TaskStore(tmp_path / "tasks.sqlite3")
    return InMemoryTaskStore()


@pytest.fixture()
def service(store) -> TaskService:
    svc = TaskService(store)
    yield svc
    svc.close()
