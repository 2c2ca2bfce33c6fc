# src/taskfeed/bootstrap.py

"""
Bootstrap helpers.

This module is the "composition root":
- loads settings once (or takes them injected),
- ensures local (gitignored) directories exist,
- builds the store and hands it to the TaskService explicitly.

There is no global database handle: whoever calls create_initial_state owns the
returned AppState and must call shutdown() when done.
Logging is configured separately via configure_logging(), before the first log line.
"""

from __future__ import annotations

import logging

from .config import Settings, get_settings
from .core.ports import TaskRepo
from .core.state import AppState
from .logging_setup import setup_logging
from .tasks.memory_store import InMemoryTaskStore
from .tasks.task_service import TaskService
from .tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    console_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if not isinstance(console_level, int):
        console_level = logging.INFO
    setup_logging(
        log_dir=settings.data_dir,
        console_level=console_level,
        log_to_file=settings.log_to_file,
    )


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.store_backend == "sqlite":
        settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_store(settings: Settings) -> TaskRepo:
    if settings.store_backend == "memory":
        return InMemoryTaskStore()
    if settings.store_backend == "sqlite":
        return TaskStore(settings.tasks_db_path)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = build_store(settings)
    service = TaskService(store)
    logger.info(
        "%s ready backend=%s tasks=%s",
        settings.app_name,
        settings.store_backend,
        store.count_tasks(),
    )
    return AppState(settings=settings, store=store, service=service)


def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.service.close()
    except Exception:
        logger.exception("Failed to close task service.")

    try:
        state.store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)

    logger.info("Bye.")
