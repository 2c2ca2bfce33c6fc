# src/taskfeed/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..config import Settings
from ..tasks.task_service import TaskService
from .ports import TaskRepo


@dataclass
class AppState:
    """Everything the composition root built; owned by the top-level caller."""

    settings: Settings
    store: TaskRepo
    service: TaskService
