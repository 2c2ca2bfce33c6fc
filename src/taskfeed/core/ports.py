# src/taskfeed/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The service and the change feed depend on Protocols instead of concrete stores.
This keeps the persistence medium swappable (SQLite, in-memory) and makes testing easier.
"""

from collections.abc import Callable, Sequence
from typing import Protocol

from ..tasks.task_models import Task

CommitListener = Callable[[], None]
# Called by a store after every successful commit, outside its write lock.

TaskQuery = Callable[[], Sequence[Task]]
# Point-in-time query evaluated by the change feed.


class ChangeSource(Protocol):
    """Anything that can tell a change feed "something was committed"."""

    def add_listener(self, listener: CommitListener) -> None: ...
    def remove_listener(self, listener: CommitListener) -> None: ...


class TaskRepo(ChangeSource, Protocol):
    """
    Durable keyed table of Task records.

    All mutations are atomic with respect to each other; list_all() never
    observes a partially applied mutation.
    """

    def insert(self, title: str) -> Task: ...

    def update(
            self,
            task_id: int,
            *,
            title: str | None = None,
            is_completed: bool | None = None,
    ) -> Task: ...

    def delete(self, task_id: int) -> None: ...
    def get(self, task_id: int) -> Task | None: ...
    def list_all(self) -> list[Task]: ...
    def count_tasks(self) -> int: ...
    def close(self) -> None: ...
