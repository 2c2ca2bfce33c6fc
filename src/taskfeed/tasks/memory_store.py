# src/taskfeed/tasks/memory_store.py

from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import replace

from ..core.errors import NotFoundError
from ..core.ports import CommitListener
from .listeners import CommitListeners
from .task_models import Task, normalize_title

logger = logging.getLogger(__name__)


class InMemoryTaskStore:
    """
    Dict-backed task store with the same contract as TaskStore.

    Nothing survives the process. Ids come from a monotonic counter and are
    never reused, even after deletes. Records are frozen dataclasses, so
    list_all() can hand them out without copying.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tasks: dict[int, Task] = {}
        self._ids = itertools.count(1)
        self._listeners = CommitListeners()
        logger.info("InMemoryTaskStore ready")

    def close(self) -> None:
        return

    def add_listener(self, listener: CommitListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: CommitListener) -> None:
        self._listeners.remove(listener)

    def count_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)

    def get(self, task_id: int) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def list_all(self) -> list[Task]:
        with self._lock:
            snapshot = list(self._tasks.values())
        snapshot.sort(key=lambda t: (t.created_order, t.id))
        return snapshot

    def insert(self, title: str) -> Task:
        clean_title = normalize_title(title)

        with self._lock:
            order = max((t.created_order for t in self._tasks.values()), default=0) + 1
            task = Task(
                id=next(self._ids),
                title=clean_title,
                is_completed=False,
                created_order=order,
                created_at=time.time(),
            )
            self._tasks[task.id] = task

        self._listeners.notify()
        return task

    def update(
        self,
        task_id: int,
        *,
        title: str | None = None,
        is_completed: bool | None = None,
    ) -> Task:
        clean_title = normalize_title(title) if title is not None else None

        with self._lock:
            current = self._tasks.get(task_id)
            if current is None:
                raise NotFoundError(task_id)
            if clean_title is None and is_completed is None:
                return current

            updated = replace(
                current,
                title=current.title if clean_title is None else clean_title,
                is_completed=current.is_completed if is_completed is None else bool(is_completed),
            )
            self._tasks[task_id] = updated

        self._listeners.notify()
        return updated

    def delete(self, task_id: int) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                raise NotFoundError(task_id)

        self._listeners.notify()
