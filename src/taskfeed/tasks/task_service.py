# src/taskfeed/tasks/task_service.py

from __future__ import annotations

"""
Task service.

The only entry point the presentation layer uses:
- validates input before anything touches the store,
- delegates mutations to the injected TaskRepo,
- exposes one shared change feed of "all tasks, in insertion order".

Effects of every call show up in the next feed emission; callers never poll.
"""

import logging
import threading

from ..core.change_feed import ChangeFeed, Subscription
from ..core.errors import NotFoundError, ValidationError
from ..core.ports import TaskRepo
from .task_models import Task, normalize_title

logger = logging.getLogger(__name__)


class TaskService:
    def __init__(self, store: TaskRepo) -> None:
        self._store = store
        self._feed = ChangeFeed(store)
        self._all_tasks_query = store.list_all
        # Serializes read-modify-write operations (toggle) against each other.
        self._toggle_lock = threading.Lock()

    @property
    def store(self) -> TaskRepo:
        return self._store

    @property
    def feed(self) -> ChangeFeed:
        return self._feed

    # ---- observation ----

    def all_tasks(self) -> Subscription:
        """Live subscription to every task, ordered by creation."""
        return self._feed.subscribe(self._all_tasks_query)

    def list_tasks(self) -> list[Task]:
        return self._store.list_all()

    # ---- mutations ----

    def add_new_task(self, title: str) -> Task:
        try:
            clean_title = normalize_title(title)
        except ValidationError:
            logger.debug("Rejected new task with empty title")
            raise

        task = self._store.insert(clean_title)
        logger.info("Task added id=%s", task.id)
        return task

    def update_task_status(self, task_id: int, completed: bool) -> Task:
        task = self._store.update(task_id, is_completed=bool(completed))
        logger.info("Task %s -> %s", task_id, "completed" if task.is_completed else "open")
        return task

    def toggle_task(self, task_id: int) -> Task:
        with self._toggle_lock:
            current = self._store.get(task_id)
            if current is None:
                raise NotFoundError(task_id)
            return self.update_task_status(task_id, not current.is_completed)

    def update_task_title(self, task_id: int, new_title: str) -> Task:
        try:
            clean_title = normalize_title(new_title)
        except ValidationError:
            logger.debug("Rejected empty title for task_id=%s", task_id)
            raise

        task = self._store.update(task_id, title=clean_title)
        logger.info("Task %s renamed", task_id)
        return task

    def delete_task(self, task_id: int) -> bool:
        """
        Delete a task.

        A task that is already gone counts as success: UI actions can race with
        each other (double click, stale row), and the end state is the same.
        Returns False in that case.
        """
        try:
            self._store.delete(task_id)
        except NotFoundError:
            logger.warning("delete_task: task_id=%s already absent", task_id)
            return False

        logger.info("Task %s deleted", task_id)
        return True

    def close(self) -> None:
        self._feed.close()
