# src/taskfeed/core/errors.py

from __future__ import annotations

"""
Error taxonomy shared by stores and the task service.

- ValidationError: input broke a domain rule; nothing was changed.
- NotFoundError: the referenced task does not exist (anymore).
- StorageError: the persistence medium failed; nothing was committed.
"""


class TaskError(Exception):
    """Base class for all task-core errors."""


class ValidationError(TaskError, ValueError):
    pass


class NotFoundError(TaskError, LookupError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"task {task_id} not found")
        self.task_id = task_id


class StorageError(TaskError):
    pass
