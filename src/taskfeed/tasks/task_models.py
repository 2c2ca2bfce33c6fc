# src/taskfeed/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import overload

from ..core.errors import ValidationError


def normalize_title(title: str | None) -> str:
    """Trim a title and reject empty / whitespace-only input."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title must not be empty")
    return cleaned


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    is_completed: bool
    created_order: int
    created_at: float = 0.0


@dataclass(frozen=True, slots=True)
class ResultSet:
    """
    One ordered snapshot of tasks delivered to a subscriber.

    Equality is deep equality of the ordered tasks; `revision` is the feed's
    emission counter and does not take part in comparisons.
    """

    tasks: tuple[Task, ...] = ()
    revision: int = field(default=0, compare=False)

    @classmethod
    def of(cls, tasks: Iterable[Task], revision: int = 0) -> ResultSet:
        return cls(tasks=tuple(tasks), revision=revision)

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    @overload
    def __getitem__(self, index: int) -> Task: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Task, ...]: ...

    def __getitem__(self, index):
        return self.tasks[index]

    def ids(self) -> list[int]:
        return [t.id for t in self.tasks]

    def find(self, task_id: int) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None
