# tests/fakes.py

from __future__ import annotations

from taskfeed.core.errors import StorageError
from taskfeed.core.ports import CommitListener
from taskfeed.tasks.memory_store import InMemoryTaskStore
from taskfeed.tasks.task_models import Task


class CountingListener:
    """Commit listener that only counts calls."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


class FlakyTaskRepo:
    """
    TaskRepo that simulates an I/O fault on demand.

    While `fail_writes` is set, every mutation raises StorageError before
    anything is committed, exactly like TaskStore does on sqlite3 errors.
    Reads can be broken separately with `fail_reads`.
    """

    def __init__(self) -> None:
        self.inner = InMemoryTaskStore()
        self.fail_writes = False
        self.fail_reads = False

    def _check_write(self) -> None:
        if self.fail_writes:
            raise StorageError("simulated disk failure")

    def add_listener(self, listener: CommitListener) -> None:
        self.inner.add_listener(listener)

    def remove_listener(self, listener: CommitListener) -> None:
        self.inner.remove_listener(listener)

    def insert(self, title: str) -> Task:
        self._check_write()
        return self.inner.insert(title)

    def update(self, task_id: int, *, title: str | None = None, is_completed: bool | None = None) -> Task:
        self._check_write()
        return self.inner.update(task_id, title=title, is_completed=is_completed)

    def delete(self, task_id: int) -> None:
        self._check_write()
        self.inner.delete(task_id)

    def get(self, task_id: int) -> Task | None:
        return self.inner.get(task_id)

    def list_all(self) -> list[Task]:
        if self.fail_reads:
            raise StorageError("simulated read failure")
        return self.inner.list_all()

    def count_tasks(self) -> int:
        return self.inner.count_tasks()

    def close(self) -> None:
        self.inner.close()


class NoRowidCursor:
    """sqlite3 cursor wrapper that pretends the driver returned no lastrowid."""

    lastrowid = None

    def __init__(self, cur) -> None:
        self._cur = cur

    def __getattr__(self, name: str):
        return getattr(self._cur, name)


class NoRowidConnection:
    """sqlite3 connection wrapper whose cursors come back as NoRowidCursor."""

    def __init__(self, conn) -> None:
        self._conn = conn
        self.committed = False

    def cursor(self) -> NoRowidCursor:
        return NoRowidCursor(self._conn.cursor())

    def commit(self) -> None:
        self.committed = True
        self._conn.commit()

    def __getattr__(self, name: str):
        return getattr(self._conn, name)
