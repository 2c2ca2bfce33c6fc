# src/taskfeed/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
import time
from collections.abc import Iterator
from pathlib import Path

from ..core.errors import NotFoundError, StorageError
from ..core.ports import CommitListener
from .listeners import CommitListeners
from .task_models import Task, normalize_title

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    - mutations are serialized by a single writer lock, so readers always see
      either the state before or after a mutation, never a mix
    - commit listeners run after the lock is released
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.RLock()
        self._listeners = CommitListeners()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StorageError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- listeners ----

    def add_listener(self, listener: CommitListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: CommitListener) -> None:
        self._listeners.remove(listener)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self, op: str) -> Iterator[sqlite3.Connection]:
        """
        Short-lived connection for one operation.

        Any sqlite3.Error rolls back the open transaction and surfaces as StorageError.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            logger.error("TaskStore %s: cannot open db=%s: %s", op, self._db_path, e)
            raise StorageError(f"{op} failed: {e}") from e

        try:
            yield conn
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                conn.rollback()
            logger.error("TaskStore %s failed: %s", op, e)
            raise StorageError(f"{op} failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._write_lock, self._connect("ensure_schema") as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_order INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL DEFAULT 0
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> bool:
                if name in cols:
                    return False
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)
                return True

            add_col("title", "TEXT NOT NULL DEFAULT ''")
            add_col("is_completed", "INTEGER NOT NULL DEFAULT 0")
            if add_col("created_order", "INTEGER NOT NULL DEFAULT 0"):
                # Old rows keep their insertion order.
                cur.execute("UPDATE tasks SET created_order = id")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created_order ON tasks(created_order)")

            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"] or ""),
            is_completed=bool(row["is_completed"]),
            created_order=int(row["created_order"] or 0),
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _fetch(conn: sqlite3.Connection, task_id: int) -> sqlite3.Row | None:
        cur = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),))
        return cur.fetchone()

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._connect("count_tasks") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def get(self, task_id: int) -> Task | None:
        with self._connect("get") as conn:
            row = self._fetch(conn, task_id)
            return self._row_to_task(row) if row else None

    def list_all(self) -> list[Task]:
        """All tasks in insertion order."""
        with self._connect("list_all") as conn:
            cur = conn.execute("SELECT * FROM tasks ORDER BY created_order ASC, id ASC")
            return [self._row_to_task(r) for r in cur.fetchall()]

    def insert(self, title: str) -> Task:
        clean_title = normalize_title(title)
        now = time.time()

        with self._write_lock:
            with self._connect("insert") as conn:
                cur = conn.cursor()
                cur.execute("SELECT COALESCE(MAX(created_order), 0) FROM tasks")
                (max_order,) = cur.fetchone()
                order = int(max_order) + 1
                cur.execute(
                    """
                    INSERT INTO tasks(title, is_completed, created_order, created_at)
                    VALUES (?, 0, ?, ?)
                    """,
                    (clean_title, order, now),
                )
                rowid = cur.lastrowid
                if rowid is None:
                    conn.rollback()
                    raise StorageError("SQLite did not return lastrowid for tasks insert")
                conn.commit()

            task = Task(
                id=int(rowid),
                title=clean_title,
                is_completed=False,
                created_order=order,
                created_at=now,
            )
            logger.debug("Task inserted id=%s order=%s", task.id, order)

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

        with self._write_lock:
            with self._connect("update") as conn:
                row = self._fetch(conn, task_id)
                if row is None:
                    raise NotFoundError(task_id)
                current = self._row_to_task(row)

                fields: list[str] = []
                params: list[object] = []

                if clean_title is not None:
                    fields.append("title = ?")
                    params.append(clean_title)

                if is_completed is not None:
                    fields.append("is_completed = ?")
                    params.append(1 if is_completed else 0)

                if not fields:
                    return current

                params.append(int(task_id))
                conn.execute(f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?", params)
                conn.commit()

            updated = Task(
                id=current.id,
                title=current.title if clean_title is None else clean_title,
                is_completed=current.is_completed if is_completed is None else bool(is_completed),
                created_order=current.created_order,
                created_at=current.created_at,
            )
            logger.debug("Task updated id=%s fields=%s", task_id, ",".join(f.split()[0] for f in fields))

        self._listeners.notify()
        return updated

    def delete(self, task_id: int) -> None:
        with self._write_lock:
            with self._connect("delete") as conn:
                cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
                conn.commit()
                if cur.rowcount != 1:
                    raise NotFoundError(task_id)
            logger.debug("Task deleted id=%s", task_id)

        self._listeners.notify()
