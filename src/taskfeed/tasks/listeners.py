# src/taskfeed/tasks/listeners.py

from __future__ import annotations

import logging
import threading

from ..core.ports import CommitListener

logger = logging.getLogger(__name__)


class CommitListeners:
    """
    Registry of commit listeners owned by a store.

    The store calls notify() after a successful commit. A failing listener is
    logged and never affects the mutation result or the other listeners.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[CommitListener] = []

    def add(self, listener: CommitListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove(self, listener: CommitListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def notify(self) -> None:
        with self._lock:
            snapshot = list(self._listeners)

        for listener in snapshot:
            try:
                listener()
            except Exception:
                logger.exception("Commit listener %r failed", listener)
