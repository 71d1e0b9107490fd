"""
Active view cache.

Holds the last reconciled view. A full reconciliation replaces the whole
snapshot at once; a caller that just wrote one task may patch it in place
with upsert() instead of rescanning every branch.
"""

from __future__ import annotations

import threading
from types import TracebackType

from branchboard.core.ids.parser import id_sort_key
from branchboard.core.tasks.models import Task


class ActiveViewCache:
    """
    Thread-safe snapshot of the active view, owned by a Board.

    Example:
        >>> with ActiveViewCache() as cache:
        ...     cache.replace(view)
        ...     cache.get("task-3").status
        'In Progress'
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: dict[str, Task] | None = None
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Active view cache is closed")

    def replace(self, tasks: list[Task]) -> None:
        """Swap in a freshly reconciled view."""
        snapshot = {task.key: task for task in tasks}
        with self._lock:
            self._check_open()
            self._tasks = snapshot

    def upsert(self, task: Task) -> None:
        """Insert or replace one task."""
        with self._lock:
            self._check_open()
            tasks = dict(self._tasks or {})
            tasks[task.key] = task
            self._tasks = tasks

    def remove(self, task_id: str) -> bool:
        """Drop one task; returns False when it was not cached."""
        with self._lock:
            self._check_open()
            if not self._tasks or task_id.upper() not in self._tasks:
                return False
            tasks = dict(self._tasks)
            del tasks[task_id.upper()]
            self._tasks = tasks
            return True

    def get(self, task_id: str) -> Task | None:
        with self._lock:
            if self._tasks is None:
                return None
            return self._tasks.get(task_id.upper())

    def tasks(self) -> list[Task] | None:
        """Cached view sorted by id, None before the first replace."""
        with self._lock:
            snapshot = self._tasks
        if snapshot is None:
            return None
        return sorted(snapshot.values(), key=lambda task: id_sort_key(task.id))

    def close(self) -> None:
        with self._lock:
            self._tasks = None
            self._closed = True

    def __enter__(self) -> ActiveViewCache:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
