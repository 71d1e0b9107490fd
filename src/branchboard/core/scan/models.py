"""
Branch scan data models.

An entry is one observation of a task record on one branch: which
subtree it sits in and when it was last touched. Entries carry no
content; full copies are read separately for the ids that need them.
"""

from __future__ import annotations

import threading
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from branchboard.core.errors import ScanCancelledError
from branchboard.core.tasks.models import Task, TaskSource

# Branch label used for working-tree observations
LOCAL_BRANCH_LABEL = "local"


class EntryKind(str, Enum):
    """Subtree a record was observed in."""

    TASK = "task"
    COMPLETED = "completed"
    DRAFT = "draft"
    ARCHIVED = "archived"


class BranchTaskStateEntry(BaseModel):
    """One observation of a task id on one branch."""

    id: str = Field(..., description="Canonical task id")
    kind: EntryKind = Field(..., description="Subtree the record was found in")
    branch: str = Field(..., description="Branch label, 'local' for the working tree")
    last_modified: datetime = Field(..., description="Newest commit time touching the record")
    source: TaskSource = Field(..., description="local, completed, branch or remote")
    path: str = Field("", description="Record path relative to the repository root")

    @property
    def key(self) -> str:
        return self.id.upper()


class ScanResult(BaseModel):
    """Everything one scan observed."""

    entries: list[BranchTaskStateEntry] = Field(default_factory=list)
    copies: list[Task] = Field(
        default_factory=list,
        description="Hydrated branch copies, newest per id and per pass",
    )


class CancellationToken:
    """
    Thread-safe cancellation flag shared by the scan passes.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.raise_if_cancelled()
        Traceback (most recent call last):
        ...
        branchboard.core.errors.ScanCancelledError: Branch scan cancelled
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError()
