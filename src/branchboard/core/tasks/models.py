"""
Task data models.

A Task is one record of the active view. Tasks reference each other only
by id string (dependencies, parent_task_id), never by object, so the
view can be held in an id-keyed map and graph walks stay bounded.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskSource(str, Enum):
    """Where the winning copy of a task came from."""

    LOCAL = "local"
    COMPLETED = "completed"
    BRANCH = "branch"
    REMOTE = "remote"


class Task(BaseModel):
    """
    A work item in the active view.

    Example:
        >>> task = Task(id="TASK-5", status="In Progress", dependencies=["TASK-2"])
        >>> task.key
        'TASK-5'
        >>> task.is_local_editable
        True
    """

    id: str = Field(..., min_length=1)
    title: str = ""
    status: str = ""
    ordinal: float | None = None
    dependencies: list[str] = Field(default_factory=list)
    parent_task_id: str | None = None
    milestone: str | None = None
    labels: list[str] = Field(default_factory=list)
    body: str = ""

    # Metadata filled in by the store, the scanner or the reconciler
    last_modified: datetime | None = None
    source: TaskSource | None = None
    branch: str | None = None

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task id must not be blank")
        return v

    @field_validator("milestone")
    @classmethod
    def validate_milestone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def key(self) -> str:
        """Case-insensitive identity of the task."""
        return self.id.upper()

    @property
    def dependency_keys(self) -> list[str]:
        """Dependency ids as keys, de-duplicated, in declaration order."""
        seen: dict[str, None] = {}
        for dep in self.dependencies:
            dep = dep.strip()
            if dep:
                seen.setdefault(dep.upper(), None)
        return list(seen)

    @property
    def is_local_editable(self) -> bool:
        """Tasks whose content lives on another branch are informational only."""
        return self.branch is None

    @property
    def bucket(self) -> tuple[str, str]:
        """The (status, milestone) bucket that scopes this task's ordinal."""
        return (self.status, self.milestone or "")


class Sequence(BaseModel):
    """One dependency level: every member's in-scope dependencies lie in earlier levels."""

    index: int = Field(..., ge=1)
    tasks: list[Task] = Field(default_factory=list)


class SequenceResult(BaseModel):
    """Leveled tasks plus the ones that could not be leveled."""

    sequences: list[Sequence] = Field(default_factory=list)
    unsequenced: list[Task] = Field(default_factory=list)

    def level_of(self, task_id: str) -> int | None:
        """1-based level of a task, None when it is unsequenced or absent."""
        key = task_id.upper()
        for sequence in self.sequences:
            if any(task.key == key for task in sequence.tasks):
                return sequence.index
        return None
