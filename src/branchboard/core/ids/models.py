"""
ID models for task identification.

Ids have the form {PREFIX}-{n} for top-level records and
{parent_id}.{n} for subtasks:
    - Task:    TASK-12
    - Subtask: TASK-12.3
    - Draft:   DRAFT-4

Prefixes are configured lower-case and rendered upper-case. Comparison
is always case-insensitive and numeric per segment, so "task-045" and
"TASK-45" name the same record.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class EntityType(str, Enum):
    """Kinds of record that receive generated ids."""

    TASK = "task"
    DRAFT = "draft"
    DOCUMENT = "document"
    DECISION = "decision"


class TaskIdentifier(BaseModel):
    """
    Parsed id: {prefix}-{body} → TASK-12.3

    The body keeps its digits as written (zero padding included); the
    numeric segments are what identity and ordering use.
    """

    prefix: str
    body: str

    model_config = ConfigDict(frozen=True)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Validate prefix is a letter followed by letters, digits or underscores."""
        if not re.match(r"^[A-Za-z][A-Za-z0-9_]*$", v):
            raise ValueError("Id prefix must start with a letter")
        return v.lower()

    @field_validator("body")
    @classmethod
    def validate_body(cls, v: str) -> str:
        """Validate body is dot-separated digit groups."""
        if not re.match(r"^\d+(?:\.\d+)*$", v):
            raise ValueError("Id body must be digits separated by dots")
        return v

    @property
    def segments(self) -> tuple[int, ...]:
        """Numeric segments: TASK-12.3 → (12, 3)."""
        return tuple(int(part) for part in self.body.split("."))

    @property
    def is_subtask(self) -> bool:
        return len(self.segments) > 1

    @property
    def parent(self) -> "TaskIdentifier | None":
        """The id one level up, None for top-level ids."""
        if not self.is_subtask:
            return None
        return TaskIdentifier(prefix=self.prefix, body=self.body.rsplit(".", 1)[0])

    def __str__(self) -> str:
        """Format as {PREFIX}-{body}"""
        return f"{self.prefix.upper()}-{self.body}"
