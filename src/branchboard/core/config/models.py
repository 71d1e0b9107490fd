"""
Configuration data models for branchboard.

These models define the structure of .branchboard.json and
~/.config/branchboard/config.json files, with validation and type safety
via Pydantic. Keys may be written in camelCase or snake_case.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from branchboard.core.tasks.status import status_rank

DEFAULT_STATUSES = ["To Do", "In Progress", "Done"]


class PrefixConfig(BaseModel):
    """
    Id prefixes per entity type.

    Ids are rendered with the upper-cased prefix (task → TASK-12).
    """
    task: str = Field(default="task", min_length=1)
    draft: str = Field(default="draft", min_length=1)
    document: str = Field(default="doc", min_length=1)
    decision: str = Field(default="decision", min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("task", "draft", "document", "decision")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefixes are stored lower-case without a trailing dash."""
        v = v.strip().rstrip("-").lower()
        if not v:
            raise ValueError("Prefix must not be empty")
        return v


class BoardConfig(BaseModel):
    """
    Top-level branchboard configuration.

    Example:
        >>> config = BoardConfig(statuses=["Todo", "Doing", "Done"])
        >>> config.status_rank("Doing")
        1
    """
    statuses: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STATUSES),
        description="Ordered status list; later entries are further along",
    )
    check_active_branches: bool = Field(
        default=True,
        description="Scan other branches to build the active view",
    )
    remote_operations: bool = Field(
        default=True,
        description="Allow fetching and scanning remote-tracking branches",
    )
    active_branch_days: int = Field(
        default=30,
        ge=0,
        description="Only branches with a commit in this many days are scanned",
    )
    task_resolution_strategy: Literal["most_progressed", "most_recent"] = Field(
        default="most_progressed",
        description="How to choose between divergent copies of the same task",
    )
    zero_padded_ids: Optional[int] = Field(
        default=None,
        ge=0,
        description="Zero-pad numeric id suffixes to this width",
    )
    prefixes: PrefixConfig = Field(default_factory=PrefixConfig)
    backlog_dir: str = Field(
        default="backlog",
        description="Directory holding task records, relative to the repo root",
    )
    remote_name: str = Field(default="origin")
    default_ordinal_step: float = Field(default=1000, gt=0)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )

    @field_validator("statuses")
    @classmethod
    def validate_statuses(cls, v: list[str]) -> list[str]:
        """Reject blank and duplicate statuses."""
        cleaned = [s.strip() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("Statuses must not be blank")
        lowered = [s.lower() for s in cleaned]
        if len(set(lowered)) != len(lowered):
            raise ValueError("Statuses must be unique")
        return cleaned

    @property
    def terminal_status(self) -> str:
        """The last configured status (e.g. "Done")."""
        return self.statuses[-1] if self.statuses else DEFAULT_STATUSES[-1]

    def status_rank(self, status: str | None) -> int:
        """Index of status in the ordered list, -1 when unranked."""
        return status_rank(status, self.statuses)
