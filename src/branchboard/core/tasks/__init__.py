"""
Task models and status helpers.

Storage (TaskStore) and the record codec live in their own modules and
are imported from there.
"""

from .models import Sequence, SequenceResult, Task, TaskSource
from .status import canonical_status, is_terminal_status, status_rank

__all__ = [
    "Task",
    "TaskSource",
    "Sequence",
    "SequenceResult",
    "status_rank",
    "canonical_status",
    "is_terminal_status",
]
