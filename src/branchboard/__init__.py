"""
branchboard - task board reconciled across git branches.

Reads task records from every recently active branch, reconciles them into
one active view, and derives manual ordering, dependency sequences and new
ids from that view.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from branchboard.core.config.models import BoardConfig
from branchboard.core.tasks.models import Sequence, SequenceResult, Task, TaskSource

__all__ = ["BoardConfig", "Task", "TaskSource", "Sequence", "SequenceResult", "__version__"]
