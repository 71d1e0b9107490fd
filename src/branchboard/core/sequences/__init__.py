"""
Dependency-leveled sequences of active tasks.

Public API:
    - active_sequence_tasks: Drop finished tasks
    - compute_sequences: Level tasks by dependency depth
    - plan_move_to_sequence / plan_move_to_unsequenced: edit plans for moves
"""

from branchboard.core.sequences.builder import (
    active_sequence_tasks,
    compute_sequences,
    plan_move_to_sequence,
    plan_move_to_unsequenced,
)

__all__ = [
    "active_sequence_tasks",
    "compute_sequences",
    "plan_move_to_sequence",
    "plan_move_to_unsequenced",
]
