"""
ID system for task identification.

Public API:
    Models:
        - EntityType: task, draft, document, decision
        - TaskIdentifier: Parsed {PREFIX}-{n}[.{m}] id

    Parser functions:
        - parse_id, normalize_id, ids_equal, id_sort_key
        - build_id_pattern, extract_id_from_filename

    Generator functions:
        - next_task_id: Next top-level id for a prefix
        - next_subtask_id: Next subtask id for a parent
        - IdAllocator: Entity-aware allocator backed by the reconciled view

Example:
    >>> from branchboard.core.ids import next_task_id, parse_id
    >>> next_task_id(["TASK-1", "TASK-3"], "task")
    'TASK-4'
    >>> parse_id("task-4.2").segments
    (4, 2)
"""

from branchboard.core.ids.generator import IdAllocator, next_subtask_id, next_task_id
from branchboard.core.ids.models import EntityType, TaskIdentifier
from branchboard.core.ids.parser import (
    build_id_pattern,
    extract_id_from_filename,
    id_sort_key,
    ids_equal,
    normalize_id,
    parse_id,
)

__all__ = [
    # Models
    "EntityType",
    "TaskIdentifier",
    # Parser functions
    "parse_id",
    "normalize_id",
    "ids_equal",
    "id_sort_key",
    "build_id_pattern",
    "extract_id_from_filename",
    # Generator functions
    "next_task_id",
    "next_subtask_id",
    "IdAllocator",
]
