"""
Manual ordering within a (status, milestone) bucket.

Public API:
    - calculate_new_ordinal: Ordinal between two neighbours
    - resolve_ordinal_conflicts: Restore strictly increasing ordinals
    - plan_reorder: Plan a drag-and-drop move
"""

from branchboard.core.ordering.ordinals import (
    DEFAULT_ORDINAL_STEP,
    ORDINAL_EPSILON,
    UNSET,
    UnsetType,
    OrdinalPlacement,
    ReorderPlan,
    calculate_new_ordinal,
    plan_reorder,
    resolve_ordinal_conflicts,
)

__all__ = [
    "DEFAULT_ORDINAL_STEP",
    "ORDINAL_EPSILON",
    "UNSET",
    "UnsetType",
    "OrdinalPlacement",
    "ReorderPlan",
    "calculate_new_ordinal",
    "plan_reorder",
    "resolve_ordinal_conflicts",
]
