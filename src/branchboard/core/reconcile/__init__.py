"""
Reconciliation of task state across branches.

Public API:
    - StateReconciler: Builds the active view from local records and a scan
    - ActiveViewCache: Owned snapshot of the last reconciled view
    - local_entries, active_and_completed_ids: helpers shared with id allocation
"""

from branchboard.core.reconcile.cache import ActiveViewCache
from branchboard.core.reconcile.reconciler import (
    ResolutionStrategy,
    StateReconciler,
    active_and_completed_ids,
    local_entries,
)

__all__ = [
    "ActiveViewCache",
    "ResolutionStrategy",
    "StateReconciler",
    "active_and_completed_ids",
    "local_entries",
]
