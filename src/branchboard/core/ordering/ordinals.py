"""
Fractional ordinal allocation.

An ordinal is a manual sort key scoped to one (status, milestone) bucket.
Moving a task writes only that task: it takes the midpoint between its new
neighbours. When the neighbours are too close for a midpoint to be told
apart, the whole bucket is rewritten with fresh, evenly spaced ordinals
(a rebalance).

Example:
    >>> calculate_new_ordinal(previous=10, next=20, default_step=10)
    OrdinalPlacement(ordinal=15.0, requires_rebalance=False)
    >>> calculate_new_ordinal(previous=10, next=10.0000000001).requires_rebalance
    True
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

from branchboard.core.errors import (
    DuplicateTaskIdError,
    ReadOnlyTaskError,
    TaskNotFoundError,
    TaskValidationError,
)
from branchboard.core.ids.parser import normalize_id
from branchboard.core.tasks.models import Task

logger = logging.getLogger(__name__)

DEFAULT_ORDINAL_STEP = 1000

# Two ordinals closer than this are treated as equal
ORDINAL_EPSILON = 1e-6


class OrdinalPlacement(NamedTuple):
    ordinal: float
    requires_rebalance: bool


class ReorderPlan(NamedTuple):
    """Result of planning a move within a bucket."""

    updated_task: Task
    changed_tasks: list[Task]


class UnsetType:
    def __repr__(self) -> str:
        return "UNSET"


# Marks "leave the milestone as it is" in plan_reorder
UNSET = UnsetType()


def calculate_new_ordinal(
    previous: float | None = None,
    next: float | None = None,
    default_step: float = DEFAULT_ORDINAL_STEP,
) -> OrdinalPlacement:
    """
    Ordinal for a task placed between two neighbours.

    Args:
        previous: Ordinal of the task displayed just before, if any
        next: Ordinal of the task displayed just after, if any
        default_step: Spacing used when only one side is bounded

    Returns:
        The new ordinal, and whether the bucket must be rebalanced because
        the value cannot be told apart from a neighbour
    """
    if previous is not None and next is not None:
        if next - previous <= ORDINAL_EPSILON:
            return OrdinalPlacement(float(previous + default_step), True)
        return OrdinalPlacement((previous + next) / 2, False)

    if previous is not None:
        return OrdinalPlacement(float(previous + default_step), False)

    if next is not None:
        candidate = next - default_step
        if candidate <= 0:
            candidate = next / 2
        requires_rebalance = candidate <= ORDINAL_EPSILON or abs(next - candidate) <= ORDINAL_EPSILON
        return OrdinalPlacement(float(candidate), requires_rebalance)

    return OrdinalPlacement(float(default_step), False)


def resolve_ordinal_conflicts(
    tasks: list[Task],
    default_step: float = DEFAULT_ORDINAL_STEP,
    start_ordinal: float | None = None,
    force_sequential: bool = False,
) -> list[Task]:
    """
    Repair ordinals so they strictly increase in display order.

    A task keeps its ordinal when it is set, above the previous task's
    (possibly reassigned) ordinal and below the next task's existing one.
    Any other task gets previous + step, so a duplicate cascades a
    reassignment from its position onward.

    Args:
        tasks: Tasks in display order
        default_step: Spacing between reassigned ordinals
        start_ordinal: Ordinal for a reassigned head task (default: step)
        force_sequential: Reassign every task start, start+step, ...

    Returns:
        Updated copies of the tasks whose ordinal changed

    Example:
        >>> [t.ordinal for t in resolve_ordinal_conflicts([a5, b5], default_step=10)]
        [10.0, 20.0]
    """
    start = float(start_ordinal if start_ordinal is not None else default_step)
    updates: list[Task] = []
    last: float | None = None

    for index, task in enumerate(tasks):
        if force_sequential:
            assigned = start if last is None else last + default_step
        else:
            following = tasks[index + 1].ordinal if index + 1 < len(tasks) else None
            if _keeps_ordinal(task.ordinal, last, following):
                last = task.ordinal
                continue
            assigned = start if last is None else last + default_step

        if task.ordinal != assigned:
            updates.append(task.model_copy(update={"ordinal": assigned}))
        last = assigned

    return updates


def _keeps_ordinal(ordinal: float | None, last: float | None, following: float | None) -> bool:
    if ordinal is None or not math.isfinite(ordinal):
        return False
    if last is not None and ordinal - last <= ORDINAL_EPSILON:
        return False
    if following is not None and following - ordinal <= ORDINAL_EPSILON:
        return False
    return True


def plan_reorder(
    tasks_by_id: dict[str, Task],
    task_id: str,
    target_status: str,
    ordered_ids: list[str],
    target_milestone: str | None | UnsetType = UNSET,
    default_step: float = DEFAULT_ORDINAL_STEP,
) -> ReorderPlan:
    """
    Plan moving a task to a position within a (status, milestone) bucket.

    Args:
        tasks_by_id: Active view keyed by id (any case)
        task_id: Task being moved
        target_status: Status of the destination bucket
        ordered_ids: Desired display order of the destination bucket,
            including the moved task; unknown ids are ignored
        target_milestone: New milestone, None to clear, UNSET to keep
        default_step: Ordinal spacing

    Returns:
        ReorderPlan with the moved task and every task whose ordinal,
        status or milestone changed

    Raises:
        TaskValidationError: If ordered_ids is empty or omits the task
        DuplicateTaskIdError: If ordered_ids names a task twice
        TaskNotFoundError: If the moved task is not in the view
        ReadOnlyTaskError: If the moved task lives on another branch
    """
    moved_key = normalize_id(task_id).upper()
    ordered_keys = [normalize_id(i).upper() for i in ordered_ids if i and i.strip()]
    target_status = target_status.strip()

    if not target_status:
        raise TaskValidationError("Target status is required")
    if not ordered_keys:
        raise TaskValidationError("Ordered task ids must include at least one task")
    if moved_key not in ordered_keys:
        raise TaskValidationError("Ordered task ids must include the task being moved")

    seen: set[str] = set()
    for key in ordered_keys:
        if key in seen:
            raise DuplicateTaskIdError(key)
        seen.add(key)

    view = {key.upper(): task for key, task in tasks_by_id.items()}
    moved = view.get(moved_key)
    if moved is None:
        raise TaskNotFoundError(task_id, "while reordering")
    if moved.branch:
        raise ReadOnlyTaskError(moved.id, moved.branch)

    in_order = [view[key] for key in ordered_keys if key in view]
    position = next(i for i, task in enumerate(in_order) if task.key == moved_key)
    previous = in_order[position - 1].ordinal if position > 0 else None
    following = in_order[position + 1].ordinal if position + 1 < len(in_order) else None
    placement = calculate_new_ordinal(previous, following, default_step)

    update: dict = {"status": target_status, "ordinal": placement.ordinal}
    if isinstance(target_milestone, str):
        update["milestone"] = target_milestone.strip() or None
    elif target_milestone is None:
        update["milestone"] = None
    updated_moved = moved.model_copy(update=update)
    in_order[position] = updated_moved

    updates = {updated_moved.key: updated_moved}
    for task in resolve_ordinal_conflicts(
        in_order,
        default_step=default_step,
        start_ordinal=default_step,
        force_sequential=placement.requires_rebalance,
    ):
        updates[task.key] = task

    changed = [task for task in updates.values() if _differs(view.get(task.key), task)]
    changed.sort(key=lambda task: task.ordinal if task.ordinal is not None else 0)

    if placement.requires_rebalance:
        logger.info("Rebalanced %d tasks in %s", len(changed), target_status)
    return ReorderPlan(updated_task=updates[moved_key], changed_tasks=changed)


def _differs(original: Task | None, task: Task) -> bool:
    if original is None:
        return True
    return (
        original.ordinal != task.ordinal
        or original.status != task.status
        or (original.milestone or "") != (task.milestone or "")
    )
