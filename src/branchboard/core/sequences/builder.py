"""
Dependency-leveled execution sequences.

Sequence 1 holds the active tasks with no active dependencies; sequence N
holds the tasks whose deepest active dependency sits in sequence N-1.
Dependencies on ids outside the active set (finished, archived or missing)
are ignored for leveling.

Tasks live in an id-keyed map and refer to each other only by id, so a
dependency cycle cannot trap the walk: leveling is Kahn's algorithm in
O(V+E), and whatever it cannot reach (cycles and everything downstream of
them) is reported as unsequenced instead of failing.

A task with no dependencies, no active dependents and no ordinal has no
position in the graph at all and is reported as unsequenced too.
"""

from __future__ import annotations

import logging
from collections import deque

from branchboard.core.errors import ReadOnlyTaskError, SequencePlanError, TaskNotFoundError
from branchboard.core.ids.parser import id_sort_key, normalize_id
from branchboard.core.ordering.ordinals import DEFAULT_ORDINAL_STEP, calculate_new_ordinal
from branchboard.core.tasks.models import Sequence, SequenceResult, Task
from branchboard.core.tasks.status import is_terminal_status

logger = logging.getLogger(__name__)


def _display_key(task: Task) -> tuple[bool, float, tuple[str, tuple[int, ...], str]]:
    return (task.ordinal is None, task.ordinal or 0.0, id_sort_key(task.id))


def active_sequence_tasks(tasks: list[Task], terminal_status: str = "Done") -> list[Task]:
    """Tasks that take part in sequencing (everything not finished)."""
    return [task for task in tasks if not is_terminal_status(task.status, terminal_status)]


class _Graph:
    """In-scope dependency edges over an id-keyed arena."""

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks: dict[str, Task] = {}
        for task in tasks:
            self.tasks.setdefault(task.key, task)

        self.dependencies: dict[str, list[str]] = {}
        self.dependents: dict[str, list[str]] = {key: [] for key in self.tasks}
        for key, task in self.tasks.items():
            deps = [dep for dep in task.dependency_keys if dep in self.tasks]
            self.dependencies[key] = deps
            for dep in deps:
                self.dependents[dep].append(key)

    def levels(self) -> dict[str, int]:
        """Level of every task Kahn's algorithm can reach."""
        remaining = {key: len(deps) for key, deps in self.dependencies.items()}
        level = {key: 1 for key, count in remaining.items() if count == 0}
        queue = deque(sorted(level))

        while queue:
            key = queue.popleft()
            for dependent in self.dependents[key]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    level[dependent] = 1 + max(level[dep] for dep in self.dependencies[dependent])
                    queue.append(dependent)
        return level

    def descendants(self, key: str) -> set[str]:
        """Every task that depends on ``key``, directly or transitively."""
        seen: set[str] = set()
        queue = deque(self.dependents.get(key, []))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self.dependents.get(current, []))
        return seen

    def is_isolated(self, key: str) -> bool:
        task = self.tasks[key]
        return not task.dependency_keys and not self.dependents[key] and task.ordinal is None


def compute_sequences(tasks: list[Task]) -> SequenceResult:
    """
    Level active tasks by their dependencies.

    Args:
        tasks: The active (non-terminal) tasks

    Returns:
        SequenceResult with 1-based sequences and the unsequenced tasks,
        each sorted by ordinal (unset last) then id

    Example:
        >>> result = compute_sequences([a, b_after_a, c_after_b])
        >>> [[t.id for t in s.tasks] for s in result.sequences]
        [['TASK-1'], ['TASK-2'], ['TASK-3']]
    """
    graph = _Graph(tasks)
    level = graph.levels()

    buckets: dict[int, list[Task]] = {}
    unsequenced: list[Task] = []
    for key, task in graph.tasks.items():
        if key not in level or graph.is_isolated(key):
            unsequenced.append(task)
        else:
            buckets.setdefault(level[key], []).append(task)

    if len(level) < len(graph.tasks):
        logger.debug("%d tasks are in or behind a dependency cycle", len(graph.tasks) - len(level))

    sequences = [
        Sequence(index=index, tasks=sorted(buckets[index], key=_display_key))
        for index in sorted(buckets)
    ]
    return SequenceResult(sequences=sequences, unsequenced=sorted(unsequenced, key=_display_key))


def _find_task(all_tasks: list[Task], task_id: str) -> Task:
    key = normalize_id(task_id).upper()
    for task in all_tasks:
        if task.key == key:
            return task
    raise TaskNotFoundError(task_id)


def plan_move_to_sequence(
    all_tasks: list[Task],
    sequences: list[Sequence],
    task_id: str,
    target_index: int,
    terminal_status: str = "Done",
    default_step: float = DEFAULT_ORDINAL_STEP,
) -> list[Task]:
    """
    Plan the dependency edits that place a task in a given sequence.

    Only the moved task is edited. Its dependencies on tasks at or after
    the target level (or unsequenced ones) are dropped, and if nothing it
    still depends on sits just before the target, one task from the
    previous sequence is added as an anchor. Anchors never come from the
    task's own dependents.

    Args:
        all_tasks: Every task in the view, finished ones included
        sequences: Current sequences of the active tasks
        task_id: Task to move
        target_index: 1-based destination sequence
        terminal_status: Status that removes a task from sequencing
        default_step: Ordinal spacing for an isolated task moved to sequence 1

    Returns:
        The updated task, or an empty list when nothing has to change

    Raises:
        SequencePlanError: If the target index is below 1 or unreachable
        TaskNotFoundError: If the task does not exist
        ReadOnlyTaskError: If the task lives on another branch
    """
    if target_index < 1:
        raise SequencePlanError("Target sequence index must be >= 1")

    task = _find_task(all_tasks, task_id)
    if task.branch:
        raise ReadOnlyTaskError(task.id, task.branch)

    active = active_sequence_tasks(all_tasks, terminal_status)
    graph = _Graph(active)
    if task.key not in graph.tasks:
        raise SequencePlanError(f"Task {task.id} is {task.status} and is not sequenced")

    current_level = {t.key: s.index for s in sequences for t in s.tasks}
    descendants = graph.descendants(task.key)

    kept: list[str] = []
    kept_keys: set[str] = set()
    for dep in task.dependencies:
        key = normalize_id(dep).upper()
        if key in kept_keys or key == task.key:
            continue
        if key not in graph.tasks:
            kept.append(dep)
            kept_keys.add(key)
            continue
        dep_level = current_level.get(key)
        if dep_level is not None and dep_level < target_index and key not in descendants:
            kept.append(dep)
            kept_keys.add(key)

    if target_index > 1 and not any(current_level.get(k) == target_index - 1 for k in kept_keys):
        previous = next((s for s in sequences if s.index == target_index - 1), None)
        anchors = [
            t
            for t in (previous.tasks if previous else [])
            if t.key != task.key and t.key not in descendants
        ]
        if not anchors:
            raise SequencePlanError(
                f"Sequence {target_index} is unreachable for {task.id} without changing other tasks"
            )
        kept.append(anchors[0].id)
        kept_keys.add(anchors[0].key)

    update: dict = {"dependencies": kept}
    if target_index == 1 and not kept and not graph.dependents[task.key] and task.ordinal is None:
        bucket_ordinals = [
            t.ordinal
            for t in active
            if t.bucket == task.bucket and t.ordinal is not None and t.key != task.key
        ]
        previous_ordinal = max(bucket_ordinals) if bucket_ordinals else None
        update["ordinal"] = calculate_new_ordinal(previous_ordinal, None, default_step).ordinal

    updated = task.model_copy(update=update)
    after = compute_sequences([updated if t.key == task.key else t for t in active])
    if after.level_of(task.id) != target_index:
        raise SequencePlanError(
            f"Sequence {target_index} is unreachable for {task.id} without changing other tasks"
        )

    if updated.dependencies == task.dependencies and updated.ordinal == task.ordinal:
        return []
    return [updated]


def plan_move_to_unsequenced(
    all_tasks: list[Task],
    task_id: str,
    terminal_status: str = "Done",
) -> list[Task]:
    """
    Plan the edits that take a task out of every sequence.

    The task loses its dependencies and its ordinal. A task that other
    active tasks depend on cannot be evicted without editing them.

    Raises:
        TaskNotFoundError: If the task does not exist
        ReadOnlyTaskError: If the task lives on another branch
        SequencePlanError: If active tasks depend on it
    """
    task = _find_task(all_tasks, task_id)
    if task.branch:
        raise ReadOnlyTaskError(task.id, task.branch)

    dependents = [
        t.id
        for t in active_sequence_tasks(all_tasks, terminal_status)
        if t.key != task.key and task.key in t.dependency_keys
    ]
    if dependents:
        raise SequencePlanError(
            f"Cannot move {task.id} to unsequenced: {', '.join(sorted(dependents, key=id_sort_key))} "
            "depend on it"
        )

    if not task.dependencies and task.ordinal is None:
        return []
    return [task.model_copy(update={"dependencies": [], "ordinal": None})]
