"""
State reconciler.

Merges the working tree and every scanned branch into one active view:

1. Latest state: per id, the newest observation decides where the task
   lives now (active, completed, draft or archived).
2. Content merge: per id, one full copy is chosen among the candidates
   (by status progress or by recency, depending on the strategy).
3. Visibility: ids whose latest state is not active (or completed, when
   requested) are dropped, even if an older active copy still exists.

Every tie-break is a total order, so the same inputs always produce the
same view regardless of their order. Nothing here raises for missing or
ambiguous data; unranked statuses simply rank lowest.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Literal

from branchboard.core.ids.parser import id_sort_key
from branchboard.core.scan.models import (
    LOCAL_BRANCH_LABEL,
    BranchTaskStateEntry,
    EntryKind,
    ScanResult,
)
from branchboard.core.tasks.models import Task, TaskSource
from branchboard.core.tasks.status import status_rank

logger = logging.getLogger(__name__)

ResolutionStrategy = Literal["most_progressed", "most_recent"]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Lower wins: the working tree, then other local branches, then remotes
_ORIGIN_RANK = {
    TaskSource.LOCAL: 0,
    TaskSource.COMPLETED: 1,
    TaskSource.BRANCH: 2,
    TaskSource.REMOTE: 3,
}

# Kinds compared only when origin and branch are identical
_KIND_ORDER = {
    EntryKind.TASK: 0,
    EntryKind.COMPLETED: 1,
    EntryKind.DRAFT: 2,
    EntryKind.ARCHIVED: 3,
}


def _timestamp(value: datetime | None) -> datetime:
    if value is None:
        return EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _origin_key(source: TaskSource | None, branch: str | None) -> tuple[int, str]:
    rank = _ORIGIN_RANK.get(source, 0) if source is not None else 0
    return (rank, branch or "")


def _entry_beats(candidate: BranchTaskStateEntry, current: BranchTaskStateEntry) -> bool:
    candidate_time = _timestamp(candidate.last_modified)
    current_time = _timestamp(current.last_modified)
    if candidate_time != current_time:
        return candidate_time > current_time
    left = (*_origin_key(candidate.source, candidate.branch), _KIND_ORDER[candidate.kind])
    right = (*_origin_key(current.source, current.branch), _KIND_ORDER[current.kind])
    return left < right


def local_entries(
    local_tasks: Iterable[Task],
    completed_tasks: Iterable[Task],
    archived_tasks: Iterable[Task] = (),
) -> list[BranchTaskStateEntry]:
    """State entries for working-tree records (active, completed and archived)."""
    entries: list[BranchTaskStateEntry] = []
    for task in local_tasks:
        entries.append(
            BranchTaskStateEntry(
                id=task.id,
                kind=EntryKind.TASK,
                branch=LOCAL_BRANCH_LABEL,
                last_modified=_timestamp(task.last_modified),
                source=TaskSource.LOCAL,
            )
        )
    for task in completed_tasks:
        entries.append(
            BranchTaskStateEntry(
                id=task.id,
                kind=EntryKind.COMPLETED,
                branch=LOCAL_BRANCH_LABEL,
                last_modified=_timestamp(task.last_modified),
                source=TaskSource.COMPLETED,
            )
        )
    for task in archived_tasks:
        entries.append(
            BranchTaskStateEntry(
                id=task.id,
                kind=EntryKind.ARCHIVED,
                branch=LOCAL_BRANCH_LABEL,
                last_modified=_timestamp(task.last_modified),
                source=TaskSource.LOCAL,
            )
        )
    return entries


def active_and_completed_ids(latest_states: dict[str, BranchTaskStateEntry]) -> list[str]:
    """
    Ids whose latest state is active or completed.

    Archived and draft ids are excluded, so an archived id can be reused.
    """
    ids = [
        entry.id
        for entry in latest_states.values()
        if entry.kind in (EntryKind.TASK, EntryKind.COMPLETED)
    ]
    return sorted(ids, key=id_sort_key)


class StateReconciler:
    """
    Builds the active view from local records and a branch scan.

    Example:
        >>> reconciler = StateReconciler(["To Do", "In Progress", "Done"])
        >>> view = reconciler.reconcile(local, completed, scan)
        >>> [(t.id, t.source) for t in view]
        [('TASK-1', <TaskSource.LOCAL: 'local'>), ('TASK-5', <TaskSource.BRANCH: 'branch'>)]
    """

    def __init__(
        self,
        statuses: list[str],
        strategy: ResolutionStrategy = "most_progressed",
    ) -> None:
        self.statuses = list(statuses)
        self.strategy = strategy

    def reconcile(
        self,
        local_tasks: list[Task],
        completed_tasks: list[Task],
        scan: ScanResult | None,
        include_completed: bool = False,
        archived_tasks: list[Task] | None = None,
    ) -> list[Task]:
        """
        Produce the active view.

        Args:
            local_tasks: Active records from the working tree
            completed_tasks: Completed records from the working tree
            scan: Branch scan result, None when cross-branch checking is off
            include_completed: Keep completed tasks in the view
            archived_tasks: Archived records from the working tree; only
                their timestamps are used

        Returns:
            One task per id, sorted by id
        """
        local = [task.model_copy(update={"source": TaskSource.LOCAL}) for task in local_tasks]
        completed = [
            task.model_copy(update={"source": TaskSource.COMPLETED}) for task in completed_tasks
        ]

        if scan is None:
            view = list(local)
            if include_completed:
                seen = {task.key for task in local}
                view.extend(task for task in completed if task.key not in seen)
            return sorted(view, key=lambda task: id_sort_key(task.id))

        latest = self.resolve_latest_states(
            [*local_entries(local_tasks, completed_tasks, archived_tasks or ()), *scan.entries]
        )

        candidates: list[Task] = list(local)
        if include_completed:
            candidates.extend(completed)
        candidates.extend(scan.copies)
        merged = self.merge_copies(candidates)

        visible = {EntryKind.TASK}
        if include_completed:
            visible.add(EntryKind.COMPLETED)

        view: list[Task] = []
        for key, entry in latest.items():
            if entry.kind not in visible:
                continue
            task = merged.get(key)
            if task is None:
                logger.debug("No readable copy of %s (latest on %s)", entry.id, entry.branch)
                continue
            if entry.kind is EntryKind.COMPLETED and task.source is not TaskSource.COMPLETED:
                task = task.model_copy(update={"source": TaskSource.COMPLETED})
            view.append(task)

        dropped = len(merged) - len(view)
        if dropped:
            logger.debug("Visibility filter dropped %d tasks", dropped)
        return sorted(view, key=lambda task: id_sort_key(task.id))

    def resolve_latest_states(
        self,
        entries: Iterable[BranchTaskStateEntry],
    ) -> dict[str, BranchTaskStateEntry]:
        """
        Newest observation per id key.

        Ties on time prefer the working tree, then other local branches,
        then remotes; within an origin the lowest branch label wins.
        """
        latest: dict[str, BranchTaskStateEntry] = {}
        for entry in entries:
            current = latest.get(entry.key)
            if current is None or _entry_beats(entry, current):
                latest[entry.key] = entry
        return latest

    def merge_copies(self, copies: Iterable[Task]) -> dict[str, Task]:
        """Winning full copy per id key according to the strategy."""
        winners: dict[str, Task] = {}
        for task in copies:
            current = winners.get(task.key)
            if current is None or self._copy_beats(task, current):
                winners[task.key] = task
        return winners

    def _copy_beats(self, candidate: Task, current: Task) -> bool:
        if self.strategy == "most_progressed":
            candidate_rank = status_rank(candidate.status, self.statuses)
            current_rank = status_rank(current.status, self.statuses)
            if candidate_rank != current_rank:
                return candidate_rank > current_rank
        candidate_time = _timestamp(candidate.last_modified)
        current_time = _timestamp(current.last_modified)
        if candidate_time != current_time:
            return candidate_time > current_time
        return _origin_key(candidate.source, candidate.branch) < _origin_key(
            current.source, current.branch
        )

    def ids_in_use(
        self,
        local_tasks: list[Task],
        completed_tasks: list[Task],
        scan: ScanResult | None,
        archived_tasks: list[Task] | None = None,
    ) -> list[str]:
        """Active and completed ids across the working tree and the scan."""
        entries = local_entries(local_tasks, completed_tasks, archived_tasks or ())
        if scan is not None:
            entries.extend(scan.entries)
        return active_and_completed_ids(self.resolve_latest_states(entries))

