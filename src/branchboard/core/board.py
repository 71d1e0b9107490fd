"""
Board facade.

Wires the collaborators together for one project: configuration, git,
the filesystem store, the scanner, the reconciler and the active view
cache. The cache belongs to the Board and is closed with it.

Example:
    >>> with Board(project_dir=Path(".")) as board:
    ...     tasks = board.refresh()
    ...     new_id = asyncio.run(board.next_id())
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from types import TracebackType

from branchboard.core.config.loader import load_config
from branchboard.core.config.models import BoardConfig
from branchboard.core.errors import (
    InvalidStatusError,
    ReadOnlyTaskError,
    SequencePlanError,
    TaskNotFoundError,
)
from branchboard.core.ids.generator import IdAllocator
from branchboard.core.ids.models import EntityType
from branchboard.core.ordering.ordinals import UNSET, ReorderPlan, UnsetType, plan_reorder
from branchboard.core.reconcile.cache import ActiveViewCache
from branchboard.core.reconcile.reconciler import StateReconciler
from branchboard.core.scan.models import CancellationToken, ScanResult
from branchboard.core.scan.scanner import BranchStateScanner
from branchboard.core.sequences.builder import (
    active_sequence_tasks,
    compute_sequences,
    plan_move_to_sequence,
    plan_move_to_unsequenced,
)
from branchboard.core.tasks.models import SequenceResult, Task, TaskSource
from branchboard.core.tasks.status import canonical_status
from branchboard.core.tasks.store import RecordCollection, TaskStore
from branchboard.core.vcs.git import GitOperations
from branchboard.core.vcs.protocol import VcsCollaborator

logger = logging.getLogger(__name__)


class Board:
    """
    One project's task board.

    Args:
        project_dir: Repository root (default: current directory)
        config: Configuration (default: loaded from the config layers)
        vcs: VCS collaborator (default: git in project_dir)
        store: Filesystem store (default: backlog under project_dir)
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        config: BoardConfig | None = None,
        vcs: VcsCollaborator | None = None,
        store: TaskStore | None = None,
    ) -> None:
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.config = config or load_config(self.project_dir)
        self.vcs = vcs or GitOperations(self.project_dir, remote_name=self.config.remote_name)
        self.store = store or TaskStore(self.project_dir, self.config)
        self.scanner = BranchStateScanner(self.vcs, self.config)
        self.reconciler = StateReconciler(
            self.config.statuses, self.config.task_resolution_strategy
        )
        self.cache = ActiveViewCache()
        self.ids = IdAllocator(self.config, self.task_ids_in_use, self.store)

    async def scan(
        self,
        cancel: CancellationToken | None = None,
        include_completed: bool = False,
        hydrate: bool = True,
    ) -> ScanResult | None:
        """Branch scan, None when cross-branch checking is disabled."""
        if not self.config.check_active_branches:
            return None
        return await self.scanner.scan(cancel, include_completed, hydrate)

    async def load_tasks(
        self,
        include_completed: bool = False,
        cancel: CancellationToken | None = None,
    ) -> list[Task]:
        """
        Reconcile the working tree with every active branch.

        The active view (without completed tasks) replaces the cache only
        after the whole pass has finished.

        Raises:
            ScanCancelledError: If the scan was cancelled
        """
        local = self.store.list_tasks()
        completed = self.store.list_completed_tasks()
        scan = await self.scan(cancel, include_completed)
        view = self.reconciler.reconcile(
            local, completed, scan, include_completed, self.store.list_archived_tasks()
        )
        if not include_completed:
            self.cache.replace(view)
        logger.debug("Loaded %d tasks (%d local)", len(view), len(local))
        return view

    def refresh(self) -> list[Task]:
        """Blocking wrapper around load_tasks for synchronous callers."""
        return asyncio.run(self.load_tasks())

    async def active_view(self) -> list[Task]:
        """Cached active view, loading it on first use."""
        cached = self.cache.tasks()
        if cached is not None:
            return cached
        return await self.load_tasks()

    async def get_task(self, task_id: str) -> Task:
        await self.active_view()
        task = self.cache.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def task_ids_in_use(self) -> list[str]:
        """Active and completed task ids across the working tree and branches."""
        local = self.store.list_tasks()
        completed = self.store.list_completed_tasks()
        scan = await self.scan(hydrate=False)
        return self.reconciler.ids_in_use(
            local, completed, scan, self.store.list_archived_tasks()
        )

    async def next_id(
        self,
        entity_type: EntityType = EntityType.TASK,
        parent: str | None = None,
    ) -> str:
        return await self.ids.allocate(entity_type, parent)

    async def sequences(self) -> SequenceResult:
        view = await self.active_view()
        return compute_sequences(active_sequence_tasks(view, self.config.terminal_status))

    async def move_in_sequences(
        self,
        task_id: str,
        target_index: int | None = None,
        unsequenced: bool = False,
    ) -> SequenceResult:
        """
        Move a task to a sequence or out of all sequences.

        Returns:
            The sequences after the move

        Raises:
            SequencePlanError: If the move is impossible or target_index is missing
            TaskNotFoundError: If the task does not exist
            ReadOnlyTaskError: If the task lives on another branch
        """
        view = await self.active_view()
        terminal = self.config.terminal_status
        if unsequenced:
            changed = plan_move_to_unsequenced(view, task_id, terminal)
        else:
            if target_index is None:
                raise SequencePlanError("A target sequence index is required")
            current = compute_sequences(active_sequence_tasks(view, terminal))
            changed = plan_move_to_sequence(
                view,
                current.sequences,
                task_id,
                target_index,
                terminal,
                self.config.default_ordinal_step,
            )

        for task in changed:
            self.upsert_task(task)
        return await self.sequences()

    async def reorder_task(
        self,
        task_id: str,
        target_status: str,
        ordered_ids: list[str],
        target_milestone: str | None | UnsetType = UNSET,
    ) -> ReorderPlan:
        """
        Move a task within (or into) a status column.

        Neighbours that live on other branches are never written; their
        ordinals are left for that branch to repair.

        Raises:
            InvalidStatusError: If target_status is not configured
        """
        status = canonical_status(target_status, self.config.statuses)
        if status is None:
            raise InvalidStatusError(target_status, self.config.statuses)

        view = await self.active_view()
        plan = plan_reorder(
            {task.key: task for task in view},
            task_id,
            status,
            ordered_ids,
            target_milestone,
            self.config.default_ordinal_step,
        )
        for task in plan.changed_tasks:
            if not task.is_local_editable:
                logger.warning("Not rewriting ordinal of %s from branch %s", task.id, task.branch)
                continue
            self.upsert_task(task)
        return plan

    def upsert_task(self, task: Task) -> Task:
        """
        Write a task to the working tree and patch the cached view.

        Completed tasks leave the active view.

        Raises:
            ReadOnlyTaskError: If the task content lives on another branch
        """
        if task.branch:
            raise ReadOnlyTaskError(task.id, task.branch)
        collection = (
            RecordCollection.COMPLETED
            if task.source is TaskSource.COMPLETED
            else RecordCollection.TASKS
        )
        saved = self.store.save_task(task, collection)
        if collection is RecordCollection.TASKS:
            self.cache.upsert(saved.model_copy(update={"source": TaskSource.LOCAL}))
        else:
            self.cache.remove(saved.id)
        return saved

    def close(self) -> None:
        self.cache.close()

    def __enter__(self) -> Board:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
