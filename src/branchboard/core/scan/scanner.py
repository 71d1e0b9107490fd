"""
Branch state scanner.

Collects, for every recently active branch, which task records exist on it
and when each was last touched, then reads the newest copy of each active
task so the reconciler can compare content.

Two passes run concurrently:
- local pass: local heads, minus the checked-out branch (skipped
  entirely on a detached HEAD)
- remote pass: remote-tracking refs, after a best-effort fetch

Each pass walks its branches one at a time, and every blocking VCS call
runs in a worker thread. A branch that cannot be listed, or a record that
cannot be read, is logged and skipped; the scan still returns what it
found elsewhere. Cancellation is checked before the passes, between
branches and after the join, and never yields a partial result.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from branchboard.core.config.models import BoardConfig
from branchboard.core.errors import RecordParseError
from branchboard.core.ids.parser import extract_id_from_filename
from branchboard.core.scan.models import (
    BranchTaskStateEntry,
    CancellationToken,
    EntryKind,
    ScanResult,
)
from branchboard.core.tasks.models import Task, TaskSource
from branchboard.core.tasks.record import parse_task_record
from branchboard.core.vcs.git import GitError
from branchboard.core.vcs.protocol import VcsCollaborator

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Checked in order; "archive/tasks" never matches "tasks/" because the
# match is anchored at the backlog directory.
SUBTREE_KINDS: list[tuple[str, EntryKind]] = [
    ("tasks", EntryKind.TASK),
    ("drafts", EntryKind.DRAFT),
    ("archive/tasks", EntryKind.ARCHIVED),
    ("completed", EntryKind.COMPLETED),
]

# Errors that mean "this branch or record is unusable right now"
_VCS_ERRORS = (GitError, OSError)


@dataclass
class _Observation:
    entry: BranchTaskStateEntry
    ref: str


def classify_path(path: str, backlog_dir: str) -> EntryKind | None:
    """
    Kind of record a path holds, None for paths outside the known subtrees.

    Examples:
        >>> classify_path("backlog/archive/tasks/task-1 - x.md", "backlog")
        <EntryKind.ARCHIVED: 'archived'>
        >>> classify_path("backlog/docs/doc-1 - x.md", "backlog") is None
        True
    """
    root = backlog_dir.strip("/")
    for subtree, kind in SUBTREE_KINDS:
        if path.startswith(f"{root}/{subtree}/"):
            return kind
    return None


class BranchStateScanner:
    """
    Scans recently active branches for task records.

    Example:
        >>> scanner = BranchStateScanner(GitOperations(), config)
        >>> result = await scanner.scan()
        >>> len(result.entries), len(result.copies)
        (42, 12)
    """

    def __init__(
        self,
        vcs: VcsCollaborator,
        config: BoardConfig,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.vcs = vcs
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def scan(
        self,
        cancel: CancellationToken | None = None,
        include_completed: bool = False,
        hydrate: bool = True,
    ) -> ScanResult:
        """
        Scan local and remote branches.

        Args:
            cancel: Token checked between branches
            include_completed: Also hydrate copies of completed records
            hydrate: Read full copies; False yields entries only

        Returns:
            Entries from both passes plus hydrated copies. Empty when
            cross-branch checking is disabled.

        Raises:
            ScanCancelledError: If the token was cancelled
        """
        if not self.config.check_active_branches:
            return ScanResult()

        token = cancel or CancellationToken()
        token.raise_if_cancelled()

        since = self._clock() - timedelta(days=self.config.active_branch_days)
        passes = [self._local_pass(since, token, include_completed, hydrate)]
        if self.config.remote_operations:
            passes.append(self._remote_pass(since, token, include_completed, hydrate))

        pending = [asyncio.create_task(p) for p in passes]
        try:
            results = await asyncio.gather(*pending)
        except BaseException:
            # gather leaves the sibling running; stop it before re-raising
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise
        token.raise_if_cancelled()

        merged = ScanResult()
        for result in results:
            merged.entries.extend(result.entries)
            merged.copies.extend(result.copies)

        logger.info(
            "Branch scan found %d entries and %d copies",
            len(merged.entries),
            len(merged.copies),
        )
        return merged

    async def _local_pass(
        self,
        since: datetime,
        token: CancellationToken,
        include_completed: bool,
        hydrate: bool,
    ) -> ScanResult:
        try:
            current = await asyncio.to_thread(self.vcs.current_branch)
            branches = await asyncio.to_thread(self.vcs.list_recent_branches, since, False)
        except _VCS_ERRORS as e:
            logger.warning("Skipping local branch scan: %s", e)
            return ScanResult()
        if not current:
            logger.debug("HEAD is detached, skipping local branches")
            return ScanResult()

        remote_prefix = f"{self.config.remote_name}/"
        refs = [
            (branch, branch)
            for branch in branches
            if branch != current and not branch.startswith(remote_prefix)
        ]
        return await self._scan_pass(refs, TaskSource.BRANCH, token, include_completed, hydrate)

    async def _remote_pass(
        self,
        since: datetime,
        token: CancellationToken,
        include_completed: bool,
        hydrate: bool,
    ) -> ScanResult:
        try:
            has_remote = await asyncio.to_thread(self.vcs.has_any_remote)
        except _VCS_ERRORS as e:
            logger.warning("Skipping remote branch scan: %s", e)
            return ScanResult()
        if not has_remote:
            return ScanResult()

        try:
            await asyncio.to_thread(self.vcs.fetch)
        except _VCS_ERRORS as e:
            logger.warning("Fetch failed, scanning existing remote refs: %s", e)

        token.raise_if_cancelled()
        try:
            branches = await asyncio.to_thread(self.vcs.list_recent_branches, since, True)
        except _VCS_ERRORS as e:
            logger.warning("Skipping remote branch scan: %s", e)
            return ScanResult()

        remote_prefix = f"{self.config.remote_name}/"
        refs: list[tuple[str, str]] = []
        for ref in branches:
            label = ref[len(remote_prefix):] if ref.startswith(remote_prefix) else ref
            if not label or label in ("HEAD", self.config.remote_name):
                continue
            refs.append((ref, label))
        return await self._scan_pass(refs, TaskSource.REMOTE, token, include_completed, hydrate)

    async def _scan_pass(
        self,
        refs: list[tuple[str, str]],
        source: TaskSource,
        token: CancellationToken,
        include_completed: bool,
        hydrate: bool,
    ) -> ScanResult:
        observations: list[_Observation] = []
        for ref, label in refs:
            token.raise_if_cancelled()
            try:
                observations.extend(await self._scan_branch(ref, label, source))
            except _VCS_ERRORS as e:
                logger.warning("Skipping branch %s: %s", label, e)

        copies: list[Task] = []
        targets = self._hydration_targets(observations, include_completed) if hydrate else []
        for observation in targets:
            token.raise_if_cancelled()
            task = await self._hydrate(observation)
            if task is not None:
                copies.append(task)

        logger.debug(
            "%s pass: %d branches, %d entries, %d copies",
            source.value,
            len(refs),
            len(observations),
            len(copies),
        )
        return ScanResult(entries=[o.entry for o in observations], copies=copies)

    async def _scan_branch(self, ref: str, label: str, source: TaskSource) -> list[_Observation]:
        backlog_dir = self.config.backlog_dir
        files = await asyncio.to_thread(self.vcs.list_files, ref, backlog_dir)
        if not files:
            return []
        modified = await asyncio.to_thread(self.vcs.last_modified_map, ref, backlog_dir)

        found: list[_Observation] = []
        for path in files:
            if not path.endswith(".md"):
                continue
            kind = classify_path(path, backlog_dir)
            if kind is None:
                continue
            task_id = extract_id_from_filename(path, self.config.prefixes.task)
            if task_id is None:
                continue
            entry = BranchTaskStateEntry(
                id=task_id,
                kind=kind,
                branch=label,
                last_modified=modified.get(path, EPOCH),
                source=source,
                path=path,
            )
            found.append(_Observation(entry=entry, ref=ref))
        return found

    def _hydration_targets(
        self,
        observations: list[_Observation],
        include_completed: bool,
    ) -> list[_Observation]:
        """Newest task (or completed) observation per id."""
        wanted = {EntryKind.TASK}
        if include_completed:
            wanted.add(EntryKind.COMPLETED)

        newest: dict[str, _Observation] = {}
        for observation in observations:
            entry = observation.entry
            if entry.kind not in wanted:
                continue
            best = newest.get(entry.key)
            if best is None or _newer(entry, best.entry):
                newest[entry.key] = observation
        return [newest[key] for key in sorted(newest)]

    async def _hydrate(self, observation: _Observation) -> Task | None:
        entry = observation.entry
        try:
            content = await asyncio.to_thread(self.vcs.show_file, observation.ref, entry.path)
            task = parse_task_record(content, f"{entry.branch}:{entry.path}")
        except (*_VCS_ERRORS, RecordParseError) as e:
            logger.warning("Skipping %s on branch %s: %s", entry.path, entry.branch, e)
            return None
        return task.model_copy(
            update={
                "source": entry.source,
                "branch": entry.branch,
                "last_modified": entry.last_modified,
            }
        )


def _newer(candidate: BranchTaskStateEntry, current: BranchTaskStateEntry) -> bool:
    if candidate.last_modified != current.last_modified:
        return candidate.last_modified > current.last_modified
    # Equal times: lowest branch label, then lowest path
    return (candidate.branch, candidate.path) < (current.branch, current.path)
