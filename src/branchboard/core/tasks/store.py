"""
Filesystem task store.

Reads and writes task records in the working tree. Each record is one
markdown file named "<id> - <title>.md" under the backlog directory:

    backlog/
        tasks/           active tasks
        completed/       completed tasks
        drafts/          drafts
        archive/tasks/   archived tasks (soft delete)
        docs/            documents
        decisions/       decisions

Writes are atomic (temp file + rename). Records that fail to parse are
skipped with a warning so one bad file never hides the rest.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from branchboard.core.config.models import BoardConfig
from branchboard.core.errors import RecordParseError
from branchboard.core.ids.parser import extract_id_from_filename, id_sort_key, ids_equal
from branchboard.core.tasks.models import Task, TaskSource
from branchboard.core.tasks.record import dump_task_record, parse_task_record

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\s.-]+")


class RecordCollection(str, Enum):
    """Subdirectories of the backlog directory that hold task-like records."""

    TASKS = "tasks"
    COMPLETED = "completed"
    DRAFTS = "drafts"
    ARCHIVED = "archive/tasks"
    DOCUMENTS = "docs"
    DECISIONS = "decisions"


def record_filename(task: Task) -> str:
    """File name for a task record: "task-12 - Fix login.md"."""
    title = _UNSAFE_FILENAME_CHARS.sub("", task.title).strip()
    title = re.sub(r"\s+", " ", title)[:80]
    stem = task.id.lower()
    return f"{stem} - {title}.md" if title else f"{stem}.md"


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


class TaskStore:
    """
    Filesystem collaborator for local task records.

    Example:
        >>> store = TaskStore(project_dir=Path("."), config=BoardConfig())
        >>> [t.id for t in store.list_tasks()]
        ['TASK-1', 'TASK-2']
    """

    def __init__(self, project_dir: Path | None = None, config: BoardConfig | None = None):
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.config = config or BoardConfig()

    @property
    def backlog_path(self) -> Path:
        return self.project_dir / self.config.backlog_dir

    def collection_path(self, collection: RecordCollection) -> Path:
        return self.backlog_path / collection.value

    def _prefix_for(self, collection: RecordCollection) -> str:
        prefixes = self.config.prefixes
        if collection is RecordCollection.DRAFTS:
            return prefixes.draft
        if collection is RecordCollection.DOCUMENTS:
            return prefixes.document
        if collection is RecordCollection.DECISIONS:
            return prefixes.decision
        return prefixes.task

    def _record_files(self, collection: RecordCollection) -> list[tuple[str, Path]]:
        """(id, path) for every record file in a collection, sorted by id."""
        directory = self.collection_path(collection)
        if not directory.is_dir():
            return []
        prefix = self._prefix_for(collection)
        found: list[tuple[str, Path]] = []
        for path in directory.rglob("*.md"):
            record_id = extract_id_from_filename(path.name, prefix)
            if record_id is not None:
                found.append((record_id, path))
        found.sort(key=lambda item: (id_sort_key(item[0]), str(item[1])))
        return found

    def _load_collection(
        self,
        collection: RecordCollection,
        source: TaskSource | None,
    ) -> list[Task]:
        tasks: list[Task] = []
        for _, path in self._record_files(collection):
            task = self._read(path, source)
            if task is not None:
                tasks.append(task)
        return tasks

    def _read(self, path: Path, source: TaskSource | None) -> Task | None:
        try:
            content = path.read_text(encoding="utf-8")
            task = parse_task_record(content, str(path))
        except (OSError, RecordParseError) as e:
            logger.warning("Skipping unreadable task record %s: %s", path, e)
            return None
        return task.model_copy(update={"last_modified": _mtime(path), "source": source})

    def list_tasks(self) -> list[Task]:
        """Active tasks in the working tree, last_modified = file mtime."""
        return self._load_collection(RecordCollection.TASKS, TaskSource.LOCAL)

    def list_completed_tasks(self) -> list[Task]:
        return self._load_collection(RecordCollection.COMPLETED, TaskSource.COMPLETED)

    def list_drafts(self) -> list[Task]:
        return self._load_collection(RecordCollection.DRAFTS, None)

    def list_archived_tasks(self) -> list[Task]:
        return self._load_collection(RecordCollection.ARCHIVED, None)

    def list_document_ids(self) -> list[str]:
        return [record_id for record_id, _ in self._record_files(RecordCollection.DOCUMENTS)]

    def list_decision_ids(self) -> list[str]:
        return [record_id for record_id, _ in self._record_files(RecordCollection.DECISIONS)]

    def find_record_path(
        self,
        task_id: str,
        collection: RecordCollection = RecordCollection.TASKS,
    ) -> Path | None:
        """Path of the record with this id, compared case-insensitively."""
        for record_id, path in self._record_files(collection):
            if ids_equal(record_id, task_id):
                return path
        return None

    def save_task(
        self,
        task: Task,
        collection: RecordCollection = RecordCollection.TASKS,
    ) -> Task:
        """
        Write a task record atomically.

        A record with the same id under a different file name (title
        changed) is replaced.

        Returns:
            The task with last_modified refreshed from the written file
        """
        directory = self.collection_path(collection)
        directory.mkdir(parents=True, exist_ok=True)
        previous = self.find_record_path(task.id, collection)
        target = directory / record_filename(task)

        fd, temp_path = tempfile.mkstemp(dir=directory, prefix=".record_", suffix=".md.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dump_task_record(task))
            os.replace(temp_path, target)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        if previous is not None and previous != target:
            previous.unlink(missing_ok=True)

        logger.debug("Saved %s to %s", task.id, target)
        source = TaskSource.COMPLETED if collection is RecordCollection.COMPLETED else task.source
        return task.model_copy(update={"last_modified": _mtime(target), "source": source})
