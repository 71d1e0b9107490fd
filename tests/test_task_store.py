"""Tests for the filesystem task store."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

from helpers import record

from branchboard.core.config.models import BoardConfig
from branchboard.core.tasks.models import Task, TaskSource
from branchboard.core.tasks.store import RecordCollection, TaskStore, record_filename


def _write(
    project_dir: Path, sub: str, name: str, content: str, mtime: float | None = None
) -> Path:
    path = project_dir / "backlog" / sub / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


class TestListing:
    def test_list_tasks_sorted_by_id(self, project_dir: Path):
        _write(project_dir, "tasks", "task-10 - Ten.md", record("TASK-10"))
        _write(project_dir, "tasks", "task-2 - Two.md", record("TASK-2"))
        store = TaskStore(project_dir, BoardConfig())

        tasks = store.list_tasks()

        assert [t.id for t in tasks] == ["TASK-2", "TASK-10"]
        assert all(t.source is TaskSource.LOCAL for t in tasks)

    def test_last_modified_is_mtime(self, project_dir: Path):
        _write(project_dir, "tasks", "task-1 - One.md", record("TASK-1"), mtime=1_700_000_000)
        task = TaskStore(project_dir).list_tasks()[0]
        assert task.last_modified == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_completed_source(self, project_dir: Path):
        _write(project_dir, "completed", "task-3 - Done.md", record("TASK-3", status="Done"))
        completed = TaskStore(project_dir).list_completed_tasks()
        assert [(t.id, t.source) for t in completed] == [("TASK-3", TaskSource.COMPLETED)]

    def test_drafts_and_archive(self, project_dir: Path):
        _write(project_dir, "drafts", "draft-1 - Idea.md", record("DRAFT-1"))
        _write(project_dir, "archive/tasks", "task-4 - Old.md", record("TASK-4"))
        store = TaskStore(project_dir)
        assert [t.id for t in store.list_drafts()] == ["DRAFT-1"]
        assert [t.id for t in store.list_archived_tasks()] == ["TASK-4"]

    def test_document_and_decision_ids(self, project_dir: Path):
        _write(project_dir, "docs", "doc-2 - Guide.md", "# Guide\n")
        _write(project_dir, "decisions", "decision-1 - Use git.md", "# ADR\n")
        store = TaskStore(project_dir)
        assert store.list_document_ids() == ["DOC-2"]
        assert store.list_decision_ids() == ["DECISION-1"]

    def test_unparsable_record_skipped(self, project_dir: Path, caplog):
        _write(project_dir, "tasks", "task-1 - Good.md", record("TASK-1"))
        _write(project_dir, "tasks", "task-2 - Bad.md", "---\nid: [oops\n---\n")
        tasks = TaskStore(project_dir).list_tasks()
        assert [t.id for t in tasks] == ["TASK-1"]
        assert "Skipping unreadable task record" in caplog.text

    def test_non_record_files_ignored(self, project_dir: Path):
        _write(project_dir, "tasks", "README.md", "notes")
        assert TaskStore(project_dir).list_tasks() == []

    def test_missing_backlog(self, tmp_path: Path):
        assert TaskStore(tmp_path).list_tasks() == []


class TestLoadAndSave:
    def test_save_and_load(self, project_dir: Path):
        store = TaskStore(project_dir)
        saved = store.save_task(Task(id="TASK-5", title="Write docs", status="To Do"))

        assert (project_dir / "backlog" / "tasks" / "task-5 - Write docs.md").exists()
        assert saved.last_modified is not None

        [loaded] = store.list_tasks()
        assert loaded.title == "Write docs"
        assert loaded.source is TaskSource.LOCAL

    def test_find_missing(self, project_dir: Path):
        assert TaskStore(project_dir).find_record_path("TASK-404") is None

    def test_rename_replaces_old_file(self, project_dir: Path):
        store = TaskStore(project_dir)
        store.save_task(Task(id="TASK-5", title="Old title", status="To Do"))
        store.save_task(Task(id="TASK-5", title="New title", status="To Do"))

        names = sorted(p.name for p in (project_dir / "backlog" / "tasks").iterdir())
        assert names == ["task-5 - New title.md"]

    def test_no_temp_files_left(self, project_dir: Path):
        TaskStore(project_dir).save_task(Task(id="TASK-1", title="x", status="To Do"))
        leftovers = [p for p in (project_dir / "backlog" / "tasks").iterdir() if ".tmp" in p.name]
        assert leftovers == []

    def test_save_completed(self, project_dir: Path):
        store = TaskStore(project_dir)
        saved = store.save_task(
            Task(id="TASK-9", title="Ship", status="Done"), RecordCollection.COMPLETED
        )
        assert saved.source is TaskSource.COMPLETED
        assert [t.id for t in store.list_completed_tasks()] == ["TASK-9"]


class TestRecordFilename:
    def test_unsafe_characters_removed(self):
        task = Task(id="TASK-1", title="Fix: a/b <c>")
        assert record_filename(task) == "task-1 - Fix ab c.md"

    def test_untitled(self):
        assert record_filename(Task(id="TASK-1")) == "task-1.md"
