"""
Tests for the board CLI commands.

Most tests disable branch checks through .branchboard.json so the
commands only read the working tree; one runs against a real repo.
"""

import json
from pathlib import Path

import pytest
from helpers import record, run_git
from typer.testing import CliRunner

from branchboard import __version__
from branchboard.cli import app
from branchboard.core.board import Board

runner = CliRunner()


def _write_task(project_dir: Path, task_id: str, sub: str = "tasks", **fields) -> None:
    path = project_dir / "backlog" / sub / f"{task_id.lower()} - {task_id}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(record(task_id, **fields))


@pytest.fixture
def local_project(project_dir: Path) -> Path:
    (project_dir / ".branchboard.json").write_text(json.dumps({"checkActiveBranches": False}))
    _write_task(project_dir, "TASK-1", status="To Do", ordinal=1000)
    _write_task(project_dir, "TASK-2", status="In Progress", dependencies=["TASK-1"])
    _write_task(project_dir, "TASK-3", status="To Do", ordinal=2000)
    _write_task(project_dir, "TASK-4", sub="completed", status="Done")
    return project_dir


def _invoke(project: Path, *args: str):
    return runner.invoke(app, ["--project-dir", str(project), *args])


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert "list" in result.output
        assert "reorder" in result.output


class TestListCommand:
    def test_list(self, local_project):
        result = _invoke(local_project, "list")

        assert result.exit_code == 0
        for task_id in ("TASK-1", "TASK-2", "TASK-3"):
            assert task_id in result.output
        assert "TASK-4" not in result.output

    def test_list_completed(self, local_project):
        result = _invoke(local_project, "list", "--completed")
        assert result.exit_code == 0
        assert "TASK-4" in result.output

    def test_list_status_filter(self, local_project):
        result = _invoke(local_project, "list", "--status", "in progress")
        assert result.exit_code == 0
        assert "TASK-2" in result.output
        # TASK-1 still shows up in the "Depends on" column of TASK-2
        assert "TASK-3" not in result.output

    def test_interrupt_exits_130(self, local_project, monkeypatch):
        async def interrupted(self, include_completed=False, cancel=None):
            raise KeyboardInterrupt

        monkeypatch.setattr(Board, "load_tasks", interrupted)
        result = _invoke(local_project, "list")

        assert result.exit_code == 130
        assert "Interrupted" in result.output

    def test_list_empty(self, project_dir):
        (project_dir / ".branchboard.json").write_text('{"checkActiveBranches": false}')
        result = _invoke(project_dir, "list")
        assert result.exit_code == 0
        assert "No tasks found" in result.output


class TestSequencesCommand:
    def test_sequences(self, local_project):
        result = _invoke(local_project, "sequences")

        assert result.exit_code == 0
        assert "Sequence 1" in result.output
        assert "Sequence 2" in result.output

    def test_move_to_unsequenced(self, local_project):
        result = _invoke(local_project, "move", "TASK-2", "--unsequenced")

        assert result.exit_code == 0
        assert "Unsequenced" in result.output
        content = (local_project / "backlog" / "tasks" / "task-2 - TASK-2.md").read_text()
        assert "dependencies" not in content

    def test_move_requires_target(self, local_project):
        result = _invoke(local_project, "move", "TASK-2")
        assert result.exit_code == 2

    def test_move_impossible(self, local_project):
        result = _invoke(local_project, "move", "TASK-1", "--unsequenced")
        assert result.exit_code == 2
        assert "depend on it" in result.output

    def test_move_unknown_task(self, local_project):
        result = _invoke(local_project, "move", "TASK-99", "--sequence", "1")
        assert result.exit_code == 2
        assert "TASK-99 not found" in result.output


class TestNextIdCommand:
    def test_next_task_id(self, local_project):
        result = _invoke(local_project, "next-id")
        assert result.exit_code == 0
        assert result.output.strip() == "TASK-5"

    def test_next_subtask_id(self, local_project):
        result = _invoke(local_project, "next-id", "--parent", "TASK-2")
        assert result.output.strip() == "TASK-2.1"

    def test_next_decision_id(self, local_project):
        result = _invoke(local_project, "next-id", "--type", "decision")
        assert result.output.strip() == "DECISION-1"

    def test_parent_only_for_tasks(self, local_project):
        result = _invoke(local_project, "next-id", "--type", "draft", "--parent", "TASK-2")
        assert result.exit_code == 2


class TestReorderCommand:
    def test_reorder(self, local_project):
        result = _invoke(
            local_project, "reorder", "TASK-3", "--status", "To Do", "--order", "TASK-3,TASK-1"
        )

        assert result.exit_code == 0
        content = (local_project / "backlog" / "tasks" / "task-3 - TASK-3.md").read_text()
        assert "ordinal: 500" in content

    def test_reorder_invalid_status(self, local_project):
        result = _invoke(
            local_project, "reorder", "TASK-3", "--status", "Blocked", "--order", "TASK-3"
        )
        assert result.exit_code == 2
        assert "Invalid status" in result.output


class TestAcrossBranches:
    def test_list_shows_branch_tasks(self, git_repo: Path):
        tasks_dir = git_repo / "backlog" / "tasks"
        tasks_dir.mkdir(parents=True)
        (tasks_dir / "task-1 - TASK-1.md").write_text(record("TASK-1"))
        run_git(git_repo, "add", ".")
        run_git(git_repo, "commit", "-m", "add task 1")

        run_git(git_repo, "checkout", "-q", "-b", "feature")
        (tasks_dir / "task-2 - TASK-2.md").write_text(record("TASK-2"))
        run_git(git_repo, "add", ".")
        run_git(git_repo, "commit", "-m", "add task 2")
        run_git(git_repo, "checkout", "-q", "main")

        result = _invoke(git_repo, "list")

        assert result.exit_code == 0
        assert "TASK-1" in result.output
        assert "TASK-2" in result.output

        result = _invoke(git_repo, "next-id")
        assert result.output.strip() == "TASK-3"
