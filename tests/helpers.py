"""Test helpers: record builder, in-memory VCS and git runner."""

from __future__ import annotations

import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path

from branchboard.core.vcs.git import GitError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


def record(task_id: str, title: str = "", status: str = "To Do", **fields: object) -> str:
    """Markdown record with front matter, as written to backlog files."""
    lines = ["---", f"id: {task_id}", f"title: {title or task_id}", f"status: {status}"]
    for key, value in fields.items():
        if isinstance(value, list):
            lines.append(f"{key}: [{', '.join(str(v) for v in value)}]")
        else:
            lines.append(f"{key}: {value}")
    lines.append("---")
    lines.append("")
    return "\n".join(lines) + "\n"


def run_git(repo: Path, *args: str, env: dict[str, str] | None = None) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
        env=env,
    )
    return result.stdout.strip()


class FakeVcs:
    """
    VcsCollaborator backed by dicts.

    Branches map a ref name to its last commit time and its files; each
    file is (content, commit time).
    """

    def __init__(self, current: str = "main") -> None:
        self.current = current
        self.branches: dict[str, tuple[datetime, dict[str, tuple[str, datetime]]]] = {}
        self.remotes: dict[str, tuple[datetime, dict[str, tuple[str, datetime]]]] = {}
        self.failing: set[str] = set()
        self.unreadable: set[tuple[str, str]] = set()
        self.fetch_error: Exception | None = None
        self.fetched = 0
        self.listed: list[str] = []
        self.on_list = None

    def add_branch(
        self,
        name: str,
        files: dict[str, tuple[str, datetime]],
        committed: datetime | None = None,
        remote: bool = False,
    ) -> None:
        committed = committed or max((t for _, t in files.values()), default=NOW)
        target = self.remotes if remote else self.branches
        target[name] = (committed, files)

    def _lookup(self, ref: str):
        if ref in self.branches:
            return self.branches[ref]
        if ref in self.remotes:
            return self.remotes[ref]
        raise GitError(f"unknown ref {ref}", command=["git", "ls-tree", ref])

    def current_branch(self) -> str:
        return self.current

    def list_recent_branches(self, since: datetime, remote: bool = False) -> list[str]:
        source = self.remotes if remote else self.branches
        return [name for name, (committed, _) in source.items() if committed >= since]

    def has_any_remote(self) -> bool:
        return bool(self.remotes)

    def fetch(self) -> None:
        self.fetched += 1
        if self.fetch_error is not None:
            raise self.fetch_error

    def list_files(self, ref: str, path: str) -> list[str]:
        self.listed.append(ref)
        if self.on_list is not None:
            self.on_list(ref)
        if ref in self.failing:
            raise GitError(f"cannot read {ref}", command=["git", "ls-tree", ref], stderr="bad")
        _, files = self._lookup(ref)
        return sorted(p for p in files if p.startswith(path.rstrip("/") + "/"))

    def last_modified_map(self, ref: str, path: str) -> dict[str, datetime]:
        _, files = self._lookup(ref)
        return {p: t for p, (_, t) in files.items() if p.startswith(path.rstrip("/") + "/")}

    def show_file(self, ref: str, path: str) -> str:
        if (ref, path) in self.unreadable:
            raise GitError(f"cannot show {ref}:{path}", command=["git", "show"])
        _, files = self._lookup(ref)
        return files[path][0]


