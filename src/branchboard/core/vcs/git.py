"""
Git collaborator.

Reads refs, trees and file content with plain git commands; never touches
the working tree or the index.

Commands used:
- `git for-each-ref` to list branches with their last commit date
- `git ls-tree -r --name-only -z` to list files on a ref
- `git log --pretty=format:%ct%x00 --name-only -z` for per-file commit times
- `git show <ref>:<path>` to read a record from another branch
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr


def _parse_iso_date(value: str) -> datetime | None:
    # git's iso8601 format: "2024-05-01 12:30:00 +0200"
    value = value.strip()
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")
    except ValueError:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitOperations:
    """
    VcsCollaborator backed by the git command line.

    Example:
        >>> git = GitOperations(project_dir=Path("."))
        >>> git.current_branch()
        'main'
        >>> git.list_files("feature/login", "backlog/tasks")
        ['backlog/tasks/task-3 - Login form.md']
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        remote_name: str = "origin",
        timeout: int = 60,
    ) -> None:
        self.project_dir = (project_dir or Path.cwd()).resolve()
        self.remote_name = remote_name
        self.timeout = timeout

    def _run_git(self, args: list[str], *, check: bool = True, strip: bool = True) -> str:
        """
        Run a git command and return its stdout.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.
            strip: Strip surrounding whitespace from the output.

        Returns:
            Command stdout as string.

        Raises:
            GitError: If the command fails and check=True.
        """
        cmd = ["git"] + args

        logger.debug("Running git command: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found in PATH", command=cmd) from e

        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise GitError(
                f"Git command failed: {' '.join(cmd)}",
                command=cmd,
                stderr=stderr,
            )

        stdout = result.stdout or ""
        return stdout.strip() if strip else stdout

    def current_branch(self) -> str:
        return self._run_git(["branch", "--show-current"])

    def list_recent_branches(self, since: datetime, remote: bool = False) -> list[str]:
        ref_root = f"refs/remotes/{self.remote_name}" if remote else "refs/heads"
        output = self._run_git(
            ["for-each-ref", "--format=%(refname:short)|%(committerdate:iso8601)", ref_root]
        )

        branches: list[str] = []
        for line in output.splitlines():
            name, _, date_str = line.strip().partition("|")
            committed = _parse_iso_date(date_str)
            if not name or committed is None:
                continue
            if committed >= since and name not in branches:
                branches.append(name)
        return branches

    def has_any_remote(self) -> bool:
        try:
            return bool(self._run_git(["remote"]))
        except GitError:
            return False

    def fetch(self) -> None:
        self._run_git(["fetch", self.remote_name, "--prune", "--quiet"])

    def list_files(self, ref: str, path: str) -> list[str]:
        output = self._run_git(["ls-tree", "-r", "--name-only", "-z", ref, "--", path], strip=False)
        return [name for name in output.split("\0") if name]

    def last_modified_map(self, ref: str, path: str) -> dict[str, datetime]:
        output = self._run_git(
            ["log", "--pretty=format:%ct%x00", "--name-only", "-z", ref, "--", path],
            strip=False,
        )

        # Newest commit first: a timestamp token, then the files it touched
        modified: dict[str, datetime] = {}
        current: datetime | None = None
        for token in output.split("\0"):
            token = token.strip()
            if not token:
                continue
            if token.isdigit():
                current = datetime.fromtimestamp(int(token), tz=timezone.utc)
                continue
            if current is not None and token not in modified:
                modified[token] = current
        return modified

    def show_file(self, ref: str, path: str) -> str:
        return self._run_git(["show", f"{ref}:{path}"], strip=False)
