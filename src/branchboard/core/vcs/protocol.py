"""
VCS collaborator protocol.

The scanner only needs read access to refs and trees. Any object with
these methods can stand in for git (tests use an in-memory fake).
"""

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class VcsCollaborator(Protocol):
    """
    Read-only view of a version-controlled tree.

    All methods are blocking; the scanner calls them from worker threads.
    Implementations raise their own error type (GitError for git) on
    failure, and the scanner treats any such failure as "skip this branch".
    """

    def current_branch(self) -> str:
        """Name of the checked-out branch ("" when detached)."""
        ...

    def list_recent_branches(self, since: datetime, remote: bool = False) -> list[str]:
        """
        Branches whose last commit is at or after ``since``.

        Args:
            since: Cutoff time (aware datetime)
            remote: List remote-tracking refs instead of local heads

        Returns:
            Short ref names ("feature/x" or "origin/feature/x")
        """
        ...

    def has_any_remote(self) -> bool:
        """True when at least one remote is configured."""
        ...

    def fetch(self) -> None:
        """Update remote-tracking refs."""
        ...

    def list_files(self, ref: str, path: str) -> list[str]:
        """Paths of all files under ``path`` in the tree of ``ref``."""
        ...

    def last_modified_map(self, ref: str, path: str) -> dict[str, datetime]:
        """Newest commit time touching each file under ``path`` on ``ref``."""
        ...

    def show_file(self, ref: str, path: str) -> str:
        """Content of ``path`` as of ``ref``."""
        ...
