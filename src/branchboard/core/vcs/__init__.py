"""
Version control collaborators.

Public API:
    - VcsCollaborator: Protocol the scanner reads branches through
    - GitOperations: git command line implementation
    - GitError: Raised when a git command fails
"""

from branchboard.core.vcs.git import GitError, GitOperations
from branchboard.core.vcs.protocol import VcsCollaborator

__all__ = ["VcsCollaborator", "GitOperations", "GitError"]
