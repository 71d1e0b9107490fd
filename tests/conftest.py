"""
Pytest configuration and shared fixtures.

Provides fixtures for temp project directories, configuration, an
in-memory VCS collaborator, and real git repositories.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest
from helpers import NOW, FakeVcs

from branchboard.core.config import clear_cache
from branchboard.core.config.models import BoardConfig

# ==============================================================================
# Directory / Config Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config and BRANCHBOARD_* env vars out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "BRANCHBOARD_CHECK_ACTIVE_BRANCHES",
        "BRANCHBOARD_REMOTE_OPERATIONS",
        "BRANCHBOARD_ACTIVE_BRANCH_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def config() -> BoardConfig:
    return BoardConfig()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory with an empty backlog layout."""
    project = tmp_path / "project"
    for sub in ("tasks", "completed", "drafts", "archive/tasks", "docs", "decisions"):
        (project / "backlog" / sub).mkdir(parents=True)
    return project


@pytest.fixture
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture
def clock():
    return lambda: NOW


# ==============================================================================
# Git Fixtures
# ==============================================================================


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on branch main."""
    repo = tmp_path / "repo"
    repo.mkdir()

    subprocess.run(["git", "init"], cwd=repo, capture_output=True, check=True)
    subprocess.run(
        ["git", "symbolic-ref", "HEAD", "refs/heads/main"],
        cwd=repo,
        capture_output=True,
        check=True,
    )

    # Configure git user (required for commits)
    subprocess.run(
        ["git", "config", "user.email", "test@example.com"],
        cwd=repo,
        capture_output=True,
        check=True,
    )
    subprocess.run(
        ["git", "config", "user.name", "Test User"],
        cwd=repo,
        capture_output=True,
        check=True,
    )
    subprocess.run(
        ["git", "config", "commit.gpgsign", "false"], cwd=repo, capture_output=True, check=True
    )

    return repo
