"""
Unit tests for configuration loader.

Tests multi-layer config merging, camelCase keys, environment variable
overrides, caching, and XDG directory handling.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from branchboard.core.config import (
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
)
from branchboard.core.config.env import load_layered_env
from branchboard.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    get_xdg_config_home,
    load_json_file,
    normalize_keys,
)
from branchboard.core.config.models import BoardConfig, PrefixConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_simple_merge(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        assert deep_merge(base, override) == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"a": 1, "b": {"x": 10, "y": 20}}
        override = {"b": {"y": 30, "z": 40}, "c": 3}
        assert deep_merge(base, override) == {"a": 1, "b": {"x": 10, "y": 30, "z": 40}, "c": 3}

    def test_override_replaces_non_dict(self):
        assert deep_merge({"a": [1, 2, 3]}, {"a": [4, 5]}) == {"a": [4, 5]}

    def test_does_not_mutate_base(self):
        base = {"a": {"x": 1}}
        deep_merge(base, {"a": {"y": 2}})
        assert base == {"a": {"x": 1}}


class TestNormalizeKeys:
    def test_camel_case_to_field_names(self):
        raw = {"checkActiveBranches": False, "zeroPaddedIds": 3, "statuses": ["A"]}
        assert normalize_keys(raw) == {
            "check_active_branches": False,
            "zero_padded_ids": 3,
            "statuses": ["A"],
        }

    def test_unknown_keys_pass_through(self):
        assert normalize_keys({"somethingElse": 1}) == {"somethingElse": 1}


class TestXdgConfigHome:
    def test_uses_env_var(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_xdg_config_home() == tmp_path

    def test_defaults_to_dot_config(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_xdg_config_home() == Path.home() / ".config"

    def test_user_config_path(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_user_config_path() == tmp_path / "branchboard" / "config.json"


class TestLoadJsonFile:
    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "nope.json") is None

    def test_invalid_json_is_ignored(self, tmp_path, caplog):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert load_json_file(path) is None
        assert "Failed to parse config" in caplog.text

    def test_non_object_is_ignored(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        assert load_json_file(path) is None

    def test_keys_are_normalized(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text(json.dumps({"activeBranchDays": 7}))
        assert load_json_file(path) == {"active_branch_days": 7}


class TestEnvOverrides:
    def test_bool_overrides(self, monkeypatch):
        monkeypatch.setenv("BRANCHBOARD_CHECK_ACTIVE_BRANCHES", "false")
        monkeypatch.setenv("BRANCHBOARD_REMOTE_OPERATIONS", "0")
        result = apply_env_overrides({"check_active_branches": True})
        assert result["check_active_branches"] is False
        assert result["remote_operations"] is False

    def test_days_override(self, monkeypatch):
        monkeypatch.setenv("BRANCHBOARD_ACTIVE_BRANCH_DAYS", "5")
        assert apply_env_overrides({})["active_branch_days"] == 5

    def test_invalid_days_ignored(self, monkeypatch):
        monkeypatch.setenv("BRANCHBOARD_ACTIVE_BRANCH_DAYS", "soon")
        assert "active_branch_days" not in apply_env_overrides({})

    def test_negative_days_ignored(self, monkeypatch):
        monkeypatch.setenv("BRANCHBOARD_ACTIVE_BRANCH_DAYS", "-1")
        assert "active_branch_days" not in apply_env_overrides({})


class TestLayeredEnv:
    def test_project_env_overrides_user_env(self, tmp_path):
        user_env = tmp_path / "user.env"
        user_env.write_text("BRANCHBOARD_ACTIVE_BRANCH_DAYS=10\nBRANCHBOARD_REMOTE_OPERATIONS=false\n")
        project_env = tmp_path / ".env"
        project_env.write_text("BRANCHBOARD_ACTIVE_BRANCH_DAYS=3\n")

        env = load_layered_env(
            user_env_paths=[user_env], project_env_paths=[project_env], environ={}
        )

        assert env == {
            "BRANCHBOARD_ACTIVE_BRANCH_DAYS": "3",
            "BRANCHBOARD_REMOTE_OPERATIONS": "false",
        }

    def test_os_env_wins(self, tmp_path):
        (tmp_path / ".env").write_text("BRANCHBOARD_ACTIVE_BRANCH_DAYS=3\n")
        env = load_layered_env(
            project_dir=tmp_path,
            user_env_paths=[],
            environ={"BRANCHBOARD_ACTIVE_BRANCH_DAYS": "9"},
        )
        assert env["BRANCHBOARD_ACTIVE_BRANCH_DAYS"] == "9"

    def test_unrelated_variables_dropped(self, tmp_path):
        (tmp_path / ".env").write_text("API_TOKEN=secret\n")
        env = load_layered_env(project_dir=tmp_path, user_env_paths=[], environ={"HOME": "/x"})
        assert env == {}

    def test_load_config_reads_project_env(self, tmp_path):
        (tmp_path / ".env").write_text("BRANCHBOARD_CHECK_ACTIVE_BRANCHES=false\n")
        assert load_config(tmp_path, use_cache=False).check_active_branches is False

    def test_explicit_environ(self):
        result = apply_env_overrides({}, {"BRANCHBOARD_ACTIVE_BRANCH_DAYS": "4"})
        assert result["active_branch_days"] == 4


# ==============================================================================
# Layered Loading Tests
# ==============================================================================


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert config.statuses == ["To Do", "In Progress", "Done"]
        assert config.check_active_branches is True
        assert config.remote_operations is True
        assert config.active_branch_days == 30
        assert config.task_resolution_strategy == "most_progressed"
        assert config.zero_padded_ids is None
        assert config.prefixes.task == "task"
        assert config.default_ordinal_step == 1000

    def test_default_dict_matches_model(self):
        assert get_default_config() == BoardConfig().model_dump()

    def test_project_overrides_user(self, tmp_path, monkeypatch):
        user_dir = tmp_path / "xdg" / "branchboard"
        user_dir.mkdir(parents=True)
        (user_dir / "config.json").write_text(
            json.dumps({"active_branch_days": 10, "remoteOperations": False})
        )
        project = tmp_path / "project"
        project.mkdir()
        get_project_config_path(project).write_text(json.dumps({"activeBranchDays": 3}))

        config = load_config(project, use_cache=False)

        assert config.active_branch_days == 3
        assert config.remote_operations is False

    def test_env_overrides_project(self, tmp_path, monkeypatch):
        get_project_config_path(tmp_path).write_text(json.dumps({"checkActiveBranches": True}))
        monkeypatch.setenv("BRANCHBOARD_CHECK_ACTIVE_BRANCHES", "off")

        assert load_config(tmp_path, use_cache=False).check_active_branches is False

    def test_nested_prefixes(self, tmp_path):
        get_project_config_path(tmp_path).write_text(
            json.dumps({"prefixes": {"task": "Back-"}})
        )
        config = load_config(tmp_path, use_cache=False)
        assert config.prefixes.task == "back"
        assert config.prefixes.draft == "draft"

    def test_broken_project_file_falls_back(self, tmp_path):
        get_project_config_path(tmp_path).write_text("{")
        assert load_config(tmp_path, use_cache=False) == BoardConfig()

    def test_invalid_merged_config_raises(self, tmp_path):
        get_project_config_path(tmp_path).write_text(
            json.dumps({"taskResolutionStrategy": "newest"})
        )
        with pytest.raises(ValidationError):
            load_config(tmp_path, use_cache=False)

    def test_cache(self, tmp_path):
        first = load_config(tmp_path)
        get_project_config_path(tmp_path).write_text(json.dumps({"activeBranchDays": 1}))
        assert load_config(tmp_path) is first

        clear_cache()
        assert load_config(tmp_path).active_branch_days == 1


class TestBoardConfigModel:
    def test_camel_case_construction(self):
        config = BoardConfig.model_validate({"zeroPaddedIds": 3, "backlogDir": "work"})
        assert config.zero_padded_ids == 3
        assert config.backlog_dir == "work"

    def test_rejects_duplicate_statuses(self):
        with pytest.raises(ValidationError):
            BoardConfig(statuses=["To Do", "to do"])

    def test_rejects_blank_status(self):
        with pytest.raises(ValidationError):
            BoardConfig(statuses=["To Do", " "])

    def test_terminal_status_is_last(self):
        assert BoardConfig(statuses=["Open", "Closed"]).terminal_status == "Closed"

    def test_status_rank(self):
        config = BoardConfig()
        assert config.status_rank("In Progress") == 1
        assert config.status_rank("in progress") == 1
        assert config.status_rank("Blocked") == -1

    def test_prefix_rejects_empty(self):
        with pytest.raises(ValidationError):
            PrefixConfig(task="-")
