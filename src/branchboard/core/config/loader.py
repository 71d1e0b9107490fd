"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars
"""

import json
import logging
import os
from pathlib import Path
from collections.abc import Mapping
from typing import Any

from .env import load_layered_env
from .models import BoardConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".branchboard.json"

# Cache keyed by resolved project directory
_config_cache: dict[Path, BoardConfig] = {}

_BOOL_ENV_OVERRIDES = {
    "BRANCHBOARD_CHECK_ACTIVE_BRANCHES": "check_active_branches",
    "BRANCHBOARD_REMOTE_OPERATIONS": "remote_operations",
}


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """Path to ~/.config/branchboard/config.json (or XDG equivalent)."""
    return get_xdg_config_home() / "branchboard" / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    """Path to .branchboard.json in the project root."""
    if cwd is None:
        cwd = Path.cwd()
    return cwd / PROJECT_CONFIG_FILE


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 30}})
        {'a': 1, 'b': {'x': 10, 'y': 30}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """
    Round-trip a raw config dict through the model field names.

    Config files may use camelCase (checkActiveBranches) or snake_case
    (check_active_branches). Merging happens on snake_case keys so that a
    camelCase project file overrides a snake_case user file.
    """
    aliases = {
        field.alias: name
        for name, field in BoardConfig.model_fields.items()
        if field.alias
    }
    return {aliases.get(key, key): value for key, value in data.items()}


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return normalize_keys(data)
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        # Config system should be resilient to a broken layer
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ("false", "0", "no", "off", "")


def apply_env_overrides(
    config_dict: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Reads os.environ unless a layered environment is passed in.

    Supported env vars:
        BRANCHBOARD_CHECK_ACTIVE_BRANCHES - overrides check_active_branches
        BRANCHBOARD_REMOTE_OPERATIONS - overrides remote_operations
        BRANCHBOARD_ACTIVE_BRANCH_DAYS - overrides active_branch_days
    """
    env = os.environ if environ is None else environ
    result = config_dict.copy()

    for env_name, key in _BOOL_ENV_OVERRIDES.items():
        if (raw := env.get(env_name)) is not None:
            result[key] = _parse_bool(raw)

    if days_str := env.get("BRANCHBOARD_ACTIVE_BRANCH_DAYS"):
        try:
            days = int(days_str)
        except ValueError:
            logger.warning(
                "Invalid BRANCHBOARD_ACTIVE_BRANCH_DAYS value '%s', ignoring", days_str
            )
        else:
            if days < 0:
                logger.warning(
                    "BRANCHBOARD_ACTIVE_BRANCH_DAYS must be >= 0, got %d, ignoring", days
                )
            else:
                result["active_branch_days"] = days

    return result


def get_default_config() -> dict[str, Any]:
    """Hardcoded default configuration."""
    return BoardConfig().model_dump()


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> BoardConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (BRANCHBOARD_*, then .env files)
        2. Project config (.branchboard.json)
        3. User config (~/.config/branchboard/config.json)
        4. Hardcoded defaults

    Args:
        project_dir: Project directory to load .branchboard.json from (defaults to cwd)
        use_cache: If True, return cached config from previous load

    Returns:
        Validated BoardConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    cache_key = (project_dir or Path.cwd()).resolve()
    if use_cache and cache_key in _config_cache:
        return _config_cache[cache_key]

    merged = get_default_config()

    if user_config := load_json_file(get_user_config_path()):
        merged = deep_merge(merged, user_config)

    if project_config := load_json_file(get_project_config_path(project_dir)):
        merged = deep_merge(merged, project_config)

    merged = apply_env_overrides(merged, load_layered_env(project_dir=cache_key))

    config = BoardConfig.model_validate(merged)
    _config_cache[cache_key] = config
    return config


def clear_cache() -> None:
    """
    Clear the cached configuration.

    Useful for testing or when config files change during execution.
    """
    _config_cache.clear()
