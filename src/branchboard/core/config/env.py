"""Environment file helpers.

BRANCHBOARD_* overrides may also live in .env files:
- OS environment (highest precedence)
- Project environment files (.env, .env.local)
- User environment file (~/.config/branchboard/.env)

Values from .env files never override variables already present in the
process environment. Nothing here writes to os.environ; the layered view
is returned to the config loader.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from dotenv import dotenv_values

ENV_PREFIX = "BRANCHBOARD_"


def _read_env(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    values = dotenv_values(path)
    out: dict[str, str] = {}
    for k, v in values.items():
        if k is None or v is None:
            continue
        out[str(k)] = str(v)
    return out


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge BRANCHBOARD_* values from user + project .env files and the OS.

    Args:
        project_dir: base directory for project env paths (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths
        environ: process environment (defaults to os.environ)

    Returns:
        BRANCHBOARD_* variables, precedence os env > project .env > user .env
    """
    if project_dir is None:
        project_dir = Path.cwd()
    if environ is None:
        environ = os.environ

    if user_env_paths is None:
        xdg_home = Path(environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        user_env_paths = [xdg_home / "branchboard" / ".env"]

    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    merged: dict[str, str] = {}
    for p in [*user_env_paths, *project_env_paths]:
        merged.update(_read_env(Path(p)))

    merged.update(environ)
    return {k: v for k, v in merged.items() if k.startswith(ENV_PREFIX)}
