"""
Task record codec.

A task record is a markdown file with a YAML front matter block:

    ---
    id: TASK-12
    title: Fix login redirect
    status: In Progress
    ordinal: 2000
    dependencies: [TASK-3]
    parent_task_id: TASK-10
    milestone: v1
    ---
    Free-form body...

Only the fields the core needs are interpreted; the body is carried
verbatim.
"""

from __future__ import annotations

import math
from typing import Any

import frontmatter  # type: ignore[import-untyped]
import yaml

from branchboard.core.errors import RecordParseError
from branchboard.core.ids.parser import normalize_id
from branchboard.core.tasks.models import Task

# Front matter keys written by other tools for the same field
_KEY_ALIASES = {
    "parentTaskId": "parent_task_id",
    "parent": "parent_task_id",
    "depends_on": "dependencies",
}


def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value).strip()]


def _as_ordinal(value: Any, path: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        ordinal = float(value)
    except (TypeError, ValueError) as e:
        raise RecordParseError(f"Invalid ordinal {value!r}", path) from e
    if not math.isfinite(ordinal):
        raise RecordParseError(f"Ordinal must be finite, got {value!r}", path)
    if ordinal < 0:
        raise RecordParseError(f"Ordinal must be non-negative, got {value!r}", path)
    return ordinal


def parse_task_record(content: str, path: str | None = None) -> Task:
    """
    Parse a task record.

    Ids (own, dependencies, parent) are normalized to canonical form.

    Args:
        content: Full file content
        path: Where the content came from, used in error messages

    Returns:
        Task without metadata (source, branch, last_modified)

    Raises:
        RecordParseError: If the front matter is malformed or has no id
    """
    try:
        post = frontmatter.loads(content)
    except yaml.YAMLError as e:
        raise RecordParseError(f"Malformed front matter: {e}", path) from e

    meta: dict[str, Any] = {}
    for key, value in post.metadata.items():
        meta[_KEY_ALIASES.get(key, key)] = value

    raw_id = meta.get("id")
    if raw_id is None or not str(raw_id).strip():
        raise RecordParseError("Task record has no id", path)

    parent = meta.get("parent_task_id")
    return Task(
        id=normalize_id(str(raw_id)),
        title=str(meta.get("title") or ""),
        status=str(meta.get("status") or ""),
        ordinal=_as_ordinal(meta.get("ordinal"), path),
        dependencies=[normalize_id(dep) for dep in _as_str_list(meta.get("dependencies"))],
        parent_task_id=normalize_id(str(parent)) if parent else None,
        milestone=str(meta["milestone"]) if meta.get("milestone") else None,
        labels=_as_str_list(meta.get("labels")),
        body=post.content,
    )


def dump_task_record(task: Task) -> str:
    """Serialize a task back to a front matter record."""
    metadata: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "status": task.status,
    }
    if task.ordinal is not None:
        # Keep whole numbers readable in the file
        metadata["ordinal"] = int(task.ordinal) if task.ordinal.is_integer() else task.ordinal
    if task.dependencies:
        metadata["dependencies"] = list(task.dependencies)
    if task.parent_task_id:
        metadata["parent_task_id"] = task.parent_task_id
    if task.milestone:
        metadata["milestone"] = task.milestone
    if task.labels:
        metadata["labels"] = list(task.labels)

    post = frontmatter.Post(task.body, **metadata)
    return frontmatter.dumps(post, sort_keys=False) + "\n"
