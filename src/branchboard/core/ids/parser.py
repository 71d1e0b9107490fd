"""
ID parser and comparison helpers.

Public API:
    - parse_id: Parse string ID into a TaskIdentifier
    - normalize_id: Canonical spelling of an id (upper-case prefix)
    - ids_equal: Case-insensitive, segment-wise numeric comparison
    - id_sort_key: Natural sort key (TASK-2 before TASK-10)
    - build_id_pattern / extract_id_from_filename: prefix-aware matching
"""

import re

from branchboard.core.ids.models import TaskIdentifier

_ANY_ID_REGEX = re.compile(r"^([A-Za-z][A-Za-z0-9_]*)-(\d+(?:\.\d+)*)$")
_BARE_BODY_REGEX = re.compile(r"^\d+(?:\.\d+)*$")


def build_id_pattern(prefix: str) -> re.Pattern[str]:
    """
    Anchored, case-insensitive pattern for ids with the given prefix.

    Group 1 is the body ("12" or "12.3").

    Examples:
        >>> build_id_pattern("task").match("TASK-12.3").group(1)
        '12.3'
    """
    return re.compile(rf"^{re.escape(prefix)}-(\d+(?:\.\d+)*)$", re.IGNORECASE)


def _build_filename_pattern(prefix: str) -> re.Pattern[str]:
    # Record files are named "<id> - <title>.md"; the id must be followed
    # by a non-digit, non-dot-digit boundary.
    return re.compile(
        rf"^({re.escape(prefix)}-\d+(?:\.\d+)*)(?![\d])(?!\.\d)", re.IGNORECASE
    )


def extract_id_from_filename(path: str, prefix: str) -> str | None:
    """
    Pull a task id out of a record path.

    Only the file name is inspected, so parent folders named after a task
    (task-1/subtasks/task-1.1 - x.md) do not produce false matches.

    Examples:
        >>> extract_id_from_filename("backlog/tasks/task-12 - Fix login.md", "task")
        'TASK-12'
        >>> extract_id_from_filename("backlog/tasks/readme.md", "task") is None
        True
    """
    filename = path.rsplit("/", 1)[-1]
    match = _build_filename_pattern(prefix).match(filename)
    if match is None:
        return None
    return normalize_id(match.group(1), prefix)


def parse_id(id_str: str, prefix: str | None = None) -> TaskIdentifier | None:
    """
    Parse a string id.

    A bare body ("12" or "12.3") is accepted when a default prefix is
    given. Returns None for anything else.

    Examples:
        >>> str(parse_id("task-12"))
        'TASK-12'
        >>> str(parse_id("7", prefix="task"))
        'TASK-7'
        >>> parse_id("not an id") is None
        True
    """
    value = id_str.strip()
    match = _ANY_ID_REGEX.match(value)
    if match:
        return TaskIdentifier(prefix=match.group(1), body=match.group(2))
    if prefix and _BARE_BODY_REGEX.match(value):
        return TaskIdentifier(prefix=prefix, body=value)
    return None


def normalize_id(id_str: str, prefix: str | None = None) -> str:
    """
    Canonical form of an id; unparsable input is returned stripped.

    Examples:
        >>> normalize_id("task-7")
        'TASK-7'
        >>> normalize_id("7", prefix="task")
        'TASK-7'
    """
    parsed = parse_id(id_str, prefix)
    return str(parsed) if parsed else id_str.strip()


def ids_equal(left: str, right: str) -> bool:
    """
    Compare ids case-insensitively and numerically per segment.

    Examples:
        >>> ids_equal("task-045", "TASK-45")
        True
        >>> ids_equal("TASK-4.1", "TASK-4")
        False
    """
    a = parse_id(left)
    b = parse_id(right)
    if a is not None and b is not None:
        return a.prefix == b.prefix and a.segments == b.segments
    return left.strip().lower() == right.strip().lower()


def id_sort_key(id_str: str) -> tuple[str, tuple[int, ...], str]:
    """Natural sort key: prefix, then numeric segments, then raw text."""
    parsed = parse_id(id_str)
    if parsed is None:
        return (id_str.strip().lower(), (), id_str)
    return (parsed.prefix, parsed.segments, id_str)
