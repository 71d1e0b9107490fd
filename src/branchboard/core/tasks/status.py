"""
Status helpers.

Statuses are opaque tokens. They are validated against the configured
ordered list at the boundary and compared internally by rank.
"""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def _fold(value: str) -> str:
    return _WHITESPACE.sub("", value.strip().lower())


def status_rank(status: str | None, statuses: list[str]) -> int:
    """
    Position of status in the configured list.

    Unranked (unknown or missing) statuses return -1 so they sort below
    every configured status.
    """
    if not status:
        return -1
    try:
        return statuses.index(status)
    except ValueError:
        pass
    folded = _fold(status)
    for index, candidate in enumerate(statuses):
        if _fold(candidate) == folded:
            return index
    return -1


def canonical_status(value: str | None, statuses: list[str]) -> str | None:
    """
    Find the configured spelling of a status.

    Matching ignores case and whitespace ("in progress" and "InProgress"
    both match "In Progress"). Returns None when nothing matches.
    """
    rank = status_rank(value, statuses)
    return statuses[rank] if rank >= 0 else None


def is_terminal_status(status: str | None, terminal_status: str) -> bool:
    """True when status names the terminal column (e.g. "Done")."""
    if not status:
        return False
    return _fold(status) == _fold(terminal_status)
