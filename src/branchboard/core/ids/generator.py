"""
ID generator.

Computes the next unused identifier for a record type from the ids that
are currently in use.

Generator functions:
    - next_task_id: Next top-level id for a prefix
    - next_subtask_id: Next {parent}.{n} id
    - IdAllocator: Chooses the id source per entity type

Task ids are read from the reconciled view across branches (active and
completed ids only: archiving is a soft delete and frees the id). Drafts,
documents and decisions are not branch-merged, so only their own local
collection is scanned.

Known limitation: allocation is advisory. Two callers running at the same
time may compute the same id; the writer has to handle a collision when
it saves the record.

Example:
    >>> next_task_id(["TASK-1", "TASK-3"], "task")
    'TASK-4'
    >>> next_task_id(["TASK-045"], "task", zero_padded_ids=3)
    'TASK-046'
    >>> next_subtask_id(["TASK-4", "task-4.1", "TASK-4.2"], "TASK-4")
    'TASK-4.3'
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING

from branchboard.core.errors import TaskValidationError
from branchboard.core.ids.models import EntityType
from branchboard.core.ids.parser import build_id_pattern, ids_equal, normalize_id

if TYPE_CHECKING:
    from branchboard.core.config.models import BoardConfig
    from branchboard.core.tasks.store import TaskStore

logger = logging.getLogger(__name__)

# Subtask numbers are padded to this width when zero padding is enabled
SUBTASK_PAD_WIDTH = 2


def _format_number(number: int, width: int | None) -> str:
    if width and width > 0:
        return str(number).zfill(width)
    return str(number)


def next_task_id(
    existing_ids: Iterable[str],
    prefix: str,
    zero_padded_ids: int | None = None,
) -> str:
    """
    Next top-level id for a prefix.

    Only ids of the form {prefix}-{n} count; subtask ids and ids with
    other prefixes are ignored. Gaps are never filled.

    Args:
        existing_ids: Ids currently in use
        prefix: Configured prefix (any case)
        zero_padded_ids: Pad the number to this width when set

    Returns:
        The new id with an upper-case prefix
    """
    pattern = build_id_pattern(prefix)
    highest = 0
    for id_str in existing_ids:
        match = pattern.match(id_str.strip())
        if match is None or "." in match.group(1):
            continue
        highest = max(highest, int(match.group(1)))
    return f"{prefix.upper()}-{_format_number(highest + 1, zero_padded_ids)}"


def next_subtask_id(
    existing_ids: Iterable[str],
    parent_id: str,
    zero_padded_ids: int | None = None,
) -> str:
    """
    Next subtask id under a parent.

    Matches {parent}.{n} case-insensitively; deeper descendants
    ({parent}.{n}.{m}) count toward {n}.

    Args:
        existing_ids: Ids currently in use
        parent_id: Parent task id
        zero_padded_ids: When set, subtask numbers are padded to two digits

    Returns:
        {parent}.{n} using the parent's spelling from existing_ids if present
    """
    ids = [id_str.strip() for id_str in existing_ids]
    parent = next((id_str for id_str in ids if ids_equal(id_str, parent_id)), None)
    parent = parent or normalize_id(parent_id)
    upper_parent = parent.upper() + "."

    highest = 0
    for id_str in ids:
        if not id_str.upper().startswith(upper_parent):
            continue
        head = id_str[len(upper_parent):].split(".", 1)[0]
        if head.isdigit():
            highest = max(highest, int(head))

    width = SUBTASK_PAD_WIDTH if zero_padded_ids else None
    return f"{parent}.{_format_number(highest + 1, width)}"


class IdAllocator:
    """
    Mints ids for new records.

    Task ids come from ``task_id_source``, an async callable returning the
    reconciled active + completed id set (see Board.task_ids_in_use).
    Other entity types are read from the store.

    Example:
        >>> allocator = IdAllocator(config, board.task_ids_in_use, store)
        >>> await allocator.allocate(EntityType.TASK)
        'TASK-8'
    """

    def __init__(
        self,
        config: BoardConfig,
        task_id_source: Callable[[], Awaitable[list[str]]],
        store: TaskStore,
    ) -> None:
        self.config = config
        self.task_id_source = task_id_source
        self.store = store

    def prefix_for(self, entity_type: EntityType) -> str:
        """Configured prefix for an entity type."""
        prefixes = self.config.prefixes
        return {
            EntityType.TASK: prefixes.task,
            EntityType.DRAFT: prefixes.draft,
            EntityType.DOCUMENT: prefixes.document,
            EntityType.DECISION: prefixes.decision,
        }[entity_type]

    async def existing_ids(self, entity_type: EntityType) -> list[str]:
        """Ids currently in use for an entity type."""
        if entity_type is EntityType.TASK:
            return await self.task_id_source()
        if entity_type is EntityType.DRAFT:
            return [task.id for task in self.store.list_drafts()]
        if entity_type is EntityType.DOCUMENT:
            return self.store.list_document_ids()
        return self.store.list_decision_ids()

    async def allocate(
        self,
        entity_type: EntityType = EntityType.TASK,
        parent: str | None = None,
    ) -> str:
        """
        Return the next unused id.

        Args:
            entity_type: Kind of record the id is for
            parent: Parent task id; only meaningful for tasks

        Raises:
            TaskValidationError: If a parent is given for a non-task entity
        """
        if parent is not None and entity_type is not EntityType.TASK:
            raise TaskValidationError("Only tasks can have a parent id")

        existing = await self.existing_ids(entity_type)
        if parent is not None:
            new_id = next_subtask_id(existing, parent, self.config.zero_padded_ids)
        else:
            new_id = next_task_id(
                existing, self.prefix_for(entity_type), self.config.zero_padded_ids
            )
        logger.debug("Allocated %s id %s (%d existing)", entity_type.value, new_id, len(existing))
        return new_id
