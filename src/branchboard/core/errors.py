"""
Exception hierarchy for branchboard core operations.

Validation errors are local and recoverable: callers surface them to the
user and carry on. Scanning problems on individual branches are never
raised; they are logged and skipped by the scanner.
"""


class BoardError(Exception):
    """Base class for all branchboard errors."""


class TaskValidationError(BoardError, ValueError):
    """A caller-supplied request could not be applied to the active view."""


class TaskNotFoundError(TaskValidationError):
    """Raised when a referenced task id is not present."""

    def __init__(self, task_id: str, context: str | None = None):
        message = f"Task {task_id} not found"
        if context:
            message = f"{message} {context}"
        super().__init__(message)
        self.task_id = task_id


class DuplicateTaskIdError(TaskValidationError):
    """Raised when an ordered id list names the same task twice."""

    def __init__(self, task_id: str):
        super().__init__(f"Duplicate task id {task_id} in ordered task ids")
        self.task_id = task_id


class ReadOnlyTaskError(TaskValidationError):
    """Raised when an edit targets a task whose content lives on another branch."""

    def __init__(self, task_id: str, branch: str):
        super().__init__(
            f"Task {task_id} exists in branch '{branch}' and cannot be modified "
            "from the current branch. Switch to that branch to modify it."
        )
        self.task_id = task_id
        self.branch = branch


class SequencePlanError(TaskValidationError):
    """Raised when a sequence move cannot be planned."""


class InvalidStatusError(TaskValidationError):
    """Raised when a status is not one of the configured statuses."""

    def __init__(self, status: str, statuses: list[str]):
        super().__init__(
            f"Invalid status '{status}'. Valid statuses: {', '.join(statuses)}"
        )
        self.status = status
        self.statuses = statuses


class RecordParseError(BoardError, ValueError):
    """Raised when a task record cannot be parsed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(f"{message} ({path})" if path else message)
        self.path = path


class ScanCancelledError(BoardError):
    """
    Raised when a branch scan is cancelled.

    The scan never returns partial state on cancellation; callers may
    simply retry the whole operation.
    """

    retryable = True

    def __init__(self, message: str = "Branch scan cancelled"):
        super().__init__(message)
