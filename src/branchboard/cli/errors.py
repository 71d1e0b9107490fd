"""
Error handling and exit codes for the branchboard CLI.

Validation problems (bad ids, impossible moves, unknown statuses) are the
user's to fix and exit with USER_ERROR; everything else exits with
GENERAL_ERROR.
"""

from enum import IntEnum
from typing import NoReturn

import typer
from rich.console import Console

from branchboard.core.errors import BoardError, ScanCancelledError, TaskValidationError
from branchboard.core.vcs.git import GitError

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for branchboard CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error (git failure, cancelled scan, unreadable data)."""

    USER_ERROR = 2
    """Invalid request (actionable by user)."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Task TASK-9 not found",
        ...     solution="branchboard list  # to see available tasks",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def exit_code_for(error: BaseException) -> ExitCode:
    if isinstance(error, TaskValidationError):
        return ExitCode.USER_ERROR
    return ExitCode.GENERAL_ERROR


def handle_error(error: BoardError | GitError) -> NoReturn:
    """Print a known error and exit with its code."""
    if isinstance(error, GitError):
        print_error("Git command failed", reason=error.stderr or str(error))
    elif isinstance(error, ScanCancelledError):
        print_error(str(error), solution="run the command again")
    else:
        print_error(str(error))
    raise typer.Exit(exit_code_for(error))


def handle_interrupt() -> NoReturn:
    """Exit with the conventional Ctrl+C status."""
    console.print("\n[yellow]Interrupted[/yellow]")
    raise typer.Exit(ExitCode.SIGINT)
