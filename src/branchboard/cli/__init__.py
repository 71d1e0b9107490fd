"""
branchboard CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from branchboard import __version__
from branchboard.cli import board

# Create the main Typer app
app = typer.Typer(
    name="branchboard",
    help="Task board reconciled across git branches",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"branchboard {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    project_dir: str | None = typer.Option(
        None,
        "--project-dir",
        "-C",
        help="Repository root (default: current directory)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    branchboard - one view of your tasks across every branch.

    Tasks live as markdown records in the repository. The same task may
    differ between branches; branchboard picks the current state of each
    one and derives manual ordering and dependency sequences from it.

    Examples:
        branchboard list                          # Reconciled task list
        branchboard sequences                     # Dependency sequences
        branchboard next-id                       # Next free task id
        branchboard move TASK-7 --sequence 2      # Re-level a task
        branchboard reorder TASK-3 -s "To Do" -o TASK-1,TASK-3
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    ctx.obj = {"debug": debug, "project_dir": project_dir}


app.command(name="list")(board.list_tasks)
app.command(name="sequences")(board.sequences)
app.command(name="next-id")(board.next_id)
app.command(name="move")(board.move)
app.command(name="reorder")(board.reorder)


def cli_main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "main", "cli_main"]
