"""
Board commands: list tasks, show sequences, allocate ids and move tasks.

All commands read the reconciled view across branches, so a task that
was last changed on another branch shows that branch's content.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from branchboard.cli.errors import handle_error, handle_interrupt
from branchboard.core.board import Board
from branchboard.core.errors import BoardError
from branchboard.core.ids.models import EntityType
from branchboard.core.ordering.ordinals import UNSET
from branchboard.core.tasks.models import SequenceResult, Task
from branchboard.core.vcs.git import GitError

console = Console()


def _open_board(ctx: typer.Context) -> Board:
    project_dir = (ctx.obj or {}).get("project_dir")
    return Board(project_dir=Path(project_dir) if project_dir else None)


def _format_ordinal(value: float | None) -> str:
    if value is None:
        return "-"
    return str(int(value)) if value.is_integer() else f"{value:g}"


def _where(task: Task) -> str:
    if task.branch:
        return f"{task.source.value if task.source else 'branch'}:{task.branch}"
    return task.source.value if task.source else "local"


def _task_table(tasks: list[Task], title: str | None = None) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Ordinal", justify="right")
    table.add_column("Depends on")
    table.add_column("Source", style="dim")
    for task in tasks:
        table.add_row(
            task.id,
            task.title,
            task.status,
            _format_ordinal(task.ordinal),
            ", ".join(task.dependencies),
            _where(task),
        )
    return table


def _print_sequences(result: SequenceResult) -> None:
    if not result.sequences and not result.unsequenced:
        console.print("[dim]No active tasks[/dim]")
        return
    for sequence in result.sequences:
        console.print(_task_table(sequence.tasks, title=f"Sequence {sequence.index}"))
    if result.unsequenced:
        console.print(_task_table(result.unsequenced, title="Unsequenced"))


def list_tasks(
    ctx: typer.Context,
    status: str | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show tasks with this status",
    ),
    include_completed: bool = typer.Option(
        False,
        "--completed",
        help="Include completed tasks",
    ),
) -> None:
    """
    List tasks reconciled across branches.

    Examples:
        branchboard list
        branchboard list --status "In Progress"
        branchboard list --completed
    """
    try:
        with _open_board(ctx) as board:
            tasks = asyncio.run(board.load_tasks(include_completed=include_completed))
    except (BoardError, GitError) as e:
        handle_error(e)
    except KeyboardInterrupt:
        handle_interrupt()

    if status:
        tasks = [t for t in tasks if t.status.lower() == status.strip().lower()]

    if not tasks:
        console.print("[dim]No tasks found[/dim]")
        return
    console.print(_task_table(tasks))


def sequences(ctx: typer.Context) -> None:
    """Show active tasks grouped into dependency sequences."""
    try:
        with _open_board(ctx) as board:
            result = asyncio.run(board.sequences())
    except (BoardError, GitError) as e:
        handle_error(e)
    except KeyboardInterrupt:
        handle_interrupt()
    _print_sequences(result)


def next_id(
    ctx: typer.Context,
    entity_type: EntityType = typer.Option(
        EntityType.TASK,
        "--type",
        "-t",
        help="Kind of record the id is for",
        case_sensitive=False,
    ),
    parent: str | None = typer.Option(
        None,
        "--parent",
        "-p",
        help="Allocate a subtask id under this task",
    ),
) -> None:
    """
    Print the next unused id.

    Examples:
        branchboard next-id
        branchboard next-id --parent TASK-4
        branchboard next-id --type decision
    """
    try:
        with _open_board(ctx) as board:
            new_id = asyncio.run(board.next_id(entity_type, parent))
    except (BoardError, GitError) as e:
        handle_error(e)
    except KeyboardInterrupt:
        handle_interrupt()
    console.print(new_id)


def move(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task to move"),
    sequence: int | None = typer.Option(
        None,
        "--sequence",
        "-q",
        help="Target sequence (1-based)",
    ),
    unsequenced: bool = typer.Option(
        False,
        "--unsequenced",
        help="Take the task out of every sequence",
    ),
) -> None:
    """
    Move a task to another dependency sequence.

    Only the moved task's dependencies are edited.

    Examples:
        branchboard move TASK-7 --sequence 2
        branchboard move TASK-7 --unsequenced
    """
    if sequence is None and not unsequenced:
        console.print("[red]Error:[/red] Pass --sequence N or --unsequenced")
        raise typer.Exit(2)

    try:
        with _open_board(ctx) as board:
            result = asyncio.run(board.move_in_sequences(task_id, sequence, unsequenced))
    except (BoardError, GitError) as e:
        handle_error(e)
    except KeyboardInterrupt:
        handle_interrupt()
    console.print(f"[green]✓[/green] Moved {task_id}")
    _print_sequences(result)


def reorder(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task to move"),
    status: str = typer.Option(..., "--status", "-s", help="Destination status column"),
    order: str = typer.Option(
        ...,
        "--order",
        "-o",
        help="Comma-separated ids of the column in the desired order",
    ),
    milestone: str | None = typer.Option(
        None,
        "--milestone",
        "-m",
        help="Destination milestone (empty string clears it)",
    ),
) -> None:
    """
    Place a task at a position within a status column.

    Examples:
        branchboard reorder TASK-3 --status "To Do" --order TASK-1,TASK-3,TASK-2
    """
    ordered_ids = [part.strip() for part in order.split(",") if part.strip()]
    try:
        with _open_board(ctx) as board:
            plan = asyncio.run(
                board.reorder_task(
                    task_id,
                    status,
                    ordered_ids,
                    milestone if milestone is not None else UNSET,
                )
            )
    except (BoardError, GitError) as e:
        handle_error(e)
    except KeyboardInterrupt:
        handle_interrupt()

    updated = plan.updated_task
    console.print(
        f"[green]✓[/green] {updated.id} → {updated.status} "
        f"(ordinal {_format_ordinal(updated.ordinal)}, {len(plan.changed_tasks)} changed)"
    )
