"""
boardsync CLI - Boards and tasks in the local store.
"""

import json

import typer
from rich.console import Console
from rich.table import Table

from boardsync.cli import common
from boardsync.cli.errors import ExitCode, print_error, report_error
from boardsync.core.sync import move_task
from boardsync.core.sync.exceptions import BoardsyncError
from boardsync.core.tasks.models import TaskStatus

console = Console()
app = typer.Typer(help="View boards and move tasks")

STATUS_COLORS = {
    TaskStatus.BACKLOG: "white",
    TaskStatus.ONDECK: "cyan",
    TaskStatus.INPROCESS: "yellow",
    TaskStatus.COMPLETE: "green",
}


@app.command()
def boards() -> None:
    """
    List boards.

    Examples:
        boardsync task boards
    """
    config = common.get_config()
    all_boards = common.get_store(config).list_boards()
    if not all_boards:
        console.print("[yellow]No boards found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Integration", style="dim")

    for board in all_boards:
        table.add_row(board.id, board.name, board.kind.value, board.integration_id or "")

    console.print(table)


@app.command("list")
def list_tasks(
    board_id: str = typer.Argument(..., help="Board to list"),
    status: TaskStatus | None = typer.Option(None, "--status", "-s", help="Filter by status"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    List tasks on a board.

    Examples:
        boardsync task list b1a2b3c4d5
        boardsync task list b1a2b3c4d5 --status inprocess
    """
    config = common.get_config()
    store = common.get_store(config)
    if store.get_board(board_id) is None:
        print_error(f"Board not found: {board_id}", solution="boardsync task boards")
        raise typer.Exit(ExitCode.USER_ERROR)

    tasks = store.get_tasks_for_board(board_id)
    if status is not None:
        tasks = [t for t in tasks if t.status == status]

    if json_output:
        console.print(json.dumps([t.model_dump(mode="json") for t in tasks], indent=2))
        return

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Status", width=10)
    table.add_column("P", width=2, justify="center")
    table.add_column("Title", overflow="fold")
    table.add_column("Remote", style="dim")

    for task in tasks:
        color = STATUS_COLORS.get(task.status, "white")
        link = task.remote_link()
        remote = link[1].remote_url or link[1].remote_item_id if link else ""
        table.add_row(
            task.id,
            f"[{color}]{task.status.value}[/{color}]",
            task.priority.value[-1] if task.priority else "",
            task.title,
            remote,
        )

    console.print(table)


@app.command()
def move(
    task_id: str = typer.Argument(..., help="Task to move"),
    status: TaskStatus = typer.Argument(..., help="New status"),
) -> None:
    """
    Move a task to another status.

    Remote-linked tasks are pushed upstream; if the push fails the task
    keeps its previous status.

    Examples:
        boardsync task move t1a2b3c4d5 complete
    """
    config = common.get_config()
    store = common.get_store(config)

    task = store.get_task(task_id)
    link = task.remote_link() if task else None
    connectors = common.open_connectors([link[0]] if link else [], config)
    writer = common.build_pushback_writer(config, store, connectors)

    try:
        moved = move_task(store, writer, task_id, status)
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    suffix = " (pushed upstream)" if moved.is_remote_linked else ""
    console.print(f"[green]✓[/green] {moved.title}: {moved.status.value}{suffix}")
