"""
boardsync CLI - Import a remote project as a new local board.

Import suggests a status mapping from the remote state names, shows it
for review, then creates the board and integration and runs the first
sync.
"""

from collections.abc import Sequence

import typer
from rich.console import Console
from rich.table import Table

from boardsync.cli import common
from boardsync.cli.errors import ExitCode, print_error, report_error
from boardsync.core.connectors import RemoteConnector
from boardsync.core.connectors.github import CONTENT_TYPES
from boardsync.core.sync.exceptions import BoardsyncError
from boardsync.core.sync.mapping import (
    azure_devops_priority_mapping,
    build_status_mapping,
    states_for_types,
    suggest_status_mapping,
)
from boardsync.core.sync.models import FieldMapping, RemoteFieldOption, RemoteProject
from boardsync.core.tasks.models import RemoteSystem, TaskStatus

console = Console()
app = typer.Typer(help="Import a remote project as a new board")

MappingRows = list[tuple[RemoteFieldOption, TaskStatus | None]]


def apply_overrides(rows: MappingRows, overrides: Sequence[str]) -> MappingRows:
    """
    Apply "Option Name=status" overrides to suggested rows.

    An empty status ("Blocked=") leaves the option unmapped.

    Raises:
        typer.BadParameter: On malformed overrides, unknown options or statuses
    """
    by_name = {option.name.lower(): i for i, (option, _) in enumerate(rows)}
    result = list(rows)

    for override in overrides:
        name, sep, value = override.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected NAME=STATUS, got '{override}'")

        index = by_name.get(name.strip().lower())
        if index is None:
            known = ", ".join(option.name for option, _ in rows)
            raise typer.BadParameter(f"Unknown remote state '{name}'. Known: {known}")

        value = value.strip().lower()
        if value:
            try:
                status: TaskStatus | None = TaskStatus(value)
            except ValueError:
                valid = ", ".join(s.value for s in TaskStatus)
                raise typer.BadParameter(f"Unknown status '{value}'. Valid: {valid}")
        else:
            status = None
        result[index] = (result[index][0], status)

    return result


def _show_mapping(project: RemoteProject, rows: MappingRows) -> None:
    table = Table(
        title=f"Status mapping for {project.name}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Remote state")
    table.add_column("Category", style="dim")
    table.add_column("Local status")

    for option, status in rows:
        local = status.value if status else "[yellow]unmapped[/yellow]"
        table.add_row(option.name, option.category or "", local)

    console.print(table)


def _confirm_and_import(
    system: RemoteSystem,
    connector: RemoteConnector,
    project: RemoteProject,
    rows: MappingRows,
    mappings: list[FieldMapping],
    yes: bool,
    type_filter: list[str] | None = None,
    remote_query: str | None = None,
) -> None:
    _show_mapping(project, rows)
    if not yes and not typer.confirm("Import with this mapping?", default=True):
        console.print("[yellow]Import cancelled[/yellow]")
        raise typer.Exit(ExitCode.SUCCESS)

    config = common.get_config()
    service = common.build_sync_service(config, {system: connector})
    try:
        integration = service.import_project(
            project,
            mappings,
            type_filter=type_filter,
            remote_query=remote_query,
        )
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    status = service.publisher.get(integration.id)
    console.print(
        f"[green]✓[/green] Imported [bold]{project.name}[/bold] "
        f"as board {integration.local_board_id}"
    )
    console.print(f"  Integration: {integration.id}")
    if status.last_result is not None:
        console.print(f"  First sync: {status.last_result.summary()}")
        for error in status.last_result.errors:
            console.print(f"  [yellow]⚠[/yellow] {error}")


@app.command("github")
def github(
    project_id: str = typer.Argument(..., help="GitHub project node id (PVT_...)"),
    status_field: str = typer.Option(
        "Status",
        "--status-field",
        help="Single-select field that holds the item status",
    ),
    types: list[str] | None = typer.Option(
        None,
        "--type",
        "-t",
        help="Item types to import: Issue, PullRequest, DraftIssue (can be repeated)",
    ),
    overrides: list[str] | None = typer.Option(
        None,
        "--map",
        "-m",
        help='Override a suggestion, e.g. "In Review=inprocess" or "Blocked=" (repeatable)',
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Import without confirmation"),
) -> None:
    """
    Import a GitHub project as a new board.

    Examples:
        boardsync import github PVT_kwDOABC123
        boardsync import github PVT_kwDOABC123 --type Issue --map "Blocked=backlog"
    """
    for t in types or []:
        if t not in CONTENT_TYPES:
            print_error(f"Unknown item type: {t}", reason=f"Valid: {', '.join(CONTENT_TYPES)}")
            raise typer.Exit(ExitCode.USER_ERROR)

    config = common.get_config()
    try:
        connector = common.open_connector(RemoteSystem.GITHUB, config)
        project = connector.get_project(project_id)
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    field = project.field_named(status_field)
    if field is None:
        available = ", ".join(f.name for f in project.fields) or "none"
        print_error(
            f"Field '{status_field}' not found in {project.name}",
            reason=f"Single-select fields: {available}",
            solution="boardsync import github <id> --status-field <name>",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    rows = apply_overrides(suggest_status_mapping(field.options), overrides or [])
    mapping = build_status_mapping(field.id, field.name, rows)

    _confirm_and_import(
        RemoteSystem.GITHUB,
        connector,
        project,
        rows,
        [mapping],
        yes,
        type_filter=list(types) if types else None,
    )


@app.command("azure-devops")
def azure_devops(
    project_id: str = typer.Argument(..., help="Azure DevOps project id or name"),
    types: list[str] | None = typer.Option(
        None,
        "--type",
        "-t",
        help="Work item types to import, e.g. Bug, Task (default: all)",
    ),
    query: str | None = typer.Option(
        None,
        "--query",
        "-q",
        help="Custom WIQL query replacing the type filter",
    ),
    overrides: list[str] | None = typer.Option(
        None,
        "--map",
        "-m",
        help='Override a suggestion, e.g. "Resolved=complete" or "Removed=" (repeatable)',
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Import without confirmation"),
) -> None:
    """
    Import an Azure DevOps project as a new board.

    Examples:
        boardsync import azure-devops Fabrikam --type Bug --type Task
        boardsync import azure-devops Fabrikam --query "SELECT [System.Id] FROM WorkItems"
    """
    config = common.get_config()
    try:
        connector = common.open_connector(RemoteSystem.AZURE_DEVOPS, config)
        project = connector.get_project(project_id)
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    known = [t.name for t in project.item_types]
    selected = list(types) if types else known
    unknown = [t for t in selected if t not in known]
    if unknown:
        print_error(
            f"Unknown work item type(s): {', '.join(unknown)}",
            reason=f"Types in {project.name}: {', '.join(known) or 'none'}",
        )
        raise typer.Exit(ExitCode.USER_ERROR)

    rows = apply_overrides(
        suggest_status_mapping(states_for_types(project, selected)), overrides or []
    )
    mappings = [
        build_status_mapping("System.State", "State", rows),
        azure_devops_priority_mapping(),
    ]

    _confirm_and_import(
        RemoteSystem.AZURE_DEVOPS,
        connector,
        project,
        rows,
        mappings,
        yes,
        type_filter=selected,
        remote_query=query,
    )
