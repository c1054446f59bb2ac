"""
boardsync CLI - Run sync passes for imported projects.
"""

import typer
from rich.console import Console
from rich.table import Table

from boardsync.cli import common
from boardsync.cli.errors import ExitCode, print_integration_not_found_error, report_error
from boardsync.core.sync.exceptions import BoardsyncError
from boardsync.core.sync.models import SyncResult, SyncStatus

console = Console()
app = typer.Typer(help="Pull remote changes into local boards")


def _print_result(name: str, result: SyncResult) -> None:
    icon = "[yellow]⚠[/yellow]" if result.errors else "[green]✓[/green]"
    console.print(f"{icon} {name}: {result.summary()}")
    for error in result.errors:
        console.print(f"    [dim]{error}[/dim]")


@app.command()
def run(
    integration_id: str = typer.Argument(..., help="Integration to sync"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show status changes as they happen",
    ),
) -> None:
    """
    Sync one integration.

    Fetches every remote item, creates tasks for new ones and updates
    tasks whose title, description or status changed remotely.

    Examples:
        boardsync sync run gh_3f2a9c1d0b7e
        boardsync sync run ado_91c0e4a2b6d3 -v
    """
    config = common.get_config()
    registry = common.get_registry(config)
    integration = registry.get(integration_id)
    if integration is None:
        print_integration_not_found_error(integration_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    try:
        connector = common.open_connector(integration.remote_system, config)
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    service = common.build_sync_service(config, {integration.remote_system: connector})

    if verbose:

        def show(status: SyncStatus) -> None:
            state = "syncing..." if status.in_progress else "idle"
            console.print(f"[dim]{status.integration_id}: {state}[/dim]")

        service.publisher.subscribe(show)

    try:
        result = service.sync(integration_id)
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))

    _print_result(integration.remote_project_name, result)


@app.command("all")
def sync_all() -> None:
    """
    Sync every integration, one after another.

    A failing integration does not stop the others; the exit code is
    non-zero if any failed.

    Examples:
        boardsync sync all
    """
    config = common.get_config()
    registry = common.get_registry(config)
    integrations = registry.list_integrations()
    if not integrations:
        console.print("[yellow]No integrations configured[/yellow]")
        return

    connectors = common.open_connectors((i.remote_system for i in integrations), config)
    service = common.build_sync_service(config, connectors)
    outcomes = service.sync_all()

    table = Table(title="Sync results", show_header=True, header_style="bold cyan")
    table.add_column("Integration", style="dim")
    table.add_column("Project")
    table.add_column("Result", overflow="fold")

    failed = 0
    for integration in integrations:
        outcome = outcomes.get(integration.id)
        if isinstance(outcome, SyncResult):
            text = outcome.summary()
            if outcome.errors:
                text = f"[yellow]{text}[/yellow]"
        elif outcome is None:
            continue
        else:
            failed += 1
            text = f"[red]{outcome}[/red]"
        table.add_row(integration.id, integration.remote_project_name, text)

    console.print(table)
    if failed:
        raise typer.Exit(ExitCode.GENERAL_ERROR)
