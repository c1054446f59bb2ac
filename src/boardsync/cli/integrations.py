"""
boardsync CLI - Inspect and remove integrations.
"""

import json

import typer
from rich.console import Console
from rich.table import Table

from boardsync.cli import common
from boardsync.cli.errors import ExitCode, print_integration_not_found_error

console = Console()
app = typer.Typer(help="Manage board integrations")


@app.command("list")
def list_integrations(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """
    List integrations.

    Examples:
        boardsync integrations list
        boardsync integrations list --json
    """
    config = common.get_config()
    integrations = common.get_registry(config).list_integrations()

    if json_output:
        console.print(json.dumps([i.model_dump(mode="json") for i in integrations], indent=2))
        return

    if not integrations:
        console.print("[yellow]No integrations configured[/yellow]")
        console.print("[dim]Import one with: boardsync import github <project-id>[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("System")
    table.add_column("Project")
    table.add_column("Board", style="dim")
    table.add_column("Last sync")

    for integration in integrations:
        last_sync = (
            integration.last_sync_at.strftime("%Y-%m-%d %H:%M")
            if integration.last_sync_at
            else "never"
        )
        table.add_row(
            integration.id,
            integration.remote_system.value,
            integration.remote_project_name,
            integration.local_board_id,
            last_sync,
        )

    console.print(table)


@app.command()
def show(integration_id: str = typer.Argument(..., help="Integration id")) -> None:
    """
    Show an integration and its field mappings.

    Examples:
        boardsync integrations show gh_3f2a9c1d0b7e
    """
    config = common.get_config()
    integration = common.get_registry(config).get(integration_id)
    if integration is None:
        print_integration_not_found_error(integration_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    console.print(f"[bold]{integration.remote_project_name}[/bold] ({integration.id})")
    console.print(f"  System:  {integration.remote_system.value}")
    console.print(f"  Project: {integration.remote_project_id}")
    if integration.remote_project_url:
        console.print(f"  URL:     {integration.remote_project_url}")
    console.print(f"  Board:   {integration.local_board_id}")
    if integration.type_filter:
        console.print(f"  Types:   {', '.join(integration.type_filter)}")
    if integration.remote_query:
        console.print(f"  Query:   {integration.remote_query}")

    for mapping in integration.field_mappings:
        table = Table(
            title=f"{mapping.remote_field_name or mapping.remote_field_id} → {mapping.local_field.value}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Remote value")
        table.add_column("Local value")
        for remote_value, local_value in mapping.value_map.items():
            table.add_row(remote_value, local_value)
        console.print(table)


@app.command()
def remove(
    integration_id: str = typer.Argument(..., help="Integration id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Remove without confirmation"),
) -> None:
    """
    Remove an integration.

    The board and its tasks are kept; they simply stop syncing.

    Examples:
        boardsync integrations remove gh_3f2a9c1d0b7e --yes
    """
    config = common.get_config()
    registry = common.get_registry(config)
    integration = registry.get(integration_id)
    if integration is None:
        print_integration_not_found_error(integration_id)
        raise typer.Exit(ExitCode.USER_ERROR)

    if not yes and not typer.confirm(
        f"Remove integration with {integration.remote_project_name}?", default=False
    ):
        console.print("[yellow]Cancelled[/yellow]")
        return

    registry.delete(integration_id)
    console.print(
        f"[green]✓[/green] Removed {integration_id} "
        f"(board {integration.local_board_id} kept)"
    )
