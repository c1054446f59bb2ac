"""
boardsync CLI - List remote projects available for import.
"""

import typer
from rich.console import Console
from rich.table import Table

from boardsync.cli import common
from boardsync.cli.errors import report_error
from boardsync.core.sync.exceptions import BoardsyncError
from boardsync.core.sync.models import RemoteProject
from boardsync.core.tasks.models import RemoteSystem

console = Console()
app = typer.Typer(help="List remote projects you can import")


def _list(system: RemoteSystem) -> list[RemoteProject]:
    config = common.get_config()
    try:
        connector = common.open_connector(system, config)
        return connector.list_projects()
    except BoardsyncError as e:
        raise typer.Exit(report_error(e))


@app.command("github")
def github() -> None:
    """
    List GitHub Projects (v2) of the token's user and organizations.

    Examples:
        boardsync projects github
    """
    projects = _list(RemoteSystem.GITHUB)
    if not projects:
        console.print("[yellow]No GitHub projects found[/yellow]")
        return

    table = Table(title="GitHub Projects", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Single-select fields", overflow="fold")

    for project in projects:
        fields = ", ".join(f"{f.name} ({len(f.options)})" for f in project.fields)
        table.add_row(project.id, project.name, fields or "-")

    console.print(table)


@app.command("azure-devops")
def azure_devops() -> None:
    """
    List Azure DevOps projects of the configured organization.

    Examples:
        BOARDSYNC_ADO_ORG=contoso boardsync projects azure-devops
    """
    projects = _list(RemoteSystem.AZURE_DEVOPS)
    if not projects:
        console.print("[yellow]No Azure DevOps projects found[/yellow]")
        return

    table = Table(title="Azure DevOps Projects", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("URL", overflow="fold")

    for project in projects:
        table.add_row(project.id, project.name, project.url or "")

    console.print(table)
