"""
boardsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from boardsync import __version__
from boardsync.cli import import_cmd, integrations, projects, sync, task
from boardsync.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_REMOTE = "Connect Remote Projects"
PANEL_LOCAL = "Work with Local Boards"

app = typer.Typer(
    name="boardsync",
    help="Sync GitHub Projects and Azure DevOps work items with local boards",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    boardsync - keep local boards in step with remote projects.

    Quick Start:
        1. export GITHUB_TOKEN=...            # or AZURE_DEVOPS_PAT + BOARDSYNC_ADO_ORG
        2. boardsync projects github          # find a project id
        3. boardsync import github <id>       # review mapping, import
        4. boardsync sync run <integration>   # pull remote changes

    Moving tasks:
        boardsync task move <task-id> complete   # pushes upstream when linked
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {"debug": debug}


# =============================================================================
# Connect Remote Projects
# =============================================================================

app.add_typer(projects.app, name="projects", rich_help_panel=PANEL_REMOTE)
app.add_typer(import_cmd.app, name="import", rich_help_panel=PANEL_REMOTE)
app.add_typer(integrations.app, name="integrations", rich_help_panel=PANEL_REMOTE)
app.add_typer(sync.app, name="sync", rich_help_panel=PANEL_REMOTE)


# =============================================================================
# Work with Local Boards
# =============================================================================

app.add_typer(task.app, name="task", rich_help_panel=PANEL_LOCAL)


@app.command()
def version() -> None:
    """Show boardsync version and exit."""
    console.print(f"boardsync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
