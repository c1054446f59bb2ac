"""
Standardized error handling and exit codes for the boardsync CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

from boardsync.core.sync.exceptions import (
    AuthenticationError,
    BoardsyncError,
    ConnectorError,
    InitialSyncError,
    IntegrationNotFoundError,
    IntegrationRegistryCorruptedError,
    NoRemoteMetadataError,
    NoStatusMappingError,
    PermissionDeniedError,
    RateLimitError,
    SyncInProgressError,
    TaskNotFoundError,
    UnmappedStatusError,
)

console = Console()


class ExitCode(IntEnum):
    """Standard exit codes for boardsync CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Remote or unexpected failure."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""

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
        ...     "Integration not found: gh_123",
        ...     reason="It may have been removed",
        ...     solution="boardsync integrations list",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


_TOKEN_ENV = {
    "github": "GITHUB_TOKEN",
    "azure_devops": "AZURE_DEVOPS_PAT",
}


def print_integration_not_found_error(integration_id: str) -> None:
    """Print error when an integration id is unknown."""
    print_error(
        f"Integration not found: {integration_id}",
        reason="The id may be mistyped or the integration was removed",
        solution="boardsync integrations list",
    )


def print_task_not_found_error(task_id: str) -> None:
    """Print error when a specific task is not found."""
    print_error(
        f"Task not found: {task_id}",
        reason="The task ID may be incorrect or the task may have been deleted",
        solution="boardsync task list <board-id>  # to see available tasks",
    )


def report_error(error: BoardsyncError) -> ExitCode:
    """
    Print a boardsync error with guidance and return the exit code to use.

    Example:
        >>> try:
        ...     service.sync(integration_id)
        ... except BoardsyncError as e:
        ...     raise typer.Exit(report_error(e))
    """
    if isinstance(error, IntegrationNotFoundError):
        print_integration_not_found_error(error.integration_id)
        return ExitCode.USER_ERROR

    if isinstance(error, IntegrationRegistryCorruptedError):
        print_error(
            str(error),
            reason="The file was left unchanged; no command will write over it",
            solution=f"Fix or restore {error.path} from a backup",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, TaskNotFoundError):
        print_task_not_found_error(error.task_id)
        return ExitCode.USER_ERROR

    if isinstance(error, AuthenticationError):
        env_var = _TOKEN_ENV.get(error.system, "the token variable")
        print_error(
            f"{error.system}: {error}",
            reason="The access token is missing, expired or invalid",
            solution=f"export {env_var}=<token>  # or add it to .env",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, RateLimitError):
        print_error(f"{error.system}: {error}", reason="The remote API rate limit is exhausted")
        return ExitCode.GENERAL_ERROR

    if isinstance(error, PermissionDeniedError):
        print_error(
            f"{error.system}: {error}",
            reason="The token is valid but lacks the required scopes",
            solution="Grant project (GitHub) or Work Items read & write (Azure DevOps) access",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, ConnectorError):
        print_error(f"{error.system}: {error}")
        return ExitCode.GENERAL_ERROR

    if isinstance(error, SyncInProgressError):
        print_error(str(error), reason="Wait for the running sync to finish")
        return ExitCode.GENERAL_ERROR

    if isinstance(error, InitialSyncError):
        print_error(
            str(error),
            reason="The board and integration were created and kept",
            solution=f"boardsync sync run {error.integration.id}",
        )
        return ExitCode.GENERAL_ERROR

    if isinstance(error, UnmappedStatusError):
        print_error(
            str(error),
            reason="Push-back needs a remote value for every status a task can move to",
            solution=f"boardsync integrations show {error.integration_id}  # review mappings",
        )
        return ExitCode.USER_ERROR

    if isinstance(error, (NoStatusMappingError, NoRemoteMetadataError)):
        print_error(str(error))
        return ExitCode.USER_ERROR

    print_error(str(error))
    return ExitCode.GENERAL_ERROR


__all__ = [
    "ExitCode",
    "print_error",
    "print_integration_not_found_error",
    "print_task_not_found_error",
    "report_error",
]
