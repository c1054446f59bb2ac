"""
Custom exceptions for the sync engine.

This module defines a hierarchy of exceptions for pulling remote items,
pushing status changes back, and managing integrations, with context
preserved on each error.

Exception Hierarchy:
    BoardsyncError (base)
    ├── ConnectorError (network/auth/remote API failures, aborts a sync run)
    │   ├── AuthenticationError (401, token expired or invalid)
    │   ├── PermissionDeniedError (403)
    │   └── RateLimitError (403/429 with exhausted rate limit)
    ├── PerItemError (one remote item failed; recorded, run continues)
    ├── IntegrationNotFoundError
    ├── IntegrationRegistryCorruptedError (integrations.json unreadable; left untouched)
    ├── SyncInProgressError
    ├── InitialSyncError (import created board + integration, first sync failed)
    └── PushBackError
        ├── TaskNotFoundError
        ├── NoRemoteMetadataError
        ├── NoStatusMappingError
        └── UnmappedStatusError

Example:
    >>> from boardsync.core.sync.exceptions import AuthenticationError
    >>> try:
    ...     raise AuthenticationError("github", "Token expired or invalid", status_code=401)
    ... except ConnectorError as e:
    ...     print(f"{e.system}: {e} ({e.status_code})")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from boardsync.core.sync.models import Integration


class BoardsyncError(Exception):
    """
    Base exception for all boardsync errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ConnectorError(BoardsyncError):
    """
    Failure talking to a remote system.

    Raised by connectors for network errors, HTTP error responses and
    remote API errors (e.g. GraphQL `errors`). A ConnectorError from the
    fetch step aborts the whole sync run.

    Attributes:
        system: Remote system name ("github", "azure_devops")
        status_code: HTTP status code, when the failure had one
    """

    def __init__(
        self,
        system: str,
        message: str,
        status_code: int | None = None,
        **context: object,
    ) -> None:
        super().__init__(message, system=system, status_code=status_code, **context)
        self.system = system
        self.status_code = status_code


class AuthenticationError(ConnectorError):
    """Credentials are missing, expired or invalid; the user must re-authenticate."""

    pass


class PermissionDeniedError(ConnectorError):
    """Credentials are valid but lack permission for the request."""

    pass


class RateLimitError(ConnectorError):
    """
    Remote rate limit exhausted.

    Attributes:
        reset_at: Epoch seconds when the limit resets, if the remote said
    """

    def __init__(
        self,
        system: str,
        message: str,
        status_code: int | None = None,
        reset_at: int | None = None,
    ) -> None:
        super().__init__(system, message, status_code=status_code, reset_at=reset_at)
        self.reset_at = reset_at


class PerItemError(BoardsyncError):
    """
    Processing one remote item failed.

    Never propagates out of a sync run; its message lands in
    `SyncResult.errors`.
    """

    def __init__(self, remote_item_id: str, message: str) -> None:
        super().__init__(
            f"Failed to process item {remote_item_id}: {message}",
            remote_item_id=remote_item_id,
        )
        self.remote_item_id = remote_item_id


class IntegrationNotFoundError(BoardsyncError):
    """No integration with the given id exists (never created, or deleted)."""

    def __init__(self, integration_id: str) -> None:
        super().__init__(f"Integration not found: {integration_id}", integration_id=integration_id)
        self.integration_id = integration_id


class IntegrationRegistryCorruptedError(BoardsyncError):
    """
    integrations.json exists but cannot be parsed.

    The registry refuses to load rather than start empty, so the next save
    cannot overwrite the existing records.

    Attributes:
        path: The unreadable file
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Integration registry is corrupted: {path}: {reason}", path=str(path))
        self.path = path


class SyncInProgressError(BoardsyncError):
    """A sync run for this integration is already in flight."""

    def __init__(self, integration_id: str) -> None:
        super().__init__(
            f"Sync already in progress for integration {integration_id}",
            integration_id=integration_id,
        )
        self.integration_id = integration_id


class InitialSyncError(BoardsyncError):
    """
    The first sync after an import failed.

    The board and integration were created and are kept; the caller can
    retry the sync later.

    Attributes:
        integration: The integration created by the import
        cause: The error raised by the initial sync
    """

    def __init__(self, integration: Integration, cause: Exception) -> None:
        super().__init__(
            f"Imported '{integration.remote_project_name}' but the initial sync failed: {cause}",
            integration_id=integration.id,
        )
        self.integration = integration
        self.cause = cause


class PushBackError(BoardsyncError):
    """Base class for failures pushing a local status change upstream."""

    pass


class TaskNotFoundError(PushBackError):
    """The task to push does not exist in the local store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}", task_id=task_id)
        self.task_id = task_id


class NoRemoteMetadataError(PushBackError):
    """The task is not linked to any remote item."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} has no remote metadata", task_id=task_id)
        self.task_id = task_id


class NoStatusMappingError(PushBackError):
    """The integration has no status field mapping to push through."""

    def __init__(self, integration_id: str) -> None:
        super().__init__(
            f"No status mapping configured for integration {integration_id}",
            integration_id=integration_id,
        )
        self.integration_id = integration_id


class UnmappedStatusError(PushBackError):
    """
    The local status has no reverse mapping to a remote value.

    User-actionable: add a mapping for this status.
    """

    def __init__(self, integration_id: str, status: str) -> None:
        super().__init__(
            f"No remote mapping for status '{status}' in integration {integration_id}",
            integration_id=integration_id,
            status=status,
        )
        self.integration_id = integration_id
        self.status = status
