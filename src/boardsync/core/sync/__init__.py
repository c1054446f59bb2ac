"""
External project synchronization engine.

Pulls remote work items (GitHub Projects, Azure DevOps) into local tasks,
keeps them reconciled on repeated runs, and pushes local status changes
back upstream.

Example:
    >>> from boardsync.core.sync import SyncService, IntegrationRegistry
    >>> service = SyncService(store, IntegrationRegistry(path), connectors)
    >>> result = service.sync("gh_3f2a9c1d0b7e")
    >>> print(result.summary())
    1 created, 0 updated, 0 unchanged
"""

from boardsync.core.sync.exceptions import (
    AuthenticationError,
    BoardsyncError,
    ConnectorError,
    InitialSyncError,
    IntegrationNotFoundError,
    IntegrationRegistryCorruptedError,
    NoRemoteMetadataError,
    NoStatusMappingError,
    PerItemError,
    PermissionDeniedError,
    PushBackError,
    RateLimitError,
    SyncInProgressError,
    TaskNotFoundError,
    UnmappedStatusError,
)
from boardsync.core.sync.models import (
    FieldMapping,
    Integration,
    LocalField,
    RemoteField,
    RemoteFieldOption,
    RemoteItem,
    RemoteItemType,
    RemoteProject,
    SyncResult,
    SyncStatus,
)
from boardsync.core.sync.pushback import PushBackWriter, move_task
from boardsync.core.sync.registry import IntegrationRegistry
from boardsync.core.sync.service import SyncService
from boardsync.core.sync.status import SyncStatusPublisher

__all__ = [
    # Engine
    "SyncService",
    "PushBackWriter",
    "move_task",
    "IntegrationRegistry",
    "SyncStatusPublisher",
    # Models
    "FieldMapping",
    "Integration",
    "LocalField",
    "RemoteField",
    "RemoteFieldOption",
    "RemoteItem",
    "RemoteItemType",
    "RemoteProject",
    "SyncResult",
    "SyncStatus",
    # Errors
    "BoardsyncError",
    "ConnectorError",
    "AuthenticationError",
    "PermissionDeniedError",
    "RateLimitError",
    "PerItemError",
    "IntegrationNotFoundError",
    "IntegrationRegistryCorruptedError",
    "SyncInProgressError",
    "InitialSyncError",
    "PushBackError",
    "TaskNotFoundError",
    "NoRemoteMetadataError",
    "NoStatusMappingError",
    "UnmappedStatusError",
]
