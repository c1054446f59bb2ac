"""
Push local status changes back to the remote system.

Push-back runs outside the sync latch: it may race a pull-sync of the
same integration, and whichever writes the local task last wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from boardsync.core.sync.exceptions import (
    ConnectorError,
    IntegrationNotFoundError,
    NoRemoteMetadataError,
    NoStatusMappingError,
    TaskNotFoundError,
    UnmappedStatusError,
)
from boardsync.core.sync.mapping import NOT_FOUND, to_remote_value
from boardsync.core.sync.registry import IntegrationRegistry
from boardsync.core.tasks.models import RemoteSystem, Task, TaskStatus, utc_now

if TYPE_CHECKING:
    from boardsync.core.connectors.base import RemoteConnector
    from boardsync.core.tasks.backend import TaskStore

logger = logging.getLogger(__name__)


class PushBackWriter:
    """
    Writes a task's new status to its linked remote item.

    Example:
        >>> writer = PushBackWriter(store, registry, {RemoteSystem.GITHUB: connector})
        >>> writer.push_status_change("t1a2b3c4d5", TaskStatus.COMPLETE)
    """

    def __init__(
        self,
        store: TaskStore,
        registry: IntegrationRegistry,
        connectors: Mapping[RemoteSystem, RemoteConnector],
    ) -> None:
        self.store = store
        self.registry = registry
        self.connectors = connectors

    def push_status_change(self, task_id: str, new_status: TaskStatus) -> None:
        """
        Push a local status to the remote item the task is linked to.

        On success the task's status is set to `new_status` and its remote
        metadata records the written value (`local_version` is bumped).
        Nothing is sent upstream when the status has no remote value.

        Args:
            task_id: Task whose status changed
            new_status: The new local status

        Raises:
            TaskNotFoundError: If the task does not exist
            NoRemoteMetadataError: If the task is not linked to a remote item
            IntegrationNotFoundError: If the task's integration was deleted
            NoStatusMappingError: If the integration has no status mapping
            UnmappedStatusError: If the status has no reverse mapping
            ConnectorError: If the remote update failed
        """
        task = self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        link = task.remote_link()
        if link is None:
            raise NoRemoteMetadataError(task_id)
        system, metadata = link

        integration = self.registry.get(metadata.integration_id)
        if integration is None:
            raise IntegrationNotFoundError(metadata.integration_id)

        mapping = integration.status_mapping
        field_id = integration.status_field_id or (mapping.remote_field_id if mapping else None)
        if mapping is None or not field_id:
            raise NoStatusMappingError(integration.id)

        remote_value = to_remote_value(mapping, new_status)
        if remote_value is NOT_FOUND:
            raise UnmappedStatusError(integration.id, TaskStatus(new_status).value)

        connector = self.connectors.get(system)
        if connector is None:
            raise ConnectorError(system.value, f"No connector configured for {system.value}")

        connector.update_field(
            integration.remote_project_id,
            metadata.remote_item_id,
            field_id,
            str(remote_value),
        )

        # Re-read so fields changed during the remote call are not lost
        current = self.store.get_task(task_id) or task
        current_metadata = current.remote_metadata.get(system, metadata)
        remote_metadata = dict(current.remote_metadata)
        remote_metadata[system] = current_metadata.model_copy(
            update={
                "remote_status_value": remote_value,
                "local_version": current_metadata.local_version + 1,
                "last_synced_at": utc_now(),
            }
        )
        self.store.update_task(task_id, status=new_status, remote_metadata=remote_metadata)
        logger.info(
            "Pushed status %s of task %s to %s item %s",
            TaskStatus(new_status).value,
            task_id,
            system.value,
            metadata.remote_item_id,
        )


def move_task(
    store: TaskStore,
    writer: PushBackWriter,
    task_id: str,
    new_status: TaskStatus,
) -> Task:
    """
    Change a task's status locally, then push it upstream.

    The local change is applied first. If the task is remote-linked and
    the push fails, the previous status is restored and the error is
    re-raised.

    Returns:
        The task after the move
    """
    task = store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)

    previous = task.status
    moved = store.update_task(task_id, status=new_status)
    if not task.is_remote_linked:
        return moved

    try:
        writer.push_status_change(task_id, new_status)
    except Exception:
        store.update_task(task_id, status=previous)
        logger.warning("Reverted task %s to %s after failed push", task_id, previous.value)
        raise

    return store.get_task(task_id) or moved
