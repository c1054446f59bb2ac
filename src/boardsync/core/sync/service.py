"""
Sync orchestration: pull remote items into local tasks.

One engine serves every remote system; system specifics live behind the
RemoteConnector passed in for each system. A sync run is a full re-fetch
and re-diff of the integration's remote items against the tasks on its
board:

- no local task for the remote item: create one
- title, description or mapped status differ: update the task
- otherwise: leave it alone

Local tasks whose remote item disappeared are never deleted or flagged.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from enum import Enum
from typing import TYPE_CHECKING

from boardsync.core.sync.exceptions import (
    BoardsyncError,
    ConnectorError,
    InitialSyncError,
    IntegrationNotFoundError,
    PerItemError,
    SyncInProgressError,
)
from boardsync.core.sync.mapping import (
    DEFAULT_LOCAL_STATUS,
    to_local_priority,
    to_local_status,
)
from boardsync.core.sync.models import (
    FieldMapping,
    Integration,
    LocalField,
    RemoteItem,
    RemoteProject,
    SyncResult,
)
from boardsync.core.sync.registry import IntegrationRegistry
from boardsync.core.sync.status import SyncStatusPublisher
from boardsync.core.tasks.models import (
    RemoteSystem,
    RemoteTaskMetadata,
    Task,
    TaskStatus,
    utc_now,
)

if TYPE_CHECKING:
    from boardsync.core.connectors.base import RemoteConnector
    from boardsync.core.tasks.backend import TaskStore

logger = logging.getLogger(__name__)


class ItemOutcome(str, Enum):
    """What reconciling one remote item did to the local store."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class SyncService:
    """
    Reconciles remote projects with local boards.

    Runs for one integration are mutually exclusive; a second `sync()`
    while one is in flight is rejected, not queued. Different
    integrations sync concurrently. Remote items of one run are processed
    on a bounded thread pool.

    Example:
        >>> service = SyncService(store, registry, {RemoteSystem.GITHUB: connector})
        >>> integration = service.import_project(project, [status_mapping])
        >>> service.sync(integration.id).summary()
        '0 created, 0 updated, 12 unchanged'
    """

    def __init__(
        self,
        store: TaskStore,
        registry: IntegrationRegistry,
        connectors: Mapping[RemoteSystem, RemoteConnector],
        publisher: SyncStatusPublisher | None = None,
        max_workers: int = 4,
        default_status: TaskStatus = DEFAULT_LOCAL_STATUS,
    ) -> None:
        """
        Initialize the sync service.

        Args:
            store: Local task store
            registry: Integration registry
            connectors: Connector per remote system
            publisher: Status publisher (a private one is created if omitted)
            max_workers: Maximum remote items processed concurrently per run
            default_status: Local status for unmapped remote values
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self.store = store
        self.registry = registry
        self.connectors = connectors
        self.publisher = publisher or SyncStatusPublisher()
        self.max_workers = max_workers
        self.default_status = default_status

        self._latches: dict[str, threading.Lock] = {}
        self._latches_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _latch(self, integration_id: str) -> threading.Lock:
        with self._latches_guard:
            latch = self._latches.get(integration_id)
            if latch is None:
                latch = threading.Lock()
                self._latches[integration_id] = latch
            return latch

    def connector_for(self, integration: Integration) -> RemoteConnector:
        """Connector that serves an integration's remote system."""
        connector = self.connectors.get(integration.remote_system)
        if connector is None:
            raise ConnectorError(
                integration.remote_system.value,
                f"No connector configured for {integration.remote_system.value}",
            )
        return connector

    def is_syncing(self, integration_id: str) -> bool:
        """Whether a run for this integration is in flight."""
        with self._latches_guard:
            latch = self._latches.get(integration_id)
        return latch is not None and latch.locked()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync(self, integration_id: str) -> SyncResult:
        """
        Run one reconciliation pass for an integration.

        Args:
            integration_id: Integration to sync

        Returns:
            Counts of created/updated/unchanged tasks and per-item errors

        Raises:
            IntegrationNotFoundError: If the integration does not exist
            SyncInProgressError: If a run for it is already in flight
            ConnectorError: If fetching remote items failed; the run aborts
        """
        integration = self.registry.get(integration_id)
        if integration is None:
            raise IntegrationNotFoundError(integration_id)

        latch = self._latch(integration_id)
        if not latch.acquire(blocking=False):
            raise SyncInProgressError(integration_id)

        try:
            self.publisher.update(integration_id, in_progress=True, error=None)
            logger.info(
                "Syncing %s (%s)", integration.remote_project_name, integration_id
            )

            try:
                result = self._run(integration)
            except Exception as e:
                logger.error("Sync of %s failed: %s", integration_id, e)
                self.publisher.update(
                    integration_id, in_progress=False, error=f"Sync failed: {e}"
                )
                raise

            synced_at = utc_now()
            # Skip the write if the integration was deleted mid-run
            current = self.registry.get(integration_id)
            if current is not None:
                self.registry.save(current.model_copy(update={"last_sync_at": synced_at}))

            self.publisher.update(
                integration_id,
                in_progress=False,
                last_sync_at=synced_at,
                last_result=result,
            )
            logger.info("Synced %s: %s", integration_id, result.summary())
            return result
        finally:
            latch.release()

    def _run(self, integration: Integration) -> SyncResult:
        connector = self.connector_for(integration)
        remote_items = connector.fetch_items(integration)

        # Duplicate ids within one fetch collapse to the last occurrence
        items_by_id: dict[str, RemoteItem] = {item.id: item for item in remote_items}

        existing: dict[str, Task] = {}
        for task in self.store.get_tasks_for_board(integration.local_board_id):
            metadata = task.remote_metadata.get(integration.remote_system)
            if metadata is not None and metadata.integration_id == integration.id:
                existing[metadata.remote_item_id] = task

        result = SyncResult()
        if not items_by_id:
            return result

        workers = min(self.max_workers, len(items_by_id))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="boardsync") as executor:
            futures: dict[Future[ItemOutcome], RemoteItem] = {}
            for item in items_by_id.values():
                future = executor.submit(
                    self._reconcile_item, integration, item, existing.get(item.id)
                )
                futures[future] = item

            # Results are aggregated here, on the calling thread
            for future in as_completed(futures):
                item = futures[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    error = PerItemError(item.id, str(e))
                    logger.warning(str(error))
                    result.errors.append(str(error))
                    continue

                if outcome is ItemOutcome.CREATED:
                    result.created += 1
                elif outcome is ItemOutcome.UPDATED:
                    result.updated += 1
                else:
                    result.unchanged += 1

        return result

    def _reconcile_item(
        self,
        integration: Integration,
        item: RemoteItem,
        task: Task | None,
    ) -> ItemOutcome:
        """Create, update or leave alone the local task for one remote item."""
        status = to_local_status(
            integration.status_mapping, item.status_field_value, self.default_status
        )
        description = item.description or ""

        if task is None:
            self._create_task(integration, item, status, description)
            return ItemOutcome.CREATED

        if task.title == item.title and task.description == description and task.status == status:
            return ItemOutcome.UNCHANGED

        system = integration.remote_system
        # Re-read so a push-back since the board snapshot keeps its local_version
        current = self.store.get_task(task.id) or task
        metadata = current.remote_metadata.get(system, task.remote_metadata[system])
        refreshed = metadata.model_copy(
            update={
                "remote_status_value": item.status_field_value,
                "remote_item_type": item.type_or_kind,
                "remote_url": item.url,
                "remote_assignees": list(item.assignees),
                "remote_revision": item.revision,
                "remote_version": metadata.remote_version + 1,
                "last_synced_at": utc_now(),
            }
        )
        remote_metadata = dict(current.remote_metadata)
        remote_metadata[system] = refreshed

        self.store.update_task(
            task.id,
            title=item.title,
            description=description,
            status=status,
            remote_metadata=remote_metadata,
        )
        logger.debug("Updated task %s from %s", task.id, item.id)
        return ItemOutcome.UPDATED

    def _create_task(
        self,
        integration: Integration,
        item: RemoteItem,
        status: TaskStatus,
        description: str,
    ) -> Task:
        metadata = RemoteTaskMetadata(
            integration_id=integration.id,
            remote_item_id=item.id,
            remote_item_type=item.type_or_kind,
            remote_status_value=item.status_field_value,
            remote_url=item.url,
            remote_assignees=list(item.assignees),
            remote_revision=item.revision,
            local_version=0,
            remote_version=0,
        )
        priority = to_local_priority(
            integration.mapping_for(LocalField.PRIORITY), item.priority_value
        )

        task = self.store.create_task(
            integration.local_board_id,
            item.title,
            description=description,
            status=status,
            priority=priority,
            tags=list(item.tags),
            remote_metadata={integration.remote_system: metadata},
        )
        logger.debug("Created task %s from %s", task.id, item.id)
        return task

    def sync_all(self) -> dict[str, SyncResult | BoardsyncError]:
        """
        Sync every registered integration, one after another.

        Failures are collected per integration instead of stopping the loop.

        Returns:
            Result or error per integration id
        """
        outcomes: dict[str, SyncResult | BoardsyncError] = {}
        for integration in self.registry.list_integrations():
            try:
                outcomes[integration.id] = self.sync(integration.id)
            except BoardsyncError as e:
                outcomes[integration.id] = e
        return outcomes

    # ------------------------------------------------------------------
    # Import and removal
    # ------------------------------------------------------------------

    def import_project(
        self,
        remote_project: RemoteProject,
        field_mappings: list[FieldMapping],
        type_filter: list[str] | None = None,
        remote_query: str | None = None,
    ) -> Integration:
        """
        Import a remote project as a new board and run the first sync.

        The board and integration are created before the first sync and
        are not rolled back if it fails; the board is left empty and can
        be synced again later.

        Args:
            remote_project: Project to import
            field_mappings: Confirmed field mappings (status, priority)
            type_filter: Remote item kinds to pull (None for all)
            remote_query: Custom remote query (WIQL) replacing the type filter

        Returns:
            The created integration, after its first sync

        Raises:
            InitialSyncError: If the first sync failed (carries the
                integration and the original error)
        """
        system = remote_project.system
        board = self.store.create_board(
            remote_project.name,
            kind=system.board_kind,
            remote_url=remote_project.url,
        )

        status_mapping = next(
            (m for m in field_mappings if m.local_field == LocalField.STATUS), None
        )
        integration = Integration(
            id=Integration.new_id(system),
            remote_system=system,
            remote_project_id=remote_project.id,
            remote_project_name=remote_project.name,
            remote_project_url=remote_project.url,
            local_board_id=board.id,
            field_mappings=field_mappings,
            type_filter=type_filter,
            status_field_id=status_mapping.remote_field_id if status_mapping else None,
            remote_query=remote_query,
        )
        self.registry.save(integration)
        self.store.update_board(board.id, integration_id=integration.id)
        logger.info(
            "Imported %s project '%s' as board %s (%s)",
            system.value,
            remote_project.name,
            board.id,
            integration.id,
        )

        try:
            self.sync(integration.id)
        except Exception as e:
            raise InitialSyncError(integration, e) from e

        return self.registry.get(integration.id) or integration

    def delete_integration(self, integration_id: str) -> bool:
        """
        Remove an integration; its board and tasks are kept.

        Returns:
            True if an integration was removed
        """
        removed = self.registry.delete(integration_id)
        self.publisher.forget(integration_id)
        with self._latches_guard:
            self._latches.pop(integration_id, None)
        return removed
