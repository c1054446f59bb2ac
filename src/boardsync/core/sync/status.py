"""
In-memory sync status, per integration.

The publisher holds the latest SyncStatus for each integration and
notifies subscribers after every change, so a UI or CLI can show
"syncing...", the last result, or an error banner. Nothing here is
persisted.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from boardsync.core.sync.models import SyncStatus

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]


class SyncStatusPublisher:
    """
    Publishes per-integration SyncStatus snapshots.

    Snapshots are copies; listeners are called synchronously on the
    thread that made the change, outside the publisher's lock.

    Example:
        >>> publisher = SyncStatusPublisher()
        >>> seen = []
        >>> unsubscribe = publisher.subscribe(seen.append)
        >>> publisher.update("gh_1", in_progress=True).in_progress
        True
        >>> len(seen)
        1
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._statuses: dict[str, SyncStatus] = {}
        self._listeners: list[StatusListener] = []
        self._lock = threading.Lock()

    def get(self, integration_id: str) -> SyncStatus:
        """Current status of an integration (idle default if never synced)."""
        with self._lock:
            status = self._statuses.get(integration_id)
            if status is None:
                return SyncStatus(integration_id=integration_id)
            return status.model_copy(deep=True)

    def all(self) -> dict[str, SyncStatus]:
        """Snapshot of every known status, keyed by integration id."""
        with self._lock:
            return {k: v.model_copy(deep=True) for k, v in self._statuses.items()}

    def update(self, integration_id: str, **changes: Any) -> SyncStatus:
        """
        Merge changes into an integration's status and notify listeners.

        Args:
            integration_id: Integration whose status changed
            **changes: SyncStatus fields to set

        Returns:
            The new status snapshot
        """
        with self._lock:
            current = self._statuses.get(integration_id) or SyncStatus(
                integration_id=integration_id
            )
            updated = current.model_copy(update=changes)
            self._statuses[integration_id] = updated
            snapshot = updated.model_copy(deep=True)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.warning("Sync status listener failed: %s", e)

        return snapshot

    def forget(self, integration_id: str) -> None:
        """Drop the status of a deleted integration."""
        with self._lock:
            self._statuses.pop(integration_id, None)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a listener called with every new status snapshot.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
