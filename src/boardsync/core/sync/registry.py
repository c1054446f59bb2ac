"""
Integration registry.

Durable store of Integration records in `<data_dir>/integrations.json`,
indexed by integration id and by local board id. The registry is the only
owner of integration records; the sync engine reads and updates them
through its API.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from boardsync.core.sync.exceptions import IntegrationRegistryCorruptedError
from boardsync.core.sync.models import Integration

logger = logging.getLogger(__name__)

_integrations_adapter = TypeAdapter(list[Integration])


class IntegrationRegistry:
    """
    CRUD over Integration records, persisted as JSON.

    Deleting an integration removes only the record: the board it created
    and the tasks on it are left alone, and their remote metadata becomes
    orphaned.

    Example:
        >>> registry = IntegrationRegistry(Path(".boardsync/integrations.json"))
        >>> registry.save(integration)
        >>> registry.get_by_board(integration.local_board_id).id == integration.id
        True
    """

    FILE_NAME = "integrations.json"

    def __init__(self, path: Path | None = None) -> None:
        """
        Initialize the registry.

        Args:
            path: Path to integrations.json. None keeps records in memory only.
        """
        self.path = path
        self._integrations: dict[str, Integration] | None = None
        self._lock = threading.RLock()

    @classmethod
    def in_data_dir(cls, data_dir: Path) -> IntegrationRegistry:
        """Create a registry stored in a data directory."""
        return cls(data_dir / cls.FILE_NAME)

    def _load(self) -> dict[str, Integration]:
        """
        Load records from file (once), or start empty if there is no file.

        Raises:
            IntegrationRegistryCorruptedError: If the file cannot be parsed;
                nothing is cached, so no later save can overwrite it
        """
        if self._integrations is not None:
            return self._integrations

        if self.path is None or not self.path.exists():
            self._integrations = {}
            return self._integrations

        try:
            records = _integrations_adapter.validate_json(self.path.read_text())
        except (ValidationError, ValueError) as e:
            logger.error("Failed to load integrations from %s: %s", self.path, e)
            raise IntegrationRegistryCorruptedError(self.path, str(e)) from e

        self._integrations = {i.id: i for i in records}
        return self._integrations

    def _save(self) -> None:
        """Save records atomically via a temp file."""
        if self.path is None or self._integrations is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = _integrations_adapter.dump_json(
            list(self._integrations.values()), indent=2
        ).decode()

        temp_path = self.path.with_suffix(".tmp")
        try:
            temp_path.write_text(payload + "\n")
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def list_integrations(self) -> list[Integration]:
        """All integrations in insertion order."""
        with self._lock:
            return [i.model_copy(deep=True) for i in self._load().values()]

    def get(self, integration_id: str) -> Integration | None:
        """Get an integration by id."""
        with self._lock:
            integration = self._load().get(integration_id)
            return integration.model_copy(deep=True) if integration else None

    def get_by_board(self, board_id: str) -> Integration | None:
        """Get the integration that created a board."""
        with self._lock:
            for integration in self._load().values():
                if integration.local_board_id == board_id:
                    return integration.model_copy(deep=True)
            return None

    def save(self, integration: Integration) -> Integration:
        """Insert or replace an integration record."""
        with self._lock:
            integrations = self._load()
            integrations[integration.id] = integration.model_copy(deep=True)
            self._save()
            logger.debug("Saved integration %s", integration.id)
            return integration

    def delete(self, integration_id: str) -> bool:
        """
        Remove an integration record.

        Returns:
            True if a record was removed, False if none existed
        """
        with self._lock:
            integrations = self._load()
            if integrations.pop(integration_id, None) is None:
                return False
            self._save()
            logger.info("Deleted integration %s (board preserved)", integration_id)
            return True
