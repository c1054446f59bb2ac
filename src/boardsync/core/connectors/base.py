"""
Remote connector protocol and registry.

A connector is the adapter boundary between the sync engine and one remote
system. The engine never sees GraphQL, WIQL, pagination or authentication;
it only calls the four operations below.
"""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from boardsync.core.config.models import BoardsyncConfig
from boardsync.core.sync.models import Integration, RemoteItem, RemoteProject
from boardsync.core.tasks.models import RemoteSystem


@runtime_checkable
class RemoteConnector(Protocol):
    """
    Protocol for remote system connectors.

    Implementations raise ConnectorError (or a subclass) for network, HTTP
    and remote API failures, and must be safe to call from several threads.
    """

    @property
    def system(self) -> RemoteSystem:
        """Remote system this connector talks to."""
        ...

    def fetch_items(self, integration: Integration) -> list[RemoteItem]:
        """
        Fetch every current remote item selected by an integration.

        Paging and batching are handled inside the connector; the caller
        always gets the full list.

        Args:
            integration: Integration whose project, type filter and query apply

        Returns:
            All matching remote items
        """
        ...

    def update_field(
        self,
        remote_project_id: str,
        remote_item_id: str,
        field_id: str,
        new_value: str,
    ) -> None:
        """
        Set a single field of one remote item.

        Args:
            remote_project_id: Project the item belongs to
            remote_item_id: Item to update
            field_id: Remote field id (GitHub field node id, "System.State")
            new_value: Remote value (GitHub option id, ADO state name)
        """
        ...

    def list_projects(self) -> list[RemoteProject]:
        """List projects the credentials can see."""
        ...

    def get_project(self, project_id: str) -> RemoteProject:
        """
        Describe one project for import.

        Returns:
            Project with its fields (GitHub) or item types and states (ADO)
        """
        ...


# Connector registry
_connectors: dict[RemoteSystem, type] = {}


def register_connector(system: RemoteSystem) -> Callable[[type], type]:
    """
    Decorator to register a connector class for a remote system.

    The class must provide a `from_config(config)` classmethod.

    Example:
        @register_connector(RemoteSystem.GITHUB)
        class GitHubProjectsConnector:
            ...
    """

    def decorator(cls: type) -> type:
        _connectors[system] = cls
        return cls

    return decorator


def get_connector(system: RemoteSystem, config: BoardsyncConfig) -> RemoteConnector:
    """
    Build the connector for a remote system from configuration.

    Args:
        system: Remote system
        config: Loaded configuration (credentials are read from the env
            variables it names)

    Returns:
        A ready-to-use connector

    Raises:
        ValueError: If no connector is registered for the system
        AuthenticationError: If the configured credentials are missing
    """
    if system not in _connectors:
        available = ", ".join(s.value for s in _connectors) or "none"
        raise ValueError(f"No connector registered for '{system.value}'. Available: {available}")

    connector: RemoteConnector = _connectors[system].from_config(config)
    return connector


def list_connectors() -> list[RemoteSystem]:
    """Remote systems with a registered connector."""
    return list(_connectors.keys())
