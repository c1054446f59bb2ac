"""
Shared wiring for CLI commands.

Builds the store, registry, connectors and services from the loaded
configuration. Commands call these through the module (``common.x()``)
so tests can patch them.
"""

import logging
from collections.abc import Iterable

import typer

from boardsync.cli.errors import report_error
from boardsync.core.config import BoardsyncConfig, load_config
from boardsync.core.connectors import RemoteConnector, get_connector
from boardsync.core.sync import IntegrationRegistry, PushBackWriter, SyncService
from boardsync.core.sync.exceptions import ConnectorError, IntegrationRegistryCorruptedError
from boardsync.core.tasks import TaskStore, get_backend
from boardsync.core.tasks.models import RemoteSystem

logger = logging.getLogger(__name__)


def get_config() -> BoardsyncConfig:
    return load_config()


def get_store(config: BoardsyncConfig) -> TaskStore:
    """Task store for the configured backend and data directory."""
    return get_backend(config.storage.backend, data_dir=config.resolve_data_dir())


def get_registry(config: BoardsyncConfig) -> IntegrationRegistry:
    """
    Integration registry in the data directory.

    The file is loaded up front; a corrupted one ends the command before
    anything is written.
    """
    registry = IntegrationRegistry.in_data_dir(config.resolve_data_dir())
    try:
        registry.list_integrations()
    except IntegrationRegistryCorruptedError as e:
        raise typer.Exit(report_error(e)) from e
    return registry


def open_connector(system: RemoteSystem, config: BoardsyncConfig) -> RemoteConnector:
    """
    Connector for one remote system.

    Raises:
        AuthenticationError: If the token variable is not set
        ConnectorError: If the connector is not configured
    """
    return get_connector(system, config)


def open_connectors(
    systems: Iterable[RemoteSystem], config: BoardsyncConfig
) -> dict[RemoteSystem, RemoteConnector]:
    """
    Connectors for several systems, skipping those that cannot be built.

    Integrations whose connector is missing fail individually at sync time.
    """
    connectors: dict[RemoteSystem, RemoteConnector] = {}
    for system in set(systems):
        try:
            connectors[system] = open_connector(system, config)
        except ConnectorError as e:
            logger.warning("Connector for %s unavailable: %s", system.value, e)
    return connectors


def build_sync_service(
    config: BoardsyncConfig,
    connectors: dict[RemoteSystem, RemoteConnector],
) -> SyncService:
    return SyncService(
        get_store(config),
        get_registry(config),
        connectors,
        max_workers=config.sync.max_workers,
        default_status=config.sync.default_status,
    )


def build_pushback_writer(
    config: BoardsyncConfig,
    store: TaskStore,
    connectors: dict[RemoteSystem, RemoteConnector],
) -> PushBackWriter:
    return PushBackWriter(store, get_registry(config), connectors)
