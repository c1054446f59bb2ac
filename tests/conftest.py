"""
Pytest configuration and shared fixtures.

Provides an in-memory task store, a file-backed integration registry,
a scriptable fake connector and ready-made integrations used across the
test suite.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from boardsync.core.config import clear_cache
from boardsync.core.sync.mapping import build_status_mapping
from boardsync.core.sync.models import (
    FieldMapping,
    Integration,
    RemoteField,
    RemoteFieldOption,
    RemoteItem,
    RemoteProject,
)
from boardsync.core.sync.registry import IntegrationRegistry
from boardsync.core.sync.service import SyncService
from boardsync.core.tasks.memory import InMemoryTaskStore
from boardsync.core.tasks.models import BoardKind, RemoteSystem, Task, TaskStatus

# ==============================================================================
# Fakes
# ==============================================================================


class FakeConnector:
    """
    Scriptable RemoteConnector.

    Set `items` to what the next fetch returns, `fetch_error` /
    `update_error` to make calls fail. Calls are recorded.
    """

    def __init__(self, system: RemoteSystem = RemoteSystem.GITHUB) -> None:
        self.system = system
        self.items: list[RemoteItem] = []
        self.projects: list[RemoteProject] = []
        self.fetch_error: Exception | None = None
        self.update_error: Exception | None = None
        self.fetch_calls: list[str] = []
        self.update_calls: list[tuple[str, str, str, str]] = []
        self.before_fetch: Any = None

    def fetch_items(self, integration: Integration) -> list[RemoteItem]:
        self.fetch_calls.append(integration.id)
        if self.before_fetch is not None:
            self.before_fetch()
        if self.fetch_error is not None:
            raise self.fetch_error
        return [item.model_copy(deep=True) for item in self.items]

    def update_field(
        self,
        remote_project_id: str,
        remote_item_id: str,
        field_id: str,
        new_value: str,
    ) -> None:
        if self.update_error is not None:
            raise self.update_error
        self.update_calls.append((remote_project_id, remote_item_id, field_id, new_value))

    def list_projects(self) -> list[RemoteProject]:
        return list(self.projects)

    def get_project(self, project_id: str) -> RemoteProject:
        for project in self.projects:
            if project.id == project_id:
                return project
        raise KeyError(project_id)


class FlakyStore(InMemoryTaskStore):
    """In-memory store that fails to create tasks with selected titles."""

    def __init__(self, fail_titles: set[str] | None = None) -> None:
        super().__init__()
        self.fail_titles = fail_titles or set()

    def create_task(self, board_id: str, title: str, **fields: Any) -> Task:
        if title in self.fail_titles:
            raise RuntimeError(f"disk full while writing '{title}'")
        return super().create_task(board_id, title, **fields)


# ==============================================================================
# Config Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config loading away from the real user config and env."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "BOARDSYNC_DATA_DIR",
        "BOARDSYNC_BACKEND",
        "BOARDSYNC_MAX_WORKERS",
        "BOARDSYNC_DEFAULT_STATUS",
        "BOARDSYNC_ADO_ORG",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Engine Fixtures
# ==============================================================================


@pytest.fixture
def store():
    """Provide an empty in-memory task store."""
    return InMemoryTaskStore()


@pytest.fixture
def registry(tmp_path: Path):
    """Provide an integration registry persisted under tmp_path."""
    return IntegrationRegistry(tmp_path / "integrations.json")


@pytest.fixture
def connector():
    """Provide a fake GitHub connector with no items."""
    return FakeConnector(RemoteSystem.GITHUB)


@pytest.fixture
def status_options() -> list[RemoteFieldOption]:
    """GitHub Status field options, keyed by option id."""
    return [
        RemoteFieldOption(id="opt_todo", name="Todo"),
        RemoteFieldOption(id="opt_ready", name="Ready"),
        RemoteFieldOption(id="opt_progress", name="In Progress"),
        RemoteFieldOption(id="opt_done", name="Done"),
    ]


@pytest.fixture
def status_mapping(status_options) -> FieldMapping:
    """Status mapping covering all four local statuses."""
    rows = [
        (status_options[0], TaskStatus.BACKLOG),
        (status_options[1], TaskStatus.ONDECK),
        (status_options[2], TaskStatus.INPROCESS),
        (status_options[3], TaskStatus.COMPLETE),
    ]
    return build_status_mapping("PVTSSF_status", "Status", rows)


@pytest.fixture
def github_project(status_options) -> RemoteProject:
    """A GitHub project with a Status single-select field."""
    return RemoteProject(
        id="PVT_project1",
        name="Roadmap",
        system=RemoteSystem.GITHUB,
        url="https://github.com/orgs/acme/projects/1",
        fields=[RemoteField(id="PVTSSF_status", name="Status", options=status_options)],
    )


@pytest.fixture
def service(store, registry, connector):
    """Provide a SyncService wired to the fake GitHub connector."""
    return SyncService(store, registry, {RemoteSystem.GITHUB: connector}, max_workers=4)


@pytest.fixture
def integration(store, registry, status_mapping) -> Integration:
    """A saved GitHub integration with its board, never synced."""
    board = store.create_board("Roadmap", kind=BoardKind.GITHUB)
    integration = Integration(
        id="gh_test000001",
        remote_system=RemoteSystem.GITHUB,
        remote_project_id="PVT_project1",
        remote_project_name="Roadmap",
        local_board_id=board.id,
        field_mappings=[status_mapping],
        status_field_id=status_mapping.remote_field_id,
    )
    registry.save(integration)
    store.update_board(board.id, integration_id=integration.id)
    return integration


@pytest.fixture
def make_item():
    """Factory for RemoteItems with sensible defaults."""

    def _make(item_id: str, title: str, status: str | None = None, **fields: Any) -> RemoteItem:
        return RemoteItem(id=item_id, title=title, status_field_value=status, **fields)

    return _make


@pytest.fixture
def flaky_store():
    """In-memory store whose `fail_titles` make create_task raise."""
    return FlakyStore()


@pytest.fixture
def ado_connector():
    """Provide a fake Azure DevOps connector with no items."""
    return FakeConnector(RemoteSystem.AZURE_DEVOPS)
