"""
Tests for pushing local status changes back to remote items.
"""

import pytest

from boardsync.core.sync.exceptions import (
    AuthenticationError,
    ConnectorError,
    IntegrationNotFoundError,
    NoRemoteMetadataError,
    NoStatusMappingError,
    TaskNotFoundError,
    UnmappedStatusError,
)
from boardsync.core.sync.models import FieldMapping
from boardsync.core.sync.pushback import PushBackWriter, move_task
from boardsync.core.tasks.models import RemoteSystem, TaskStatus


@pytest.fixture
def writer(store, registry, connector):
    return PushBackWriter(store, registry, {RemoteSystem.GITHUB: connector})


@pytest.fixture
def synced_task(service, store, connector, integration, make_item):
    """A task pulled from remote item PVTI_1 (status Todo)."""
    connector.items = [make_item("PVTI_1", "Write docs", "opt_todo")]
    service.sync(integration.id)
    return store.get_tasks_for_board(integration.local_board_id)[0]


class TestPushStatusChange:
    """Test PushBackWriter.push_status_change."""

    def test_pushes_reverse_mapped_value(self, writer, store, connector, synced_task):
        writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)

        assert connector.update_calls == [
            ("PVT_project1", "PVTI_1", "PVTSSF_status", "opt_done")
        ]
        task = store.get_task(synced_task.id)
        assert task.status == TaskStatus.COMPLETE
        metadata = task.remote_metadata[RemoteSystem.GITHUB]
        assert metadata.remote_status_value == "opt_done"
        assert metadata.local_version == 1
        assert metadata.remote_version == 0

    def test_next_sync_sees_pushed_value_as_unchanged(
        self, writer, service, connector, integration, synced_task, make_item
    ):
        """Once the remote reflects the push, the pull is a no-op."""
        writer.push_status_change(synced_task.id, TaskStatus.INPROCESS)
        connector.items = [make_item("PVTI_1", "Write docs", "opt_progress")]

        result = service.sync(integration.id)

        assert result.unchanged == 1

    def test_unmapped_status_makes_no_remote_call(
        self, writer, store, registry, connector, integration, synced_task
    ):
        partial = FieldMapping(
            remote_field_id="PVTSSF_status",
            remote_field_name="Status",
            value_map={"opt_todo": "backlog"},
            reverse_map={"backlog": "opt_todo"},
        )
        registry.save(integration.model_copy(update={"field_mappings": [partial]}))

        with pytest.raises(UnmappedStatusError) as exc_info:
            writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)

        assert exc_info.value.status == "complete"
        assert connector.update_calls == []
        assert store.get_task(synced_task.id).status == TaskStatus.BACKLOG

    def test_unknown_task(self, writer):
        with pytest.raises(TaskNotFoundError):
            writer.push_status_change("t-missing", TaskStatus.COMPLETE)

    def test_local_only_task(self, writer, store):
        board = store.create_board("Personal")
        task = store.create_task(board.id, "Buy milk")
        with pytest.raises(NoRemoteMetadataError):
            writer.push_status_change(task.id, TaskStatus.COMPLETE)

    def test_deleted_integration(self, writer, registry, connector, integration, synced_task):
        registry.delete(integration.id)
        with pytest.raises(IntegrationNotFoundError):
            writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)
        assert connector.update_calls == []

    def test_no_status_mapping(self, writer, registry, integration, synced_task):
        registry.save(
            integration.model_copy(update={"field_mappings": [], "status_field_id": None})
        )
        with pytest.raises(NoStatusMappingError):
            writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)

    def test_no_connector(self, store, registry, synced_task):
        writer = PushBackWriter(store, registry, {})
        with pytest.raises(ConnectorError, match="No connector configured"):
            writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)

    def test_remote_failure_leaves_task_untouched(self, writer, store, connector, synced_task):
        connector.update_error = AuthenticationError("github", "Token expired or invalid", 401)

        with pytest.raises(AuthenticationError):
            writer.push_status_change(synced_task.id, TaskStatus.COMPLETE)

        task = store.get_task(synced_task.id)
        assert task.status == TaskStatus.BACKLOG
        assert task.remote_metadata[RemoteSystem.GITHUB].local_version == 0


class TestMoveTask:
    """Test local move with push-back and revert."""

    def test_local_only_task_is_just_moved(self, writer, store, connector):
        board = store.create_board("Personal")
        task = store.create_task(board.id, "Buy milk")

        moved = move_task(store, writer, task.id, TaskStatus.COMPLETE)

        assert moved.status == TaskStatus.COMPLETE
        assert connector.update_calls == []

    def test_linked_task_is_pushed(self, writer, store, connector, synced_task):
        moved = move_task(store, writer, synced_task.id, TaskStatus.ONDECK)

        assert moved.status == TaskStatus.ONDECK
        assert moved.remote_metadata[RemoteSystem.GITHUB].local_version == 1
        assert connector.update_calls[-1][3] == "opt_ready"

    def test_failed_push_reverts(self, writer, store, connector, synced_task):
        connector.update_error = ConnectorError("github", "Server error 502", 502)

        with pytest.raises(ConnectorError):
            move_task(store, writer, synced_task.id, TaskStatus.COMPLETE)

        assert store.get_task(synced_task.id).status == TaskStatus.BACKLOG

    def test_unknown_task(self, writer, store):
        with pytest.raises(TaskNotFoundError):
            move_task(store, writer, "t-missing", TaskStatus.COMPLETE)
