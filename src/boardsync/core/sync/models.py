"""
Data models for the sync engine.

Defines Pydantic models for integrations, field mappings, the items and
projects connectors return, and sync results/status.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from boardsync.core.tasks.models import RemoteSystem, utc_now


class LocalField(str, Enum):
    """Local task attribute a field mapping targets."""

    STATUS = "status"
    PRIORITY = "priority"
    TAGS = "tags"


class FieldMapping(BaseModel):
    """
    Bidirectional translation between a remote field's values and a local field.

    Neither map needs to be total: unmapped remote values fall back to the
    default local status, and local values without a reverse entry cannot
    be pushed back.

    Example:
        >>> mapping = FieldMapping(
        ...     remote_field_id="System.State",
        ...     remote_field_name="State",
        ...     value_map={"Active": "inprocess"},
        ...     reverse_map={"inprocess": "Active"},
        ... )
        >>> mapping.local_field
        <LocalField.STATUS: 'status'>
    """

    remote_field_id: str = Field(..., description="Remote field id (GraphQL node id, ADO ref name)")
    remote_field_name: str = Field(default="", description="Display name of the remote field")
    local_field: LocalField = Field(default=LocalField.STATUS)
    value_map: dict[str, str] = Field(
        default_factory=dict, description="Remote value -> local value"
    )
    reverse_map: dict[str, str] = Field(
        default_factory=dict, description="Local value -> remote value"
    )


class Integration(BaseModel):
    """
    A configured link between one local board and one remote project.

    Created on import (1:1 with a newly created board) and updated after
    every sync. Deleting an integration never deletes its board or tasks.
    """

    id: str = Field(..., description="Integration id (gh_... / ado_...)")
    remote_system: RemoteSystem
    remote_project_id: str = Field(..., description="Remote project id (GraphQL node id, ADO id)")
    remote_project_name: str
    remote_project_url: str | None = None
    local_board_id: str
    field_mappings: list[FieldMapping] = Field(default_factory=list)
    type_filter: list[str] | None = Field(
        default=None,
        description="Remote item kinds to pull (Issue/PullRequest/DraftIssue, ADO work item types)",
    )
    status_field_id: str | None = Field(
        default=None, description="Remote field written by push-back"
    )
    remote_query: str | None = Field(
        default=None, description="Custom remote query (WIQL) replacing the type filter"
    )
    last_sync_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @staticmethod
    def new_id(system: RemoteSystem) -> str:
        """Generate a fresh integration id for a remote system."""
        return f"{system.id_prefix}_{uuid.uuid4().hex[:12]}"

    def mapping_for(self, local_field: LocalField) -> FieldMapping | None:
        """Return the first field mapping targeting a local field."""
        for mapping in self.field_mappings:
            if mapping.local_field == local_field:
                return mapping
        return None

    @property
    def status_mapping(self) -> FieldMapping | None:
        """The status field mapping, if configured."""
        return self.mapping_for(LocalField.STATUS)


class RemoteItem(BaseModel):
    """
    One remote item as returned by a connector's fetch.

    `status_field_value` is the value looked up in the status mapping:
    the single-select option id for GitHub, the state name for Azure DevOps.
    """

    id: str
    title: str
    description: str | None = None
    status_field_value: str | None = None
    status_label: str | None = Field(
        default=None, description="Human-readable status (option name)"
    )
    type_or_kind: str | None = None
    url: str | None = None
    assignees: list[str] = Field(default_factory=list)
    revision: int | None = None
    priority_value: str | None = None
    tags: list[str] = Field(default_factory=list)


class RemoteFieldOption(BaseModel):
    """A selectable value of a remote field (GitHub option, ADO state)."""

    id: str
    name: str
    category: str | None = Field(
        default=None, description="ADO state category (Proposed, InProgress, ...)"
    )


class RemoteField(BaseModel):
    """A remote single-select field that can carry a status."""

    id: str
    name: str
    options: list[RemoteFieldOption] = Field(default_factory=list)


class RemoteItemType(BaseModel):
    """A remote work item type and the states it can be in."""

    name: str
    states: list[RemoteFieldOption] = Field(default_factory=list)


class RemoteProject(BaseModel):
    """
    A remote project that can be imported.

    GitHub projects describe their single-select fields; Azure DevOps
    projects describe their work item types and states.
    """

    id: str
    name: str
    system: RemoteSystem
    url: str | None = None
    fields: list[RemoteField] = Field(default_factory=list)
    item_types: list[RemoteItemType] = Field(default_factory=list)

    def field_named(self, name: str) -> RemoteField | None:
        """Find a field by case-insensitive name."""
        for field in self.fields:
            if field.name.lower() == name.lower():
                return field
        return None


class SyncResult(BaseModel):
    """
    Result of one sync run.

    Not persisted; the latest one is held by the status publisher.
    """

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        """Number of items that were processed without error."""
        return self.created + self.updated + self.unchanged

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        parts = [
            f"{self.created} created",
            f"{self.updated} updated",
            f"{self.unchanged} unchanged",
        ]
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        return ", ".join(parts)


class SyncStatus(BaseModel):
    """Transient, in-memory sync status of one integration."""

    integration_id: str
    in_progress: bool = False
    last_sync_at: datetime | None = None
    last_result: SyncResult | None = None
    error: str | None = None
