"""
Task and board data models for boardsync.

Defines the local Task and Board models, their status/priority/kind enums,
and the remote metadata blob a task carries once it has been pulled from
an external project (GitHub Projects or Azure DevOps).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Local task status values (the four board columns)."""

    BACKLOG = "backlog"
    ONDECK = "ondeck"
    INPROCESS = "inprocess"
    COMPLETE = "complete"


class TaskPriority(str, Enum):
    """Task priority levels.

    P0 = Critical (highest priority)
    P1 = High
    P2 = Medium
    P3 = Low
    """

    P0 = "p0"
    P1 = "p1"
    P2 = "p2"
    P3 = "p3"


class BoardKind(str, Enum):
    """Where a board came from."""

    SYSTEM = "system"
    USER = "user"
    GITHUB = "github"
    AZURE_DEVOPS = "azuredevops"


class RemoteSystem(str, Enum):
    """External systems a board can be synchronized with."""

    GITHUB = "github"
    AZURE_DEVOPS = "azure_devops"

    @property
    def board_kind(self) -> BoardKind:
        """Board kind used for boards imported from this system."""
        if self is RemoteSystem.GITHUB:
            return BoardKind.GITHUB
        return BoardKind.AZURE_DEVOPS

    @property
    def id_prefix(self) -> str:
        """Prefix used for integration ids of this system."""
        if self is RemoteSystem.GITHUB:
            return "gh"
        return "ado"


class RemoteTaskMetadata(BaseModel):
    """
    Link between a local task and the remote item it was pulled from.

    `remote_item_id` is the join key between a task and a remote item:
    at most one task carries a given (integration_id, remote_item_id) pair.

    `local_version` only moves on push-back and `remote_version` only moves
    on pull-sync updates. Neither is compared before overwriting; the
    store's last write wins.
    """

    integration_id: str = Field(..., description="Integration that owns this link")
    remote_item_id: str = Field(..., description="Remote item/work item identifier")
    remote_item_type: str | None = Field(
        default=None, description="Remote item kind (Issue, PullRequest, Bug, ...)"
    )
    remote_status_value: str | None = Field(
        default=None, description="Last known remote status value (option id or state name)"
    )
    remote_url: str | None = Field(default=None, description="Browser URL of the remote item")
    remote_assignees: list[str] = Field(default_factory=list)
    remote_revision: int | None = Field(
        default=None, description="Remote revision number, where the system has one"
    )
    local_version: int = Field(default=0, ge=0)
    remote_version: int = Field(default=0, ge=0)
    last_synced_at: datetime = Field(default_factory=utc_now)


class Board(BaseModel):
    """A board grouping tasks; imported boards point back at their integration."""

    id: str
    name: str = Field(..., min_length=1)
    kind: BoardKind = BoardKind.USER
    remote_url: str | None = None
    integration_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Task(BaseModel):
    """
    A task on a board.

    Example:
        >>> task = Task(id="t-1", title="Fix bug", board_id="b-1")
        >>> task.status
        <TaskStatus.BACKLOG: 'backlog'>
        >>> task.is_remote_linked
        False
    """

    id: str = Field(..., description="Unique task identifier")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Task description (may contain markdown)")
    status: TaskStatus = Field(default=TaskStatus.BACKLOG)
    priority: TaskPriority | None = None
    board_id: str = Field(..., description="Board this task lives on")
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Keyed by remote system so a task can in principle carry one link per system
    remote_metadata: dict[RemoteSystem, RemoteTaskMetadata] = Field(default_factory=dict)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: str | None) -> str:
        """Treat a missing description as empty."""
        return v or ""

    @computed_field
    @property
    def is_remote_linked(self) -> bool:
        """True when the task was pulled from a remote system."""
        return bool(self.remote_metadata)

    def remote_link(self) -> tuple[RemoteSystem, RemoteTaskMetadata] | None:
        """Return the first remote link of this task, if any."""
        for system, metadata in self.remote_metadata.items():
            return system, metadata
        return None
