"""
Field mapping resolution between remote values and local task fields.

Two groups of functions live here:

- Steady-state resolution (`to_local_status`, `to_remote_value`,
  `to_local_priority`), used by every sync run and every push-back.
  These never raise.
- Import-time suggestion (`suggest_local_status`, `suggest_status_mapping`,
  `build_status_mapping`), used only while an import is being prepared
  so the user can review a best-effort mapping before confirming. Sync
  runs never call the suggestion code.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum

from boardsync.core.sync.models import (
    FieldMapping,
    LocalField,
    RemoteFieldOption,
    RemoteProject,
)
from boardsync.core.tasks.models import TaskPriority, TaskStatus

DEFAULT_LOCAL_STATUS = TaskStatus.BACKLOG


class Lookup(Enum):
    """Sentinel returned by reverse lookups that have no entry."""

    NOT_FOUND = "not_found"


NOT_FOUND = Lookup.NOT_FOUND


# =============================================================================
# Steady-state resolution
# =============================================================================


def to_local_status(
    mapping: FieldMapping | None,
    remote_value: str | None,
    default: TaskStatus = DEFAULT_LOCAL_STATUS,
) -> TaskStatus:
    """
    Translate a remote status value to a local status.

    Args:
        mapping: Status field mapping (may be None)
        remote_value: Remote value (option id / state name), may be None
        default: Status returned when nothing maps

    Returns:
        The mapped local status, or `default` when the mapping is missing,
        the value is unmapped, or it maps to something that is not a status
    """
    if mapping is None or remote_value is None:
        return default

    local_value = mapping.value_map.get(remote_value)
    if local_value is None:
        return default

    try:
        return TaskStatus(local_value)
    except ValueError:
        return default


def to_remote_value(mapping: FieldMapping | None, local_status: TaskStatus | str) -> str | Lookup:
    """
    Translate a local status to the remote value push-back should write.

    Args:
        mapping: Status field mapping (may be None)
        local_status: Local status to translate

    Returns:
        The remote value, or NOT_FOUND when there is no reverse entry
    """
    if mapping is None:
        return NOT_FOUND

    key = local_status.value if isinstance(local_status, TaskStatus) else local_status
    remote_value = mapping.reverse_map.get(key)
    if not remote_value:
        return NOT_FOUND
    return remote_value


def to_local_priority(mapping: FieldMapping | None, remote_value: str | None) -> TaskPriority | None:
    """Translate a remote priority value; None when unmapped."""
    if mapping is None or remote_value is None:
        return None

    local_value = mapping.value_map.get(remote_value)
    if local_value is None:
        return None

    try:
        return TaskPriority(local_value)
    except ValueError:
        return None


# =============================================================================
# Import-time suggestion
# =============================================================================

# Azure DevOps state categories. Removed has no local equivalent.
_CATEGORY_STATUS: dict[str, TaskStatus | None] = {
    "Proposed": TaskStatus.BACKLOG,
    "InProgress": TaskStatus.INPROCESS,
    "Resolved": TaskStatus.ONDECK,
    "Completed": TaskStatus.COMPLETE,
    "Removed": None,
}

# Checked in order; the first matching keyword wins
_NAME_KEYWORDS: list[tuple[TaskStatus, tuple[str, ...]]] = [
    (TaskStatus.BACKLOG, ("backlog", "todo", "to do", "new", "proposed")),
    (TaskStatus.ONDECK, ("deck", "ready", "next", "resolved", "approved")),
    (TaskStatus.INPROCESS, ("progress", "doing", "active", "in review", "committed")),
    (TaskStatus.COMPLETE, ("done", "complete", "closed", "finished")),
]


def suggest_local_status(name: str, category: str | None = None) -> TaskStatus | None:
    """
    Guess the local status for a remote state name.

    Best-effort suggestion shown during import; the user can override it.
    A known Azure DevOps state category takes precedence over the name.

    Args:
        name: Remote state/option name (e.g. "In Progress", "Active")
        category: Azure DevOps state category, if any

    Returns:
        Suggested local status, or None when the state has no local
        equivalent (e.g. Removed) or nothing matched

    Example:
        >>> suggest_local_status("In Progress")
        <TaskStatus.INPROCESS: 'inprocess'>
        >>> suggest_local_status("Removed", category="Removed") is None
        True
    """
    if category is not None and category in _CATEGORY_STATUS:
        return _CATEGORY_STATUS[category]

    lower = name.lower()
    for status, keywords in _NAME_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return status
    return None


def suggest_status_mapping(
    options: Iterable[RemoteFieldOption],
) -> list[tuple[RemoteFieldOption, TaskStatus | None]]:
    """
    Suggest a local status for every remote option.

    Returns:
        (option, suggested status or None) rows, in option order
    """
    return [(option, suggest_local_status(option.name, option.category)) for option in options]


def build_status_mapping(
    remote_field_id: str,
    remote_field_name: str,
    rows: Sequence[tuple[RemoteFieldOption, TaskStatus | None]],
) -> FieldMapping:
    """
    Build a status FieldMapping from confirmed (option, status) rows.

    Options are keyed by their id in both directions. Unmapped rows are
    skipped. When several options map to the same local status, the last
    one becomes the push-back target.

    Args:
        remote_field_id: Remote field id (GitHub field node id, "System.State")
        remote_field_name: Display name of the field
        rows: Confirmed mapping rows

    Returns:
        FieldMapping targeting the local status field
    """
    value_map: dict[str, str] = {}
    reverse_map: dict[str, str] = {}

    for option, status in rows:
        if status is None:
            continue
        value_map[option.id] = status.value
        reverse_map[status.value] = option.id

    return FieldMapping(
        remote_field_id=remote_field_id,
        remote_field_name=remote_field_name,
        local_field=LocalField.STATUS,
        value_map=value_map,
        reverse_map=reverse_map,
    )


def states_for_types(project: RemoteProject, type_names: Iterable[str]) -> list[RemoteFieldOption]:
    """
    Collect the distinct states of the selected work item types.

    States are de-duplicated by name, keeping the first occurrence.
    """
    selected = set(type_names)
    seen: dict[str, RemoteFieldOption] = {}
    for item_type in project.item_types:
        if item_type.name not in selected:
            continue
        for state in item_type.states:
            seen.setdefault(state.name, state)
    return list(seen.values())


def azure_devops_priority_mapping() -> FieldMapping:
    """Default mapping of Microsoft.VSTS.Common.Priority (1-4) onto p0-p3."""
    value_map = {
        "1": TaskPriority.P0.value,
        "2": TaskPriority.P1.value,
        "3": TaskPriority.P2.value,
        "4": TaskPriority.P3.value,
    }
    return FieldMapping(
        remote_field_id="Microsoft.VSTS.Common.Priority",
        remote_field_name="Priority",
        local_field=LocalField.PRIORITY,
        value_map=value_map,
        reverse_map={v: k for k, v in value_map.items()},
    )
