"""
Task store protocol and registry.

This module defines the TaskStore protocol that all local task stores
must implement, enabling pluggable persistence (JSON file, in-memory).
The sync engine reads and writes tasks and boards only through it.
"""

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .models import Board, BoardKind, Task


@runtime_checkable
class TaskStore(Protocol):
    """
    Protocol for local task store implementations.

    Stores are responsible for:
    - Persisting boards and tasks keyed by id
    - Assigning ids to new boards and tasks
    - Applying partial updates and bumping `updated_at`

    Implementations must be safe to call from several threads at once;
    the sync engine processes remote items on a worker pool.
    """

    def list_boards(self) -> list[Board]:
        """
        List all boards.

        Returns:
            Boards in creation order
        """
        ...

    def get_board(self, board_id: str) -> Board | None:
        """
        Get a board by id.

        Args:
            board_id: Board identifier

        Returns:
            Board if found, None otherwise
        """
        ...

    def create_board(
        self,
        name: str,
        kind: BoardKind = BoardKind.USER,
        remote_url: str | None = None,
    ) -> Board:
        """
        Create a new board.

        Args:
            name: Board name
            kind: Board kind (user, github, azuredevops)
            remote_url: URL of the remote project the board mirrors

        Returns:
            The created board with its assigned id
        """
        ...

    def update_board(self, board_id: str, **changes: Any) -> Board:
        """
        Update fields of a board.

        Args:
            board_id: Board to update
            **changes: Field values to set

        Returns:
            Updated board

        Raises:
            ValueError: If the board is not found
        """
        ...

    def get_tasks_for_board(self, board_id: str) -> list[Task]:
        """
        List all tasks on a board.

        Args:
            board_id: Board identifier

        Returns:
            Tasks on the board (empty list for unknown boards)
        """
        ...

    def get_task(self, task_id: str) -> Task | None:
        """
        Get a task by id.

        Args:
            task_id: Task identifier

        Returns:
            Task if found, None otherwise
        """
        ...

    def create_task(self, board_id: str, title: str, **fields: Any) -> Task:
        """
        Create a task on a board.

        Args:
            board_id: Board the task belongs to
            title: Task title
            **fields: Other Task fields (description, status, remote_metadata, ...)

        Returns:
            The created task with its assigned id
        """
        ...

    def update_task(self, task_id: str, **changes: Any) -> Task:
        """
        Update fields of a task.

        Args:
            task_id: Task to update
            **changes: Field values to set

        Returns:
            Updated task

        Raises:
            ValueError: If the task is not found
        """
        ...


# Store registry
_backends: dict[str, Callable[..., TaskStore]] = {}


def register_backend(name: str) -> Callable[[type], type]:
    """
    Decorator to register a task store implementation.

    Usage:
        @register_backend('json')
        class JsonTaskStore:
            def get_task(self, task_id): ...

    Args:
        name: Backend name (e.g., 'json', 'memory')

    Returns:
        Decorator function
    """

    def decorator(store_class: type) -> type:
        _backends[name] = store_class
        return store_class

    return decorator


def get_backend(
    name: str | None = None,
    data_dir: Path | None = None,
) -> TaskStore:
    """
    Get a task store by name.

    If name is not provided, the BOARDSYNC_BACKEND environment variable is
    consulted, falling back to the json store.

    Args:
        name: Backend name ('json', 'memory', or None)
        data_dir: Directory holding the store's files (file-backed stores only)

    Returns:
        TaskStore instance

    Raises:
        ValueError: If backend name is not registered
    """
    if name is None:
        name = os.environ.get("BOARDSYNC_BACKEND", "json").lower()

    store_class = _backends.get(name)
    if store_class is None:
        raise ValueError(
            f"Backend '{name}' not registered. Available backends: {', '.join(_backends.keys())}"
        )

    if name == "memory":
        return store_class()
    return store_class(data_dir=data_dir)


def list_backends() -> list[str]:
    """
    List all registered backend names.

    Returns:
        List of backend names
    """
    return list(_backends.keys())


def is_backend_available(name: str) -> bool:
    """
    Check if a backend is registered.

    Args:
        name: Backend name to check

    Returns:
        True if backend is registered
    """
    return name in _backends
