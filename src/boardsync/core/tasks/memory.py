"""
In-memory task store.

Keeps boards and tasks in dictionaries guarded by a re-entrant lock.
Used directly in tests and as the base of the JSON file store, which
adds loading and atomic persistence on top.
"""

from __future__ import annotations

import threading
import uuid
from typing import Any

from pydantic import BaseModel

from .backend import register_backend
from .models import Board, BoardKind, Task, utc_now


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def _apply_changes(model: BaseModel, changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - set(type(model).model_fields)
    if unknown:
        raise ValueError(f"Unknown {type(model).__name__} fields: {', '.join(sorted(unknown))}")
    data = dict(model)
    data.update(changes)
    data["updated_at"] = utc_now()
    return data


@register_backend("memory")
class InMemoryTaskStore:
    """
    Task store that keeps everything in process memory.

    Returned models are copies; mutating them does not change the store.

    Example:
        >>> store = InMemoryTaskStore()
        >>> board = store.create_board("Sprint")
        >>> task = store.create_task(board.id, "Fix bug")
        >>> store.get_tasks_for_board(board.id)[0].title
        'Fix bug'
    """

    def __init__(self) -> None:
        self._boards: dict[str, Board] = {}
        self._tasks: dict[str, Task] = {}
        self._lock = threading.RLock()

    # Hooks for file-backed subclasses
    def _refresh(self) -> None:
        """Reload state from backing storage if it changed."""

    def _persist(self) -> None:
        """Write state to backing storage."""

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def list_boards(self) -> list[Board]:
        with self._lock:
            self._refresh()
            return [b.model_copy(deep=True) for b in self._boards.values()]

    def get_board(self, board_id: str) -> Board | None:
        with self._lock:
            self._refresh()
            board = self._boards.get(board_id)
            return board.model_copy(deep=True) if board else None

    def create_board(
        self,
        name: str,
        kind: BoardKind = BoardKind.USER,
        remote_url: str | None = None,
    ) -> Board:
        with self._lock:
            self._refresh()
            board = Board(id=_new_id("b"), name=name, kind=kind, remote_url=remote_url)
            self._boards[board.id] = board
            self._persist()
            return board.model_copy(deep=True)

    def update_board(self, board_id: str, **changes: Any) -> Board:
        with self._lock:
            self._refresh()
            board = self._boards.get(board_id)
            if board is None:
                raise ValueError(f"Board not found: {board_id}")
            updated = Board.model_validate(_apply_changes(board, changes))
            self._boards[board_id] = updated
            self._persist()
            return updated.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def get_tasks_for_board(self, board_id: str) -> list[Task]:
        with self._lock:
            self._refresh()
            return [
                t.model_copy(deep=True) for t in self._tasks.values() if t.board_id == board_id
            ]

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            self._refresh()
            task = self._tasks.get(task_id)
            return task.model_copy(deep=True) if task else None

    def create_task(self, board_id: str, title: str, **fields: Any) -> Task:
        with self._lock:
            self._refresh()
            task = Task(id=_new_id("t"), board_id=board_id, title=title, **fields)
            self._tasks[task.id] = task
            self._persist()
            return task.model_copy(deep=True)

    def update_task(self, task_id: str, **changes: Any) -> Task:
        with self._lock:
            self._refresh()
            task = self._tasks.get(task_id)
            if task is None:
                raise ValueError(f"Task not found: {task_id}")
            updated = Task.model_validate(_apply_changes(task, changes))
            self._tasks[task_id] = updated
            self._persist()
            return updated.model_copy(deep=True)
