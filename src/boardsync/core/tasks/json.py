"""
JSON file task store (tasks.json).

Persists boards and tasks to a single JSON file in the data directory,
with atomic writes. Remote metadata is stored inline on each task so it
survives restarts; it is the only state the sync engine needs to resume
reconciling on the next run.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .backend import register_backend
from .memory import InMemoryTaskStore
from .models import Board, Task

logger = logging.getLogger(__name__)


class TaskFileCorruptedError(Exception):
    """Raised when tasks.json is malformed."""

    pass


@register_backend("json")
class JsonTaskStore(InMemoryTaskStore):
    """
    Task store that uses a tasks.json file for storage.

    File format:
        {
            "boards": [{"id": "b-...", "name": "...", "kind": "github", ...}],
            "tasks": [{"id": "t-...", "board_id": "b-...", "title": "...", ...}]
        }

    The file is re-read when its mtime changes, so several stores (or
    processes) pointed at the same directory see each other's writes.

    Example:
        >>> store = JsonTaskStore(data_dir=Path(".boardsync"))
        >>> board = store.create_board("Imported")
        >>> store.get_board(board.id).name
        'Imported'
    """

    FILE_NAME = "tasks.json"

    def __init__(self, data_dir: Path | None = None, tasks_file: Path | None = None):
        """
        Initialize the JSON store.

        Args:
            data_dir: Data directory (defaults to ./.boardsync)
            tasks_file: Explicit path to tasks.json (overrides data_dir)
        """
        super().__init__()
        self.data_dir = data_dir or Path.cwd() / ".boardsync"
        self.tasks_file = Path(tasks_file) if tasks_file else self.data_dir / self.FILE_NAME
        self._loaded_mtime: float | None = None

    def _refresh(self) -> None:
        if not self.tasks_file.exists():
            return

        current_mtime = os.path.getmtime(self.tasks_file)
        if self._loaded_mtime == current_mtime:
            return

        try:
            with open(self.tasks_file, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise TaskFileCorruptedError(f"Failed to parse {self.tasks_file}: {e}") from e

        if not isinstance(data, dict):
            raise TaskFileCorruptedError(f"{self.tasks_file} must be a JSON object")

        self._boards = {b["id"]: Board.model_validate(b) for b in data.get("boards", [])}
        self._tasks = {t["id"]: Task.model_validate(t) for t in data.get("tasks", [])}
        self._loaded_mtime = current_mtime
        logger.debug(
            "Loaded %d boards and %d tasks from %s",
            len(self._boards),
            len(self._tasks),
            self.tasks_file,
        )

    def _persist(self) -> None:
        data: dict[str, Any] = {
            "boards": [b.model_dump(mode="json") for b in self._boards.values()],
            "tasks": [
                t.model_dump(mode="json", exclude={"is_remote_linked"})
                for t in self._tasks.values()
            ],
        }

        self.tasks_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.tasks_file.parent, prefix=".tasks_", suffix=".json.tmp"
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")

            os.replace(temp_path, self.tasks_file)
            self._loaded_mtime = os.path.getmtime(self.tasks_file)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
