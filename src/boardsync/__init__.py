"""
boardsync - Sync GitHub Projects and Azure DevOps work items with local boards.

Pulls remote items into local tasks, keeps them reconciled on repeated
runs, and pushes local status changes back upstream.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from boardsync.core.config.models import BoardsyncConfig
from boardsync.core.tasks.models import Board, Task, TaskPriority, TaskStatus

__all__ = ["BoardsyncConfig", "Board", "Task", "TaskStatus", "TaskPriority", "__version__"]
