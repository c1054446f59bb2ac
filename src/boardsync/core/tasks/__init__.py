"""
Local task store models and interfaces.

This module provides the Task and Board models, the status/priority
enums, the remote metadata a synchronized task carries, and the
TaskStore protocol with its pluggable backends.
"""

from .backend import (
    TaskStore,
    get_backend,
    is_backend_available,
    list_backends,
    register_backend,
)
from .models import (
    Board,
    BoardKind,
    RemoteSystem,
    RemoteTaskMetadata,
    Task,
    TaskPriority,
    TaskStatus,
)

# Import store implementations to trigger registration
from . import json, memory  # noqa: F401

__all__ = [
    # Models
    "Board",
    "BoardKind",
    "RemoteSystem",
    "RemoteTaskMetadata",
    "Task",
    "TaskPriority",
    "TaskStatus",
    # Store protocol and registry
    "TaskStore",
    "register_backend",
    "get_backend",
    "list_backends",
    "is_backend_available",
]
