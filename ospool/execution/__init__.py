"""
Execution package for ospool.

This package provides the per-task side of the executor:
- Engine-facing task, session and secrets types (task module)
- Input staging / output unstaging commands (copy_strategy module)
- Wrapper script and submit file writing (wrapper module)
- Submission and state tracking (handler module)
"""

from .task import (
    CMD_RUN,
    CMD_SCRIPT,
    SecretsStore,
    Session,
    TaskResources,
    TaskRun,
    normalize_cluster_options,
)
from .copy_strategy import FileCopyStrategy
from .wrapper import WrapperBuilder, WrapperCapabilities
from .handler import TaskHandler

__all__ = [
    "CMD_RUN",
    "CMD_SCRIPT",
    "FileCopyStrategy",
    "SecretsStore",
    "Session",
    "TaskHandler",
    "TaskResources",
    "TaskRun",
    "WrapperBuilder",
    "WrapperCapabilities",
    "normalize_cluster_options",
]
