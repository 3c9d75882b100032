"""Task runner with resumable deployment progress.

- Task: base class for one unit of deployment work
- Runtime: shared state handed to every task
- DeploymentProgress/TaskProgressRecord: durable progress record
- Runner: runs tasks in order and resumes interrupted deployments
"""

from .base import Task, check_cancelled
from .progress import DeploymentProgress, TaskProgressRecord, format_duration
from .runner import Runner
from .runtime import Runtime, RuntimeKey

__all__ = [
    "Task",
    "check_cancelled",
    "DeploymentProgress",
    "TaskProgressRecord",
    "format_duration",
    "Runner",
    "Runtime",
    "RuntimeKey",
]
