"""Exception types raised by the deployer."""

from __future__ import annotations


class DeployerError(Exception):
    """Base class for deployer errors."""


class PreconditionError(DeployerError):
    """Raised when an operation is called in the wrong runner state."""


class ProgressFileError(DeployerError, OSError):
    """Raised when the progress file cannot be written or read."""


class ProgressParseError(DeployerError, ValueError):
    """Raised when the progress file content is malformed."""


class RuntimeValueTypeError(DeployerError, TypeError):
    """Raised when a runtime value does not have the expected type."""


class TaskCancelledError(DeployerError):
    """Raised by a task that observed cancellation."""


class TaskRunError(DeployerError):
    """A task failed; the original exception is chained as ``__cause__``."""

    def __init__(self, task_name: str, cause: BaseException) -> None:
        super().__init__(f"run task {task_name}: {cause}")
        self.task_name = task_name
        self.cause = cause
