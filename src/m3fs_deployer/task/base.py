"""Base class for deployment tasks."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Union

from ..errors import TaskCancelledError

if TYPE_CHECKING:
    from .runtime import Runtime

TaskLogger = Union[logging.Logger, logging.LoggerAdapter]


class Task(ABC):
    """A unit of deployment work driven by the Runner.

    Subclasses set ``name`` and implement ``run``. ``task_id`` is the key in
    the progress file and defaults to ``name``; override it when two tasks
    share a display name.
    """

    name: str = ""

    def __init__(self) -> None:
        self.runtime: Optional["Runtime"] = None
        self.logger: TaskLogger = logging.getLogger(__name__)

    @property
    def task_id(self) -> str:
        return self.name

    def init(self, runtime: "Runtime", logger: TaskLogger) -> None:
        self.runtime = runtime
        self.logger = logger

    @abstractmethod
    def run(self, cancel: threading.Event) -> None:
        """Do the work; raise to fail the deployment."""


def check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise TaskCancelledError("deployment cancelled")
