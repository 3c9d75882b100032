"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional, Tuple

_LOGGING_CONFIGURED = False

FIELD_KEY_TASK = "task"
FIELD_KEY_NODE = "node"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def configure_logging(debug: bool = False) -> None:
    """Set the root level; --debug on the CLI turns on DEBUG output."""
    get_logger()
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


class FieldLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[key=value]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"[{fields}] {msg}", kwargs


def task_logger(task_name: str) -> FieldLoggerAdapter:
    return FieldLoggerAdapter(get_logger("m3fs_deployer.task"), {FIELD_KEY_TASK: task_name})


def node_logger(node_name: str) -> FieldLoggerAdapter:
    return FieldLoggerAdapter(get_logger("m3fs_deployer.node"), {FIELD_KEY_NODE: node_name})
