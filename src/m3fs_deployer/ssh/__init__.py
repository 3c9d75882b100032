"""SSH utilities for running commands on cluster nodes."""

from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
]
