"""Local command execution session."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Union


@dataclass
class LocalCommandResult:
    """Result of executing a local command."""
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class LocalSession:
    """
    Local command execution session.

    Provides the same ``run`` interface as SSHSession but executes commands on
    the machine running the deployer. Commands run through bash; ``sudo=True``
    wraps them with ``sudo -S`` and feeds the configured password on stdin.
    """

    def __init__(
        self,
        working_dir: Optional[str] = None,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        max_exit_timeout: int = 60,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ) -> None:
        """
        Initialize local session.

        Args:
            working_dir: Working directory for commands. Defaults to home directory.
            username: Login name of the local node, used for sudo.
            password: Sudo password of the local node.
            max_exit_timeout: Default timeout in seconds for a command to exit.
            logger: Logger for command tracing.
        """
        self.working_dir = working_dir or os.path.expanduser("~")
        self.username = username
        self.password = password
        self.max_exit_timeout = max_exit_timeout
        self.logger = logger or logging.getLogger(__name__)

    @property
    def sudo_password(self) -> Optional[str]:
        return self.password

    def __enter__(self) -> "LocalSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        pass

    def run(
        self,
        command: Union[str, Sequence[str]],
        *,
        timeout: Optional[int] = None,
        sudo: bool = False,
    ) -> LocalCommandResult:
        """
        Execute a command locally.

        Args:
            command: Shell string, or an argv sequence that gets shell-quoted
            timeout: Seconds to wait before killing the command
                (default: max_exit_timeout)
            sudo: Run through ``sudo -S``

        Returns:
            LocalCommandResult with stdout, stderr, and exit status; a timeout
            yields exit status -1 instead of raising.
        """
        if not isinstance(command, str):
            command = " ".join(shlex.quote(part) for part in command)
        if timeout is None:
            timeout = self.max_exit_timeout

        stdin_data = None
        actual_command = command
        if sudo:
            actual_command = f"sudo -S -p '' bash -c {shlex.quote(command)}"
            # 没有密码时给空 stdin，避免 sudo 读取父进程的 stdin
            stdin_data = self.password + "\n" if self.password else ""

        self.logger.debug("Run command: %s", command)
        try:
            result = subprocess.run(
                actual_command,
                shell=True,
                input=stdin_data,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=self.working_dir if os.path.isdir(self.working_dir) else None,
                executable="/bin/bash",
            )
        except subprocess.TimeoutExpired:
            self.logger.warning("Command timed out after %s seconds: %s", timeout, command)
            return LocalCommandResult(
                command=command,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                exit_status=-1,
            )

        if result.returncode != 0:
            self.logger.debug("Command exited with %d: %s", result.returncode, result.stderr.strip())
        return LocalCommandResult(
            command=command,
            stdout=result.stdout.strip(),
            stderr=result.stderr.strip(),
            exit_status=result.returncode,
        )
