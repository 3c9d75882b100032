"""Local execution module for commands on the deployer machine."""

from .session import LocalSession, LocalCommandResult

__all__ = ["LocalSession", "LocalCommandResult"]
