"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import Node


@dataclass
class SSHCredentials:
    """Normalized credential payload built from an inventory node."""

    host: str
    username: str
    port: int = 22
    auth_method: str = "password"
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    timeout: int = 20

    @classmethod
    def from_node(cls, node: "Node", timeout: int = 20) -> "SSHCredentials":
        return cls(
            host=node.host,
            username=node.username,
            port=node.port,
            auth_method="key" if node.key_path and not node.password else "password",
            password=node.password,
            key_path=node.key_path,
            timeout=timeout,
        )

    def validate(self) -> None:
        if self.auth_method == "password" and not self.password:
            raise ValueError("Password authentication selected but no password provided")
        if self.auth_method == "key" and not self.key_path:
            raise ValueError("Key authentication selected but no key_path provided")
