"""Shared state handed to every task of a run."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Generic, Optional, Tuple, Type, TypeVar, Union

from ..errors import RuntimeValueTypeError
from ..ssh import SSHCredentials, SSHSession

if TYPE_CHECKING:
    from ..config import Config, Node, Service
    from ..local import LocalSession
    from .progress import DeploymentProgress

T = TypeVar("T")


@dataclass(frozen=True)
class RuntimeKey(Generic[T]):
    """A runtime cache key bound to the type of the values stored under it."""

    name: str
    value_type: Union[Type[T], Tuple[type, ...]]

    def __str__(self) -> str:
        return self.name


# Keys of the runtime cache shared between tasks.
ARTIFACT_TMP_DIR = RuntimeKey("artifact/tmp_dir", str)
ARTIFACT_PATH = RuntimeKey("artifact/path", str)
ARTIFACT_GZIP = RuntimeKey("artifact/gzip", bool)
ARTIFACT_SHA256SUM = RuntimeKey("artifact/sha256sum", str)
ARTIFACT_FILE_PATHS = RuntimeKey("artifact/file_paths", list)

CLICKHOUSE_TMP_DIR = RuntimeKey("clickhouse/tmp_dir", str)
MONITOR_TMP_DIR = RuntimeKey("monitor/tmp_dir", str)
FDB_CLUSTER_FILE_CONTENT = RuntimeKey("fdb/cluster_file_content", str)
MGMTD_SERVER_ADDRESSES = RuntimeKey("mgmtd/server_addresses", str)
USER_TOKEN = RuntimeKey("user_token", str)
ADMIN_CLI_TOML = RuntimeKey("admin_cli_toml", str)

KeyLike = Union[str, RuntimeKey]


def _check_type(key: str, value: Any, expected: Union[type, Tuple[type, ...]]) -> None:
    # bool is an int subclass; an int key never accepts True/False
    if isinstance(value, bool) and expected is int:
        raise RuntimeValueTypeError(f"runtime value {key!r} is bool, expected int")
    if not isinstance(value, expected):
        names = (
            "/".join(t.__name__ for t in expected)
            if isinstance(expected, tuple)
            else expected.__name__
        )
        raise RuntimeValueTypeError(
            f"runtime value {key!r} is {type(value).__name__}, expected {names}"
        )


@dataclass(eq=False)
class Runtime:
    """Task run info.

    The key/value cache is safe to use from any thread a task starts. The
    structured fields are filled once by ``Runner.initialize`` and are
    read-only for tasks.
    """

    config: "Config"
    work_dir: str
    nodes: Dict[str, "Node"] = field(default_factory=dict)
    services: Dict[str, "Service"] = field(default_factory=dict)
    local_em: Optional["LocalSession"] = None
    local_node: Optional["Node"] = None
    progress: Optional["DeploymentProgress"] = None

    _values: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def store(self, key: KeyLike, value: Any) -> None:
        if isinstance(key, RuntimeKey):
            _check_type(key.name, value, key.value_type)
        with self._lock:
            self._values[str(key)] = value

    def load(
        self,
        key: KeyLike,
        default: Any = None,
        *,
        expected_type: Optional[Union[type, Tuple[type, ...]]] = None,
    ) -> Any:
        """Return the value under `key`, or `default` when it was never stored.

        The value is checked against `expected_type`, or the key's own type for
        a RuntimeKey; a mismatch raises RuntimeValueTypeError.
        """
        if expected_type is None and isinstance(key, RuntimeKey):
            expected_type = key.value_type
        with self._lock:
            if str(key) not in self._values:
                return default
            value = self._values[str(key)]
        if expected_type is not None:
            _check_type(str(key), value, expected_type)
        return value

    def load_str(self, key: KeyLike, default: Optional[str] = None) -> Optional[str]:
        return self.load(key, default, expected_type=str)

    def load_bool(self, key: KeyLike, default: Optional[bool] = None) -> Optional[bool]:
        return self.load(key, default, expected_type=bool)

    def load_int(self, key: KeyLike, default: Optional[int] = None) -> Optional[int]:
        return self.load(key, default, expected_type=int)

    def load_or_store(self, key: KeyLike, value: Any) -> Tuple[Any, bool]:
        """Return (existing, True) if present, else store `value` and return (value, False)."""
        if isinstance(key, RuntimeKey):
            _check_type(key.name, value, key.value_type)
        with self._lock:
            if str(key) in self._values:
                return self._values[str(key)], True
            self._values[str(key)] = value
            return value, False

    def delete(self, key: KeyLike) -> None:
        with self._lock:
            self._values.pop(str(key), None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return str(key) in self._values

    def remote_session(self, node_name: str, **kwargs: Any) -> SSHSession:
        """Build an SSH session for an inventory node; KeyError if unknown."""
        node = self.nodes[node_name]
        return SSHSession(SSHCredentials.from_node(node), **kwargs)
