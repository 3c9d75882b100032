"""Helpers for matching configured hosts against this machine."""

from __future__ import annotations

import ipaddress
import socket
from typing import Callable, Iterable, List, Optional, Set, TypeVar

import psutil

from .logging import get_logger

logger = get_logger(__name__)

NodeT = TypeVar("NodeT")


def get_local_ips() -> Set[str]:
    """Return every IPv4/IPv6 address bound to a local interface."""
    ips: Set[str] = set()
    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            # fe80::1%eth0 -> fe80::1
            ips.add(addr.address.split("%", 1)[0])
    return ips


def resolve_host(host: str) -> Set[str]:
    try:
        ipaddress.ip_address(host)
        return {host}
    except ValueError:
        pass
    infos = socket.getaddrinfo(host, None)
    return {info[4][0].split("%", 1)[0] for info in infos}


def is_local_host(host: str, local_ips: Iterable[str]) -> bool:
    """Whether `host` (IP or hostname) resolves to one of `local_ips`."""
    return bool(resolve_host(host) & set(local_ips))


def find_local_node(
    nodes: List[NodeT],
    local_ips: Iterable[str],
    host_of: Callable[[NodeT], str] = lambda node: node.host,  # type: ignore[attr-defined]
) -> Optional[NodeT]:
    """Pick the single node that is this machine.

    Returns None when no node matches, when more than one does, or when a host
    cannot be resolved; none of these is an error.
    """
    local_ips = set(local_ips)
    matches = []
    for node in nodes:
        host = host_of(node)
        try:
            if is_local_host(host, local_ips):
                matches.append(node)
        except OSError as exc:
            logger.debug("Failed to resolve host %s: %s", host, exc)
    if len(matches) > 1:
        logger.warning(
            "%d nodes match this machine, no local node selected", len(matches)
        )
        return None
    return matches[0] if matches else None
