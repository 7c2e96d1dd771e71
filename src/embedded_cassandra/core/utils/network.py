"""Socket helpers for port allocation and readiness probes."""
from __future__ import annotations

import socket
from ipaddress import IPv4Address, IPv6Address
from typing import Union

Host = Union[str, IPv4Address, IPv6Address]


def find_free_port(host: Host = "127.0.0.1") -> int:
    """Ask the OS for an unused TCP port on ``host``.

    The port is released before returning, so another process may still take
    it; callers use it immediately.
    """
    family = socket.AF_INET6 if ":" in str(host) else socket.AF_INET
    with socket.socket(family, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((str(host), 0))
        return int(sock.getsockname()[1])


def is_port_open(host: Host, port: int, timeout: float = 0.5) -> bool:
    """Return True if a TCP connection to ``host:port`` can be established."""
    if port is None or port <= 0:
        return False
    try:
        with socket.create_connection((str(host), int(port)), timeout=timeout):
            return True
    except OSError:
        return False


__all__ = ["find_free_port", "is_port_open"]
