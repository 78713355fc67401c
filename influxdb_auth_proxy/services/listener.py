"""Listen address parsing and socket binding.

Addresses use the ``host:port`` form: ``:8086`` listens on every interface,
``[::1]:8086`` is IPv6 and an empty address means every interface on port 80.
"""
from __future__ import annotations

import socket
from typing import Tuple

from influxdb_auth_proxy.core.errors import ListenError

DEFAULT_PORT = 80


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``address`` into a bindable (host, port) pair."""
    if not address:
        return "0.0.0.0", DEFAULT_PORT
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ListenError(f"missing port in address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_num = int(port)
    except ValueError:
        raise ListenError(f"invalid port in address {address!r}") from None
    if not 0 <= port_num <= 65535:
        raise ListenError(f"invalid port in address {address!r}")
    return host or "0.0.0.0", port_num


def bind_socket(address: str) -> socket.socket:
    """Create a TCP socket bound to ``address``; uvicorn listens on it."""
    host, port = parse_address(address)
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ListenError(f"cannot bind {address!r}: {e}") from e
    sock.set_inheritable(True)
    return sock
