from __future__ import annotations

import socket
from typing import Tuple

from .constants import DEFAULT_BACKLOG, LISTEN_POLL_S
from .errors import ConnectError


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6]:port``) into a socket address.

    An empty host means every interface, as in ``:8080``.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid address {address!r}: expected host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def dial(address: str, timeout: float | None = None) -> socket.socket:
    try:
        host, port = parse_address(address)
        return socket.create_connection((host, port), timeout=timeout)
    except (OSError, ValueError) as exc:
        raise ConnectError(f"connect to server {address}: {exc}") from exc


class TcpListener:
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def listening(
        cls,
        address: str,
        backlog: int = DEFAULT_BACKLOG,
        poll_s: float = LISTEN_POLL_S,
    ) -> "TcpListener":
        try:
            host, port = parse_address(address)
            sock = socket.create_server((host, port), backlog=backlog)
        except (OSError, ValueError) as exc:
            raise ConnectError(f"listen on {address}: {exc}") from exc
        # accept() wakes up periodically so a shutdown request is noticed
        sock.settimeout(poll_s)
        return cls(sock)

    @property
    def address(self) -> Tuple[str, int]:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def accept(self) -> Tuple[socket.socket, Tuple[str, int]]:
        conn, addr = self.sock.accept()
        return conn, addr[:2]

    def close(self) -> None:
        self.sock.close()
