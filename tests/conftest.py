from __future__ import annotations

import socket
import threading

import pytest

from tcpft.net import TcpListener
from tcpft.receiver import Receiver


@pytest.fixture
def serve(tmp_path):
    """Start a Receiver on loopback; returns (receiver, "host:port")."""
    running = []

    def start(**kwargs):
        listener = TcpListener.listening("127.0.0.1:0", poll_s=0.05)
        host, port = listener.address
        receiver = Receiver(listener, tmp_path, **kwargs)
        t = threading.Thread(target=receiver.serve_forever, daemon=True)
        t.start()
        running.append((receiver, t))
        return receiver, f"{host}:{port}"

    yield start

    for receiver, t in running:
        receiver.shutdown()
        t.join(timeout=5)


@pytest.fixture
def feed():
    """Return the reading end of a socketpair preloaded with ``data``."""
    peers = []

    def make(data: bytes) -> socket.socket:
        a, b = socket.socketpair()
        a.sendall(data)
        a.shutdown(socket.SHUT_WR)
        peers.append(a)
        return b

    yield make

    for a in peers:
        a.close()


@pytest.fixture
def free_port():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
