from __future__ import annotations

import errno
import io
import logging
import os
import socket
import threading

import pytest

from tcpft import sender
from tcpft.errors import ConnectError, ReadError, WriteError
from tcpft.net import TcpListener, parse_address
from tcpft.receiver import Receiver
from tcpft.sender import send_file, send_path


def test_roundtrip_multi_chunk(tmp_path, serve):
    receiver, addr = serve(chunk_size=4096)
    payload = os.urandom(300_000)

    stats = send_file("blob.bin", len(payload), io.BytesIO(payload), addr, chunk_size=1000)

    assert stats.complete
    assert receiver.wait_handled(1, timeout=10)
    assert (tmp_path / "blob.bin").read_bytes() == payload


def test_empty_file(tmp_path, serve):
    receiver, addr = serve()

    send_file("empty.txt", 0, io.BytesIO(b""), addr)

    assert receiver.wait_handled(1, timeout=10)
    assert (tmp_path / "empty.txt").read_bytes() == b""


def test_send_path_uses_base_name(tmp_path, serve):
    src_dir = tmp_path / "outbox"
    src_dir.mkdir()
    src = src_dir / "notes.md"
    src.write_bytes(b"# notes\n")
    receiver, addr = serve()

    stats = send_path(src, addr)

    assert stats.file_name == "notes.md"
    assert receiver.wait_handled(1, timeout=10)
    assert (tmp_path / "notes.md").read_bytes() == b"# notes\n"


def test_declared_size_larger_than_source(tmp_path, serve):
    receiver, addr = serve()

    stats = send_file("partial.bin", 10, io.BytesIO(b"12345"), addr)

    assert not stats.complete
    assert receiver.wait_handled(1, timeout=10)
    assert (tmp_path / "partial.bin").read_bytes() == b"12345"


def test_concurrent_transfers(tmp_path, serve):
    receiver, addr = serve()
    payloads = {f"file-{i}.bin": os.urandom(20_000 + i * 997) for i in range(8)}
    errors = []

    def run(name, data):
        try:
            send_file(name, len(data), io.BytesIO(data), addr, chunk_size=512)
        except Exception as exc:  # collected for the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=run, args=item) for item in payloads.items()]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert receiver.wait_handled(len(payloads), timeout=10)
    for name, data in payloads.items():
        assert (tmp_path / name).read_bytes() == data


def test_bad_connection_does_not_stop_receiver(tmp_path, serve):
    receiver, addr = serve()

    with socket.create_connection(parse_address(addr)) as raw:
        raw.sendall(b"\x00\x01")

    send_file("after.txt", 2, io.BytesIO(b"ok"), addr)

    assert receiver.wait_handled(2, timeout=10)
    assert (tmp_path / "after.txt").read_bytes() == b"ok"


def test_admission_limit(tmp_path, serve):
    receiver, addr = serve(max_connections=1)

    for i in range(3):
        send_file(f"seq-{i}.txt", 1, io.BytesIO(str(i).encode()), addr)

    assert receiver.wait_handled(3, timeout=10)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["seq-0.txt", "seq-1.txt", "seq-2.txt"]


def test_connect_refused(free_port):
    with pytest.raises(ConnectError, match="connect to server"):
        send_file("x", 1, io.BytesIO(b"x"), f"127.0.0.1:{free_port}")


def test_source_read_failure(serve):
    class BrokenSource:
        def read(self, n):
            raise OSError("device gone")

    _, addr = serve()
    with pytest.raises(ReadError, match="read file"):
        send_file("x.bin", 100, BrokenSource(), addr)


def test_listen_on_busy_port():
    listener = TcpListener.listening("127.0.0.1:0")
    try:
        host, port = listener.address
        with pytest.raises(ConnectError, match="listen on"):
            TcpListener.listening(f"{host}:{port}")
    finally:
        listener.close()


@pytest.mark.parametrize(
    "address, expected",
    [
        ("127.0.0.1:8080", ("127.0.0.1", 8080)),
        (":9000", ("", 9000)),
        ("[::1]:7000", ("::1", 7000)),
    ],
)
def test_parse_address(address, expected):
    assert parse_address(address) == expected


@pytest.mark.parametrize("address", ["localhost", "host:port", ""])
def test_parse_address_invalid(address):
    with pytest.raises(ValueError):
        parse_address(address)


class ResettingConn:
    """Accepts the first ``ok_writes`` sendall calls, then fails."""

    def __init__(self, ok_writes: int):
        self.ok_writes = ok_writes
        self.sent = []
        self.closed = False

    def sendall(self, data):
        if len(self.sent) >= self.ok_writes:
            raise ConnectionResetError(errno.ECONNRESET, "connection reset by peer")
        self.sent.append(data)

    def fileno(self):
        return -1 if self.closed else 99

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True


@pytest.mark.parametrize(
    "ok_writes, message",
    [
        (0, "write file size"),
        (1, "write file name"),
        (2, "write buffer to connection"),
    ],
)
def test_write_error(monkeypatch, ok_writes, message):
    conn = ResettingConn(ok_writes)
    monkeypatch.setattr(sender, "dial", lambda address, timeout=None: conn)

    with pytest.raises(WriteError, match=message):
        send_file("w.bin", 4, io.BytesIO(b"data"), "127.0.0.1:1")
    assert conn.fileno() == -1
    assert len(conn.sent) == ok_writes


def test_zero_chunk_size_rejected_by_sender(tmp_path, serve):
    receiver, addr = serve()

    with pytest.raises(ValueError, match="chunk_size"):
        send_file("z.txt", 3, io.BytesIO(b"abc"), addr, chunk_size=0)
    assert not (tmp_path / "z.txt").exists()


def test_nul_name_logged_by_receiver(tmp_path, serve, caplog):
    receiver, addr = serve()

    with caplog.at_level(logging.ERROR, logger="tcpft.receiver"):
        send_file("a\x00b", 1, io.BytesIO(b"x"), addr)
        assert receiver.wait_handled(1, timeout=10)

    assert any("handle conn" in r.getMessage() and "NUL" in r.getMessage() for r in caplog.records)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize("kwargs", [{"max_connections": 0}, {"chunk_size": 0}])
def test_receiver_rejects_non_positive_limits(tmp_path, kwargs):
    listener = TcpListener.listening("127.0.0.1:0")
    try:
        with pytest.raises(ValueError):
            Receiver(listener, tmp_path, **kwargs)
    finally:
        listener.close()
