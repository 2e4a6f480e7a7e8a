from __future__ import annotations

import logging
import os
import socket
import threading
import time

from .constants import DEFAULT_CHUNK_SIZE
from .errors import ConnectError, FileIOError, ReadError, TransferError
from .header import TransferHeader, safe_base_name
from .net import TcpListener
from .stats import TransferStats

log = logging.getLogger(__name__)


def handle_connection(
    conn: socket.socket,
    dest_dir: str | os.PathLike[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> TransferStats:
    """Receive one file from ``conn`` into ``dest_dir``.

    The connection is closed on every exit path. Payload past the declared
    size is never written. A peer that closes early leaves a short file and
    the call still succeeds; check ``TransferStats.complete`` to tell.
    """
    if chunk_size < 1:
        conn.close()
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    with conn, conn.makefile("rb", buffering=chunk_size) as reader:
        try:
            header = TransferHeader.read_from(reader)
        except OSError as exc:
            raise ReadError(f"read header: {exc}") from exc

        name = safe_base_name(header.file_name)
        path = os.path.join(dest_dir, name)
        log.info("Creating file %r with size %d", name, header.file_size)
        try:
            out = open(path, "wb")
        except (OSError, ValueError) as exc:
            raise FileIOError(f"create file {name!r}: {exc}") from exc

        stats = TransferStats(file_name=name, file_size=header.file_size)
        with out:
            while stats.bytes_transferred < header.file_size:
                try:
                    chunk = reader.read1(chunk_size)
                except OSError as exc:
                    raise ReadError(f"read data from conn: {exc}") from exc
                if not chunk:
                    break

                remaining = header.file_size - stats.bytes_transferred
                if len(chunk) > remaining:
                    log.debug("Discarding %d bytes past declared size of %r", len(chunk) - remaining, name)
                    chunk = chunk[:remaining]

                try:
                    out.write(chunk)
                except OSError as exc:
                    raise FileIOError(f"write file data: {exc}") from exc
                stats.bytes_transferred += len(chunk)

        stats.end_ts = time.monotonic()

    if stats.complete:
        log.info("Received %r (%d bytes)", name, stats.bytes_transferred)
    else:
        log.warning(
            "Connection closed early: %r truncated at %d/%d bytes",
            name,
            stats.bytes_transferred,
            stats.file_size,
        )
    return stats


class Receiver:
    """Accept loop handing every connection to its own thread.

    ``max_connections`` bounds the number of handlers in flight; the accept
    loop blocks while the bound is reached. ``None`` means no bound.
    """

    def __init__(
        self,
        listener: TcpListener,
        dest_dir: str | os.PathLike[str],
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_connections: int | None = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_connections is not None and max_connections < 1:
            raise ValueError(f"max_connections must be positive, got {max_connections}")
        self.listener = listener
        self.dest_dir = dest_dir
        self.chunk_size = chunk_size
        self.handled = 0
        self._slots = threading.BoundedSemaphore(max_connections) if max_connections is not None else None
        self._shutdown = threading.Event()
        self._done = threading.Condition()

    def serve_forever(self) -> None:
        log.info("Listening on %s:%d", *self.listener.address)
        try:
            while not self._shutdown.is_set():
                try:
                    conn, addr = self.listener.accept()
                except TimeoutError:
                    continue
                except OSError as exc:
                    if self._shutdown.is_set():
                        break
                    raise ConnectError(f"accept connection: {exc}") from exc

                log.info("Incoming connection from %s:%d", *addr)
                if self._slots is not None:
                    self._slots.acquire()
                threading.Thread(
                    target=self._run_handler,
                    args=(conn, addr),
                    name=f"tcpft-conn-{addr[0]}:{addr[1]}",
                    daemon=True,
                ).start()
        finally:
            self.listener.close()

    def _run_handler(self, conn: socket.socket, addr: tuple[str, int]) -> None:
        try:
            handle_connection(conn, self.dest_dir, chunk_size=self.chunk_size)
        except TransferError as exc:
            log.error("handle conn from %s:%d: %s", addr[0], addr[1], exc)
        finally:
            if self._slots is not None:
                self._slots.release()
            with self._done:
                self.handled += 1
                self._done.notify_all()

    def shutdown(self) -> None:
        self._shutdown.set()

    def wait_handled(self, count: int, timeout: float | None = None) -> bool:
        """Block until ``count`` connections have been handled, failed or not."""
        with self._done:
            return self._done.wait_for(lambda: self.handled >= count, timeout)
