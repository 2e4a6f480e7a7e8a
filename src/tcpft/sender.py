from __future__ import annotations

import logging
import os
import time
from typing import BinaryIO

from .constants import DEFAULT_CHUNK_SIZE
from .errors import FileIOError, ReadError, WriteError
from .header import encode_name_field, encode_size_field
from .net import dial
from .stats import TransferStats

log = logging.getLogger(__name__)


def send_file(
    file_name: str,
    file_size: int,
    source: BinaryIO,
    address: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout: float | None = None,
) -> TransferStats:
    """Stream ``source`` to the receiver at ``address`` as ``file_name``.

    ``file_size`` goes on the wire as given; it is the caller's job to make it
    match what ``source`` yields. Any failure aborts the transfer and the
    connection is closed with whatever was already sent.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    size_field = encode_size_field(file_size)
    name_field = encode_name_field(file_name)
    stats = TransferStats(file_name=file_name, file_size=file_size)

    with dial(address, timeout=timeout) as conn:
        try:
            conn.sendall(size_field)
        except OSError as exc:
            raise WriteError(f"write file size: {exc}") from exc
        try:
            conn.sendall(name_field)
        except OSError as exc:
            raise WriteError(f"write file name: {exc}") from exc

        while True:
            try:
                chunk = source.read(chunk_size)
            except OSError as exc:
                raise ReadError(f"read file: {exc}") from exc
            if not chunk:
                break
            try:
                conn.sendall(chunk)
            except OSError as exc:
                raise WriteError(f"write buffer to connection: {exc}") from exc
            stats.bytes_transferred += len(chunk)

    stats.end_ts = time.monotonic()
    if not stats.complete:
        log.warning(
            "Sent %d bytes for %r but the header declared %d",
            stats.bytes_transferred,
            file_name,
            file_size,
        )
    return stats


def send_path(path: str | os.PathLike[str], address: str, **kwargs) -> TransferStats:
    """Send a local file under its base name, sized from ``os.stat``."""
    try:
        f = open(path, "rb")
    except OSError as exc:
        raise FileIOError(f"open file: {exc}") from exc

    with f:
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as exc:
            raise FileIOError(f"get file stat: {exc}") from exc
        name = os.path.basename(os.fspath(path))
        log.info("Sending file %r to server %r", name, address)
        return send_file(name, size, f, address, **kwargs)
