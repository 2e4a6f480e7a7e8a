from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass

from .constants import DEFAULT_CHUNK_SIZE
from .net import TcpListener
from .receiver import Receiver
from .sender import send_file

BENCH_FILE_NAME = "bench.bin"


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    chunk_size: int


def run_benchmark(
    *,
    size_bytes: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    join_timeout_s: float = 30.0,
) -> BenchmarkResult:
    with tempfile.TemporaryDirectory() as dest_dir:
        listener = TcpListener.listening("127.0.0.1:0")
        host, port = listener.address
        receiver = Receiver(listener, dest_dir, chunk_size=chunk_size)

        t = threading.Thread(target=receiver.serve_forever, daemon=True)
        t.start()
        try:
            with tempfile.TemporaryFile() as src:
                src.write(os.urandom(size_bytes))
                src.seek(0)
                stats = send_file(
                    BENCH_FILE_NAME,
                    size_bytes,
                    src,
                    f"{host}:{port}",
                    chunk_size=chunk_size,
                )
            receiver.wait_handled(1, timeout=join_timeout_s)
        finally:
            receiver.shutdown()
            t.join(timeout=join_timeout_s)

        actual_size = os.path.getsize(os.path.join(dest_dir, BENCH_FILE_NAME))
        assert actual_size == size_bytes

    duration_s = max(0.001, stats.duration_s)
    throughput_mbps = (size_bytes * 8 / 1_000_000) / duration_s

    return BenchmarkResult(
        bytes_transferred=size_bytes,
        duration_s=duration_s,
        throughput_mbps=throughput_mbps,
        chunk_size=chunk_size,
    )
