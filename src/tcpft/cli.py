from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import asdict

from .bench import run_benchmark
from .constants import DEFAULT_CHUNK_SIZE, LOG_FORMAT
from .errors import FileIOError, TransferError
from .net import TcpListener
from .receiver import Receiver
from .sender import send_path

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2

log = logging.getLogger("tcpft")


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def cmd_send(args: argparse.Namespace) -> int:
    print("TCP file transfer client (sender)")
    if not args.file:
        print("File name required.")
        return EXIT_USAGE
    if not args.addr:
        print("Server address required.")
        return EXIT_USAGE

    try:
        stats = send_path(args.file, args.addr, chunk_size=args.chunk_size, timeout=args.timeout)
    except FileIOError as exc:
        log.error("%s", exc)
        return EXIT_USAGE
    except TransferError as exc:
        log.error("Send file: %s", exc)
        return EXIT_FAILURE

    log.info(
        "Sent %d bytes in %.3fs (%.2f Mbps)",
        stats.bytes_transferred,
        stats.duration_s,
        stats.throughput_mbps,
    )
    print("Done")
    return EXIT_OK


def cmd_recv(args: argparse.Namespace) -> int:
    print("TCP file transfer server (receiver)")
    if not args.address:
        print("Listen address required.")
        return EXIT_USAGE

    try:
        listener = TcpListener.listening(args.address)
        receiver = Receiver(
            listener,
            args.dir or os.curdir,
            chunk_size=args.chunk_size,
            max_connections=args.max_connections,
        )
        receiver.serve_forever()
    except TransferError as exc:
        log.error("%s", exc)
        return EXIT_FAILURE
    return EXIT_OK


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(size_bytes=args.size_bytes, chunk_size=args.chunk_size)
    payload = {"role": "bench", **asdict(r)}
    print(json.dumps(payload, indent=2) if args.json else payload)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tcpft", description="Single-file transfer over TCP.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--chunk-size", type=positive_int, default=DEFAULT_CHUNK_SIZE)

    send = sub.add_parser(
        "send",
        help="send a file to a receiver",
        epilog="Example: tcpft send -a 0.0.0.0:8080 myfile.txt",
    )
    add_common(send)
    send.add_argument("-a", "--addr", default="", help="server address (ex: 0.0.0.0:8080)")
    send.add_argument("--timeout", type=float, default=None, help="connect and write timeout in seconds")
    send.add_argument("file", nargs="?", default="")
    send.set_defaults(func=cmd_send)

    recv = sub.add_parser(
        "recv",
        help="accept files and write them to a directory",
        epilog="Example: tcpft recv --dir downloads 0.0.0.0:8080",
    )
    add_common(recv)
    recv.add_argument("--dir", default="", help="destination path for received files")
    recv.add_argument("--max-connections", type=positive_int, default=None, help="limit on concurrent transfers")
    recv.add_argument("address", nargs="?", default="")
    recv.set_defaults(func=cmd_recv)

    bench = sub.add_parser("bench", help="loopback benchmark")
    add_common(bench)
    bench.add_argument("--size-bytes", type=int, default=5_000_000)
    bench.add_argument("--json", action="store_true")
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
