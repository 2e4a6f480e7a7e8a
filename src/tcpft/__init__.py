"""TCP File Transfer (tcpft)

One file per connection over a plain TCP stream:
- an 8-byte big-endian size field followed by a newline
- the file name, terminated by a newline
- exactly `size` bytes of payload

The receiver never answers on the connection; the sender learns nothing beyond
whether its writes succeeded.
"""

from .errors import (
    ConnectError,
    FileIOError,
    FramingError,
    ReadError,
    TransferError,
    ValidationError,
    WriteError,
)
from .header import TransferHeader
from .receiver import Receiver, handle_connection
from .sender import send_file, send_path
from .stats import TransferStats

__all__ = [
    "ConnectError",
    "FileIOError",
    "FramingError",
    "ReadError",
    "Receiver",
    "TransferError",
    "TransferHeader",
    "TransferStats",
    "ValidationError",
    "WriteError",
    "handle_connection",
    "send_file",
    "send_path",
]
