from __future__ import annotations

import posixpath
import struct
from dataclasses import dataclass
from typing import BinaryIO

from .constants import DELIMITER, MAX_FILE_SIZE, MAX_NAME_FIELD, SIZE_FIELD_LEN, SIZE_FORMAT
from .errors import FramingError, ValidationError

NAME_ENCODING = "utf-8"
NAME_ERRORS = "surrogateescape"


def encode_size_field(size: int) -> bytes:
    if not 0 <= size <= MAX_FILE_SIZE:
        raise ValidationError(f"file size out of range: {size}")
    return struct.pack(SIZE_FORMAT, size) + DELIMITER


def decode_size_field(raw: bytes) -> int:
    if len(raw) != SIZE_FIELD_LEN:
        raise FramingError(f"read file size: expected {SIZE_FIELD_LEN} bytes, got {len(raw)}")
    if raw[-1:] != DELIMITER:
        raise FramingError(f"read file size: missing delimiter at offset {SIZE_FIELD_LEN - 1}")
    (size,) = struct.unpack(SIZE_FORMAT, raw[:-1])
    return size


def encode_name_field(name: str) -> bytes:
    if not name:
        raise ValidationError("empty file name")
    raw = name.encode(NAME_ENCODING, NAME_ERRORS)
    if DELIMITER in raw:
        raise ValidationError(f"file name contains a newline: {name!r}")
    if len(raw) + len(DELIMITER) > MAX_NAME_FIELD:
        raise ValidationError(f"file name too long: {len(raw)} bytes")
    return raw + DELIMITER


def decode_name_field(raw: bytes) -> str:
    """Decode a name field as read off the wire, terminator included.

    Trailing whitespace (a CR left by line-oriented peers, for instance) is
    trimmed. Leading whitespace is part of the name.
    """
    if raw.endswith(DELIMITER):
        raw = raw[: -len(DELIMITER)]
    name = raw.decode(NAME_ENCODING, NAME_ERRORS).rstrip()
    if not name:
        raise ValidationError("empty file name")
    return name


def safe_base_name(name: str) -> str:
    """Reduce a wire name to a single path component.

    Both ``/`` and ``\\`` count as separators so a name produced on any
    platform cannot climb out of the destination directory.
    """
    base = posixpath.basename(name.replace("\\", "/"))
    if base in ("", ".", ".."):
        raise ValidationError(f"file name has no usable base component: {name!r}")
    if "\x00" in base:
        raise ValidationError(f"file name contains a NUL byte: {name!r}")
    return base


@dataclass(frozen=True, slots=True)
class TransferHeader:
    file_size: int
    file_name: str

    def to_bytes(self) -> bytes:
        return encode_size_field(self.file_size) + encode_name_field(self.file_name)

    @staticmethod
    def read_from(stream: BinaryIO) -> "TransferHeader":
        """Read one header from a buffered stream, leaving it at the payload.

        The stream must block until the requested byte count or end of
        stream, as ``io.BufferedReader`` does.
        """
        raw = stream.read(SIZE_FIELD_LEN)
        if len(raw) < SIZE_FIELD_LEN:
            raise FramingError(f"read file size: unexpected end of stream after {len(raw)} bytes")
        file_size = decode_size_field(raw)

        raw = stream.readline(MAX_NAME_FIELD)
        if not raw.endswith(DELIMITER):
            if len(raw) >= MAX_NAME_FIELD:
                raise FramingError(f"read file name: no delimiter within {MAX_NAME_FIELD} bytes")
            raise FramingError("read file name: unexpected end of stream")
        return TransferHeader(file_size=file_size, file_name=decode_name_field(raw))
