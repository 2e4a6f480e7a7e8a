from __future__ import annotations


class TransferError(Exception):
    """Base class for every failure raised by a sender or a receiver."""


class ConnectError(TransferError):
    """A stream could not be established, bound or accepted."""


class FramingError(TransferError):
    """The transfer header is malformed or was cut short."""


class ValidationError(TransferError):
    """A header field holds a value the protocol cannot carry."""


class FileIOError(TransferError):
    """A local file could not be opened, created or written."""


class ReadError(TransferError):
    pass


class WriteError(TransferError):
    pass
