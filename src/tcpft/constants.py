from __future__ import annotations

SIZE_FORMAT = "!Q"  # file size, big-endian uint64
DELIMITER = b"\n"
SIZE_FIELD_LEN = 9  # 8 size bytes + delimiter
MAX_FILE_SIZE = 2**64 - 1
MAX_NAME_FIELD = 4096  # name bytes + delimiter

DEFAULT_CHUNK_SIZE = 8 * 1024
DEFAULT_BACKLOG = 128
LISTEN_POLL_S = 0.5

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
