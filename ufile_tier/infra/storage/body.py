"""Pull-based request body over a sequence of in-memory chunks.

The HTTP layer reads the body through ``read()``; data is copied out of the
chunk list one bounded slice at a time and the payload is never joined.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ufile_tier.infra.storage.client import InvalidArgument, StorageError


@dataclass(slots=True)
class StreamCursor:
    chunk_index: int = 0
    offset: int = 0
    total_sent: int = 0

    def clear(self) -> None:
        self.chunk_index = 0
        self.offset = 0
        self.total_sent = 0


class BodyFeeder:
    """Streams a chunk sequence to a transport that pulls bounded reads.

    A feeder serves one exchange at a time. ``prepare`` arms it for a body,
    ``reset`` returns it to the empty state so it can be reused.
    """

    def __init__(self) -> None:
        self._chunks: Sequence[bytes] = ()
        self._declared_length = 0
        self._cursor = StreamCursor()
        self._error: StorageError | None = None

    @property
    def declared_length(self) -> int:
        return self._declared_length

    @property
    def total_sent(self) -> int:
        return self._cursor.total_sent

    @property
    def error(self) -> StorageError | None:
        return self._error

    def prepare(self, chunks: Sequence[bytes], declared_length: int) -> None:
        """Point the cursor at the start of ``chunks``.

        Raises the recorded error, without touching the cursor, when the
        feeder is in an error state; an empty declared length is rejected the
        same way. Both require an explicit ``reset()``.
        """
        if self._error is not None:
            raise self._error
        if declared_length <= 0:
            error = InvalidArgument("declared body length must be positive")
            self._error = error
            raise error
        available = sum(len(chunk) for chunk in chunks)
        if available < declared_length:
            error = InvalidArgument(
                f"body declares {declared_length} bytes but chunks hold {available}"
            )
            self._error = error
            raise error
        self._chunks = chunks
        self._declared_length = declared_length
        self._cursor.clear()

    def pull(self, max_len: int) -> bytes:
        """Return up to ``max_len`` bytes from the cursor; empty at end of body."""
        cursor = self._cursor
        remaining = min(max_len, self._declared_length - cursor.total_sent)
        if remaining <= 0:
            return b""
        out = bytearray()
        while remaining > 0 and cursor.chunk_index < len(self._chunks):
            chunk = memoryview(self._chunks[cursor.chunk_index])
            take = min(remaining, len(chunk) - cursor.offset)
            out += chunk[cursor.offset : cursor.offset + take]
            cursor.offset += take
            cursor.total_sent += take
            remaining -= take
            if cursor.offset == len(chunk):
                cursor.chunk_index += 1
                cursor.offset = 0
        return bytes(out)

    def reset(self) -> None:
        self._chunks = ()
        self._declared_length = 0
        self._cursor.clear()
        self._error = None

    # File-like surface consumed by requests/urllib3.

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = self._declared_length - self._cursor.total_sent
        return self.pull(size)

    def __len__(self) -> int:
        return self._declared_length - self._cursor.total_sent


def split_parts(chunks: Sequence[bytes], part_size: int) -> list[list[memoryview]]:
    """Group ``chunks`` into parts of ``part_size`` bytes (the last may be short).

    Parts are lists of memoryview slices over the original chunks.
    """
    if part_size <= 0:
        raise InvalidArgument("part size must be positive")
    parts: list[list[memoryview]] = []
    current: list[memoryview] = []
    filled = 0
    for chunk in chunks:
        view = memoryview(chunk)
        while len(view):
            take = min(part_size - filled, len(view))
            current.append(view[:take])
            view = view[take:]
            filled += take
            if filled == part_size:
                parts.append(current)
                current = []
                filled = 0
    if current:
        parts.append(current)
    return parts
