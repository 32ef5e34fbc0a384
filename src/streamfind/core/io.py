from __future__ import annotations

import errno
import os
import sys
from typing import Protocol


class StreamfindError(Exception):
    """Base class for errors raised by streamfind itself (not by the stream)."""


class InvalidOffset(StreamfindError, ValueError):
    """Raised when an invalid (e.g., negative) offset is provided."""


class EmptyNeedleError(StreamfindError, ValueError):
    """Raised when a search is requested for a zero-length needle."""


class StreamTooLargeError(StreamfindError, OverflowError):
    """Raised when a stream is longer than the platform can index."""


class StreamBusyError(StreamfindError, RuntimeError):
    """Raised when a second searcher tries to borrow a stream already in use."""


class ReadableStream(Protocol):
    def read(self, size: int = -1, /) -> bytes: ...


class SeekableStream(ReadableStream, Protocol):
    def seek(self, offset: int, whence: int = 0, /) -> int: ...


def read_into(stream: ReadableStream, view: memoryview) -> int:
    """Read up to ``len(view)`` bytes from `stream` into `view`.

    Uses ``readinto`` when the stream has one so data lands directly in the
    window; otherwise falls back to ``read`` and copies. Returns the number of
    bytes read, 0 meaning end of stream.
    """
    readinto = getattr(stream, "readinto", None)
    if readinto is not None:
        n = readinto(view)
        if n is None:
            # Non-blocking stream with nothing available yet.
            raise BlockingIOError(errno.EAGAIN, "stream has no data available")
        return n
    data = stream.read(len(view))
    if data is None:
        raise BlockingIOError(errno.EAGAIN, "stream has no data available")
    n = len(data)
    view[:n] = data
    return n


def read_exact_into(stream: ReadableStream, view: memoryview) -> bool:
    """Fill all of `view` from `stream`, tolerating short reads.

    Returns False if the stream ended before `view` was full.
    """
    pos = 0
    total = len(view)
    while pos < total:
        n = read_into(stream, view[pos:])
        if n == 0:
            return False
        pos += n
    return True


def stream_length(stream: SeekableStream) -> int:
    """Seek `stream` to its end and return the resulting position.

    - `OSError` (including `io.UnsupportedOperation`) propagates when the stream
      cannot seek.
    - Lengths beyond ``sys.maxsize`` raise `StreamTooLargeError`.
    """
    end = stream.seek(0, os.SEEK_END)
    if end is None:
        end = stream.tell()  # type: ignore[attr-defined]
    end = int(end)
    if end > sys.maxsize:
        raise StreamTooLargeError(
            f"stream length {end} exceeds the addressable size {sys.maxsize}"
        )
    return end


def seek_to(stream: SeekableStream, pos: int) -> int:
    """Seek `stream` to absolute `pos`. Negative positions raise `InvalidOffset`."""
    if pos < 0:
        raise InvalidOffset("offset must be >= 0")
    return stream.seek(pos, os.SEEK_SET)


class StreamLease:
    """Exclusive borrow of a stream for the lifetime of one searcher.

    Leases are keyed by object identity. The lease holds a strong reference to
    the stream, so the identity cannot be recycled while the lease is held.
    """

    _held: set[int] = set()

    def __init__(self, stream: ReadableStream) -> None:
        key = id(stream)
        if key in StreamLease._held:
            raise StreamBusyError(
                f"stream {stream!r} is already borrowed by another searcher"
            )
        StreamLease._held.add(key)
        self._key: int | None = key
        self.stream = stream

    @property
    def held(self) -> bool:
        return self._key is not None

    def release(self) -> None:
        if self._key is not None:
            self._held.discard(self._key)
            self._key = None

    @staticmethod
    def is_borrowed(stream: object) -> bool:
        return id(stream) in StreamLease._held
