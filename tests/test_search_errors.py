from __future__ import annotations

import io
import sys

import pytest

import streamfind
from streamfind.core.io import (
    EmptyNeedleError,
    InvalidOffset,
    StreamBusyError,
    StreamLease,
    StreamTooLargeError,
)
from streamfind.core.search import SearchState, StreamFinder


class FailingReader(io.RawIOBase):
    """Serves `good` bytes, then raises on every read."""

    def __init__(self, data: bytes, good: int) -> None:
        self._data = data
        self._pos = 0
        self._good = good
        self.reads_after_failure = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def seek(self, offset: int, whence: int = 0) -> int:
        if whence == io.SEEK_END:
            self._pos = len(self._data) + offset
        else:
            self._pos = offset
        return self._pos

    def readinto(self, b) -> int:  # type: ignore[override]
        if self._pos >= self._good:
            self.reads_after_failure += 1
            raise OSError("device unplugged")
        n = min(len(b), self._good - self._pos, len(self._data) - self._pos)
        b[:n] = self._data[self._pos : self._pos + n]
        self._pos += n
        return n


class UnseekableReader(io.RawIOBase):
    def __init__(self, data: bytes) -> None:
        self._inner = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[override]
        return self._inner.readinto(b)


class HugeStream:
    def seek(self, offset: int, whence: int = 0) -> int:
        return sys.maxsize + 1

    def read(self, n: int = -1) -> bytes:
        return b""


def test_empty_needle_rejected() -> None:
    with pytest.raises(EmptyNeedleError):
        StreamFinder(b"")
    with pytest.raises(ValueError):
        streamfind.find(b"", io.BytesIO(b"abc"))
    with pytest.raises(EmptyNeedleError):
        streamfind.rfind_iter(b"", io.BytesIO(b"abc"))


def test_forward_error_reported_once() -> None:
    data = b"ab" * 10000
    reader = FailingReader(data, good=9000)
    searcher = StreamFinder(b"ab").find_iter(reader)
    seen = []
    with pytest.raises(OSError, match="device unplugged"):
        for pos in searcher:
            seen.append(pos)
    # Everything before the failure was reported, in order.
    assert seen == list(range(0, 9000, 2))
    assert searcher.state is SearchState.FAILED
    assert isinstance(searcher.error, OSError)
    assert list(searcher) == []
    assert reader.reads_after_failure == 1


def test_backward_error_reported_once() -> None:
    data = b"ab" * 10000
    # Reads fail everywhere, so the first chunk read raises.
    reader = FailingReader(data, good=0)
    searcher = StreamFinder(b"ab").rfind_iter(reader)
    assert searcher.stream_len == 20000
    with pytest.raises(OSError):
        next(searcher)
    assert searcher.state is SearchState.FAILED
    assert next(searcher, None) is None
    assert reader.reads_after_failure == 1


def test_backward_requires_seekable_stream() -> None:
    reader = UnseekableReader(b"abc")
    with pytest.raises(OSError):
        StreamFinder(b"b").rfind_iter(reader)
    # A failed construction must not leave the stream borrowed.
    assert not StreamLease.is_borrowed(reader)
    assert StreamFinder(b"b").find(reader) == 1


def test_rfind_propagates_seek_failure() -> None:
    with pytest.raises(OSError):
        streamfind.rfind(b"b", UnseekableReader(b"abc"))


def test_stream_too_large() -> None:
    stream = HugeStream()
    with pytest.raises(StreamTooLargeError):
        StreamFinder(b"x").rfind_iter(stream)  # type: ignore[arg-type]
    with pytest.raises(OverflowError):
        streamfind.rfind(b"x", stream)  # type: ignore[arg-type]
    assert not StreamLease.is_borrowed(stream)


def test_stream_borrowed_exclusively() -> None:
    stream = io.BytesIO(b"abcabc")
    finder = StreamFinder(b"abc")
    first = finder.find_iter(stream)
    assert next(first) == 0
    with pytest.raises(StreamBusyError):
        finder.find_iter(stream)
    with pytest.raises(StreamBusyError):
        finder.rfind_iter(stream)
    first.close()
    assert first.state is SearchState.EXHAUSTED
    stream.seek(0)
    assert finder.find(stream) == 0


def test_context_manager_releases_stream() -> None:
    stream = io.BytesIO(b"abcabc")
    finder = StreamFinder(b"c")
    with finder.rfind_iter(stream) as it:
        assert next(it) == 5
        assert StreamLease.is_borrowed(stream)
    assert not StreamLease.is_borrowed(stream)


def test_different_streams_share_finder() -> None:
    finder = StreamFinder(b"c")
    a = finder.find_iter(io.BytesIO(b"abc"))
    b = finder.find_iter(io.BytesIO(b"cc"))
    assert next(a) == 2
    assert list(b) == [0, 1]


def test_negative_offsets_rejected() -> None:
    with pytest.raises(InvalidOffset):
        StreamFinder(b"a").find_iter(io.BytesIO(b"a"), offset=-1)
    searcher = StreamFinder(b"a").rfind_iter(io.BytesIO(b"a"))
    with pytest.raises(InvalidOffset):
        searcher.seek_to(-1)


def test_non_blocking_stream_without_data() -> None:
    class WouldBlock:
        def readinto(self, view: memoryview) -> None:
            return None

    with pytest.raises(BlockingIOError):
        streamfind.find(b"a", WouldBlock())  # type: ignore[arg-type]
