"""Forward and backward substring search over byte streams.

Searchers never hold more than one fixed-size window of the stream in memory.
Matches are reported by the byte offset at which they begin and never overlap
one another.
"""

from __future__ import annotations

import logging
from enum import Enum

from streamfind.core.io import (
    EmptyNeedleError,
    InvalidOffset,
    ReadableStream,
    SeekableStream,
    StreamLease,
    seek_to,
    stream_length,
)
from streamfind.core.window import (
    DEFAULT_CAPACITY,
    BackwardWindow,
    ForwardWindow,
    window_capacity,
)

logger = logging.getLogger(__name__)


class SearchState(Enum):
    SCANNING = "scanning"
    ROLLING = "rolling"
    REFILLING = "refilling"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


_TERMINAL = (SearchState.EXHAUSTED, SearchState.FAILED)


def _as_needle(needle: bytes | bytearray | memoryview) -> bytes:
    if isinstance(needle, str):
        raise TypeError("needle must be bytes; use find_text() for str patterns")
    data = bytes(needle)
    if not data:
        raise EmptyNeedleError("needle must not be empty")
    return data


class _Searcher:
    """Shared iterator plumbing: state, lease handling and error reporting.

    Subclasses implement ``_advance()``, returning the next position or None
    at end of stream. An `OSError` from the stream is raised from
    ``__next__`` once, after which the searcher is finished.
    """

    direction = ""

    def __init__(self, stream: ReadableStream, needle: bytes) -> None:
        self._lease = StreamLease(stream)
        self._stream = stream
        self._needle = needle
        self._state = SearchState.SCANNING
        self.error: OSError | None = None
        self.report_pos: int | None = None
        self.matches = 0

    @property
    def needle(self) -> bytes:
        return self._needle

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state in _TERMINAL

    def __iter__(self):
        return self

    def __next__(self) -> int:
        if self._state in _TERMINAL:
            raise StopIteration
        try:
            pos = self._advance()
        except OSError as exc:
            self._finish(SearchState.FAILED, exc)
            raise
        if pos is None:
            self._finish(SearchState.EXHAUSTED)
            raise StopIteration
        self.matches += 1
        return pos

    def _advance(self) -> int | None:  # pragma: no cover - abstract
        raise NotImplementedError

    def _finish(self, state: SearchState, error: OSError | None = None) -> None:
        self._state = state
        self.error = error
        self._lease.release()
        if error is not None:
            logger.debug("%s search failed after %d matches: %s", self.direction, self.matches, error)
        else:
            logger.debug("%s search finished with %d matches", self.direction, self.matches)

    def close(self) -> None:
        """Stop the search early and give the stream back."""
        if self._state not in _TERMINAL:
            self._finish(SearchState.EXHAUSTED)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        lease = getattr(self, "_lease", None)
        if lease is not None:
            lease.release()


class ForwardSearcher(_Searcher):
    """Lazy iterator over match positions from the start of a stream to its end.

    Only sequential reads are used, so pipes and sockets work. Positions are
    counted from the stream's position when the search started, plus `offset`.
    """

    direction = "forward"

    def __init__(
        self,
        stream: ReadableStream,
        needle: bytes,
        *,
        offset: int = 0,
        min_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        needle = _as_needle(needle)
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        window = ForwardWindow(len(needle), min_capacity=min_capacity)
        super().__init__(stream, needle)
        self._window = window
        # Index into the window content where the next scan starts, and the
        # absolute stream offset of that index.
        self._search_pos = 0
        self._stream_pos = offset
        # End of the last reported match; no later match may start before it.
        self._match_end = offset
        logger.debug(
            "forward search for %d-byte needle, window capacity %d",
            len(needle),
            window.capacity,
        )

    @property
    def stream_pos(self) -> int:
        return self._stream_pos

    @property
    def window(self) -> ForwardWindow:
        return self._window

    def _advance(self) -> int | None:
        window = self._window
        needle = self._needle
        while True:
            self._state = SearchState.SCANNING
            if self._search_pos < len(window):
                found = window.find(needle, self._search_pos)
                if found != -1:
                    skipped = found - self._search_pos
                    self.report_pos = self._stream_pos + skipped
                    self._stream_pos += skipped + len(needle)
                    self._search_pos += skipped + len(needle)
                    self._match_end = self._stream_pos
                    return self.report_pos
                self._stream_pos += len(window) - self._search_pos
                self._search_pos = len(window)

            if len(window) >= window.min_len:
                self._state = SearchState.ROLLING
                window.roll()
                # The kept suffix is rescanned together with the next read so a
                # match crossing the boundary is seen, but never from before the
                # end of the last match.
                retained = self._stream_pos - window.min_len
                resume = max(self._match_end, retained)
                self._search_pos = resume - retained
                self._stream_pos = resume

            self._state = SearchState.REFILLING
            if not window.fill(self._stream):
                return None

    def __repr__(self) -> str:
        return (
            f"ForwardSearcher(needle={self._needle!r}, state={self._state.value}, "
            f"stream_pos={self._stream_pos})"
        )


class BackwardSearcher(_Searcher):
    """Lazy iterator over match positions from the end of a stream to its start.

    Needs a seekable stream. Construction seeks to the end to learn the
    stream length; afterwards the stream cursor is left wherever the last
    chunk read put it, use `seek_to` to rewind.
    """

    direction = "backward"

    def __init__(
        self,
        stream: SeekableStream,
        needle: bytes,
        *,
        min_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        needle = _as_needle(needle)
        window = BackwardWindow(len(needle), min_capacity=min_capacity)
        super().__init__(stream, needle)
        try:
            length = stream_length(stream)
        except BaseException:
            self._lease.release()
            raise
        self._window = window
        self._stream_len = length
        # Bytes of the stream in front of the window that have not been read.
        self._seek_pos = length
        # Bytes of window content consumed from the tail, and the absolute
        # offset where the unscanned region ends.
        self._search_pos = 0
        self._stream_pos = length
        # Start of the last reported match; no earlier match may end after it.
        self._match_start = length
        logger.debug(
            "backward search for %d-byte needle over %d bytes, window capacity %d",
            len(needle),
            length,
            window.capacity,
        )

    @property
    def stream_len(self) -> int:
        return self._stream_len

    @property
    def seek_pos(self) -> int:
        return self._seek_pos

    @property
    def stream_pos(self) -> int:
        return self._stream_pos

    @property
    def window(self) -> BackwardWindow:
        return self._window

    def seek_to(self, pos: int) -> int:
        """Reposition the borrowed stream, e.g. back to 0 after the search."""
        return seek_to(self._stream, pos)

    def _advance(self) -> int | None:
        window = self._window
        needle = self._needle
        while True:
            self._state = SearchState.SCANNING
            if self._search_pos < len(window):
                end = len(window) - self._search_pos
                found = window.rfind(needle, end)
                if found != -1:
                    consumed = end - found
                    self._stream_pos -= consumed
                    self._search_pos += consumed
                    self._match_start = self._stream_pos
                    self.report_pos = self._stream_pos
                    return self.report_pos
                self._stream_pos -= end
                self._search_pos = len(window)

            if self._seek_pos == 0:
                return None

            if len(window) >= window.min_len:
                self._state = SearchState.ROLLING
                window.roll_right()
                retained_end = self._stream_pos + window.min_len
                resume = min(self._match_start, retained_end)
                self._search_pos = retained_end - resume
                self._stream_pos = resume

            self._state = SearchState.REFILLING
            chunk = min(window.free, self._seek_pos)
            self._seek_pos -= chunk
            seek_to(self._stream, self._seek_pos)
            if not window.fill_exact(self._stream, chunk):
                return None

    def __repr__(self) -> str:
        return (
            f"BackwardSearcher(needle={self._needle!r}, state={self._state.value}, "
            f"seek_pos={self._seek_pos}, stream_len={self._stream_len})"
        )


class StreamFinder:
    """A reusable needle that spawns forward or backward searchers.

    The finder is immutable; any number of searchers may be created from it,
    each against its own stream.
    """

    def __init__(
        self,
        needle: bytes | bytearray | memoryview,
        *,
        min_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self._needle = _as_needle(needle)
        # Validates min_capacity up front instead of on first search.
        self._capacity = window_capacity(len(self._needle), min_capacity)
        self._min_capacity = min_capacity

    @property
    def needle(self) -> bytes:
        return self._needle

    @property
    def capacity(self) -> int:
        """Window capacity every searcher from this finder uses."""
        return self._capacity

    def find_iter(self, stream: ReadableStream, *, offset: int = 0) -> ForwardSearcher:
        return ForwardSearcher(
            stream, self._needle, offset=offset, min_capacity=self._min_capacity
        )

    def rfind_iter(self, stream: SeekableStream) -> BackwardSearcher:
        return BackwardSearcher(stream, self._needle, min_capacity=self._min_capacity)

    def find(self, stream: ReadableStream) -> int | None:
        """Offset of the first occurrence in `stream`, or None."""
        with self.find_iter(stream) as it:
            return next(it, None)

    def rfind(self, stream: SeekableStream) -> int | None:
        """Offset of the last occurrence in `stream`, or None."""
        with self.rfind_iter(stream) as it:
            return next(it, None)

    def __repr__(self) -> str:
        return f"StreamFinder({self._needle!r})"


def find(needle: bytes, stream: ReadableStream) -> int | None:
    """Offset of the first occurrence of `needle` in `stream`, or None."""
    return StreamFinder(needle).find(stream)


def rfind(needle: bytes, stream: SeekableStream) -> int | None:
    """Offset of the last occurrence of `needle` in `stream`, or None."""
    return StreamFinder(needle).rfind(stream)


def find_iter(needle: bytes, stream: ReadableStream) -> ForwardSearcher:
    return ForwardSearcher(stream, needle)


def rfind_iter(needle: bytes, stream: SeekableStream) -> BackwardSearcher:
    return BackwardSearcher(stream, needle)


def find_text(text: str, stream: ReadableStream, encoding: str = "utf-8") -> int | None:
    """Find encoded `text` forward in `stream`. Returns offset or None."""
    return find(text.encode(encoding), stream)
