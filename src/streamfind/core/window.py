"""Fixed-capacity roll buffers used by the stream searchers.

Both windows keep at least ``min_len`` (the needle length) bytes of context
when rolled, which is what lets a searcher detect a match straddling two
reads of the underlying stream. Capacity is ``max(min_len * 8, min_capacity)``.
"""

from __future__ import annotations

from streamfind.core.io import ReadableStream, read_exact_into, read_into

DEFAULT_CAPACITY = 8 * 1024


def window_capacity(min_len: int, min_capacity: int = DEFAULT_CAPACITY) -> int:
    """Capacity of a window searching for a needle of `min_len` bytes."""
    if min_capacity <= 0:
        raise ValueError("min_capacity must be positive")
    return max(max(1, min_len) * 8, min_capacity)


class ForwardWindow:
    """Left-aligned roll buffer: content lives in ``storage[0:len]``."""

    def __init__(self, min_len: int, *, min_capacity: int = DEFAULT_CAPACITY) -> None:
        self.min_len = max(1, min_len)
        self.capacity = window_capacity(self.min_len, min_capacity)
        self._buf = bytearray(self.capacity)
        self._view = memoryview(self._buf)
        self._end = 0

    def __len__(self) -> int:
        return self._end

    @property
    def free(self) -> int:
        return self.capacity - self._end

    def contents(self) -> bytes:
        return bytes(self._buf[: self._end])

    def find(self, needle: bytes, start: int) -> int:
        """Index of the first `needle` in ``contents()[start:]``, or -1."""
        return self._buf.find(needle, start, self._end)

    def fill(self, stream: ReadableStream) -> bool:
        """Read into free capacity until at least ``min_len`` bytes are held.

        Returns False only if the stream produced no bytes at all during this
        call. I/O errors propagate.
        """
        if self._end >= self.capacity:
            raise ValueError("window is full; roll before filling")
        read_any = False
        while True:
            n = read_into(stream, self._view[self._end :])
            if n == 0:
                return read_any
            read_any = True
            self._end += n
            if self._end >= self.min_len or self._end >= self.capacity:
                return True

    def roll(self) -> None:
        """Keep only the last ``min_len`` bytes, moved to the front."""
        if self._end < self.min_len:
            raise ValueError("window holds fewer bytes than the needle length")
        start = self._end - self.min_len
        self._buf[: self.min_len] = self._buf[start : self._end]
        self._end = self.min_len

    def __repr__(self) -> str:
        return (
            f"ForwardWindow(min_len={self.min_len}, capacity={self.capacity}, "
            f"len={self._end})"
        )


class BackwardWindow:
    """Right-aligned roll buffer: content lives in ``storage[capacity - len:]``.

    Content grows toward the front as earlier parts of the stream are read in.
    """

    def __init__(self, min_len: int, *, min_capacity: int = DEFAULT_CAPACITY) -> None:
        self.min_len = max(1, min_len)
        self.capacity = window_capacity(self.min_len, min_capacity)
        self._buf = bytearray(self.capacity)
        self._view = memoryview(self._buf)
        self._len = 0

    def __len__(self) -> int:
        return self._len

    @property
    def free(self) -> int:
        return self.capacity - self._len

    @property
    def _start(self) -> int:
        return self.capacity - self._len

    def contents(self) -> bytes:
        return bytes(self._buf[self._start :])

    def rfind(self, needle: bytes, end: int) -> int:
        """Index of the last `needle` in ``contents()[:end]``, or -1."""
        start = self._start
        idx = self._buf.rfind(needle, start, start + end)
        return idx if idx == -1 else idx - start

    def fill_exact(self, stream: ReadableStream, amount: int) -> bool:
        """Read exactly `amount` bytes in front of the current content.

        Returns False (without growing the content) if the stream ended
        before `amount` bytes arrived. Other I/O errors propagate.
        """
        if amount < 0 or amount > self.free:
            raise ValueError(f"cannot fill {amount} bytes into {self.free} free bytes")
        start = self._start
        if not read_exact_into(stream, self._view[start - amount : start]):
            return False
        self._len += amount
        return True

    def roll_right(self) -> None:
        """Keep only the first ``min_len`` bytes, moved to the tail."""
        if self._len < self.min_len:
            raise ValueError("window holds fewer bytes than the needle length")
        start = self._start
        self._buf[self.capacity - self.min_len :] = self._buf[start : start + self.min_len]
        self._len = self.min_len

    def __repr__(self) -> str:
        return (
            f"BackwardWindow(min_len={self.min_len}, capacity={self.capacity}, "
            f"len={self._len})"
        )
