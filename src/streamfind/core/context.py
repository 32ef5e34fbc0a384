from __future__ import annotations

import os
from collections import OrderedDict
from contextlib import suppress
from dataclasses import dataclass

from streamfind.core.io import InvalidOffset

PRINTABLE_MIN = 32
PRINTABLE_MAX = 126


def to_glyphs(b: bytes) -> str:
    """Render bytes as ASCII with non-printables shown as ·."""
    return "".join(chr(c) if PRINTABLE_MIN <= c <= PRINTABLE_MAX else "·" for c in b)


class ContextReader:
    """Bounds-checked reader for showing bytes around search matches.

    Reads go through a small LRU page cache, so showing many nearby matches
    costs few system calls. The file is never loaded into memory at once.
    """

    def __init__(self, path: str, *, page_size: int = 4096, cache_pages: int = 8) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        if cache_pages <= 0:
            raise ValueError("cache_pages must be positive")
        try:
            st = os.stat(path)
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {path}") from None

        self._path = path
        self._size = int(st.st_size)
        self._fh = open(path, "rb")  # noqa: SIM115
        self._page_size = int(page_size)
        self._cache_limit = int(cache_pages)
        self._cache: OrderedDict[int, bytes] = OrderedDict()

    def close(self) -> None:
        with suppress(OSError):
            self._fh.close()

    def __enter__(self) -> ContextReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def size(self) -> int:
        return self._size

    @property
    def path(self) -> str:
        return self._path

    def _page(self, index: int) -> bytes:
        if index in self._cache:
            self._cache.move_to_end(index)
            return self._cache[index]
        start = index * self._page_size
        if start >= self._size:
            data = b""
        else:
            self._fh.seek(start)
            data = self._fh.read(min(self._page_size, self._size - start))
        self._cache[index] = data
        if len(self._cache) > self._cache_limit:
            self._cache.popitem(last=False)
        return data

    def read(self, offset: int, length: int) -> bytes:
        """Read up to `length` bytes at `offset`, truncated at EOF."""
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        if length < 0:
            raise InvalidOffset("length must be >= 0")
        end = min(self._size, offset + length)
        out = bytearray()
        pos = offset
        while pos < end:
            index = pos // self._page_size
            page = self._page(index)
            within = pos - index * self._page_size
            take = min(len(page) - within, end - pos)
            if take <= 0:
                break
            out += page[within : within + take]
            pos += take
        return bytes(out)


@dataclass(frozen=True)
class Snippet:
    offset: int  # absolute offset of the match
    before: bytes
    hit: bytes
    after: bytes

    @property
    def start(self) -> int:
        """Absolute offset of the first byte of `before`."""
        return self.offset - len(self.before)


def snippet_at(reader: ContextReader, offset: int, length: int, context: int) -> Snippet:
    """Bytes of a match plus up to `context` bytes on each side."""
    if context < 0:
        raise InvalidOffset("context must be >= 0")
    lead = min(context, max(0, offset))
    before = reader.read(offset - lead, lead)
    hit = reader.read(offset, length)
    after = reader.read(offset + length, context)
    return Snippet(offset=offset, before=before, hit=hit, after=after)
