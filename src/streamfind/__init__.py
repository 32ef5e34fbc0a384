"""Bounded-memory substring search over byte streams.

Search a file, pipe or socket for a fixed byte pattern, first-to-last or
last-to-first, holding only a small window of the stream in memory::

    with open("big.log", "rb") as fh:
        first = streamfind.find(b"ERROR", fh)
        fh.seek(0)
        offsets = list(streamfind.find_iter(b"ERROR", fh))
"""

from __future__ import annotations

from streamfind.core.io import (
    EmptyNeedleError,
    InvalidOffset,
    StreamBusyError,
    StreamfindError,
    StreamTooLargeError,
)
from streamfind.core.search import (
    BackwardSearcher,
    ForwardSearcher,
    SearchState,
    StreamFinder,
    find,
    find_iter,
    find_text,
    rfind,
    rfind_iter,
)
from streamfind.core.window import DEFAULT_CAPACITY

__all__ = [
    "DEFAULT_CAPACITY",
    "BackwardSearcher",
    "EmptyNeedleError",
    "ForwardSearcher",
    "InvalidOffset",
    "SearchState",
    "StreamBusyError",
    "StreamFinder",
    "StreamTooLargeError",
    "StreamfindError",
    "find",
    "find_iter",
    "find_text",
    "rfind",
    "rfind_iter",
]

__version__ = "0.1.0"
