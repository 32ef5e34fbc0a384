from __future__ import annotations

import argparse
import contextlib
import logging
import os
import sys
from typing import Iterator

from rich.console import Console

from streamfind.core.context import ContextReader, snippet_at
from streamfind.core.io import ReadableStream, StreamfindError
from streamfind.core.profiles import ProfileError, SearchProfile, get_profile, load_profile_file
from streamfind.core.search import StreamFinder
from streamfind.logging_utils import configure_logging
from streamfind.ui.render import error_line, match_line, summary_line

logger = logging.getLogger(__name__)


def parse_pattern(pattern: str, *, hex_mode: bool, encoding: str) -> bytes:
    """Turn the PATTERN argument into needle bytes.

    Hex patterns may contain spaces ("de ad be ef"). Raises ValueError on bad
    hex and UnicodeEncodeError/LookupError on encoding problems.
    """
    if hex_mode:
        return bytes.fromhex(pattern.replace(" ", ""))
    return pattern.encode(encoding)


def iter_matches(
    finder: StreamFinder,
    stream: ReadableStream,
    *,
    reverse: bool = False,
    offset: int = 0,
    limit: int | None = None,
) -> Iterator[int]:
    """Yield match positions as the search finds them, at most `limit` of them."""
    searcher = finder.rfind_iter(stream) if reverse else finder.find_iter(stream, offset=offset)
    with searcher:
        for count, pos in enumerate(searcher, 1):
            yield pos
            if limit is not None and count >= limit:
                return


def collect_matches(
    finder: StreamFinder,
    stream: ReadableStream,
    *,
    reverse: bool = False,
    offset: int = 0,
    limit: int | None = None,
) -> tuple[list[int], bool]:
    """Run one search session. Returns (positions, stopped_at_limit)."""
    positions = list(iter_matches(finder, stream, reverse=reverse, offset=offset, limit=limit))
    return positions, limit is not None and len(positions) >= limit


def _resolve_profile(args: argparse.Namespace) -> SearchProfile:
    if args.profile_file:
        return load_profile_file(args.profile_file, base=get_profile(args.profile))
    return get_profile(args.profile)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamfind",
        description="Find a byte pattern in a file or stream without loading it into memory",
    )
    parser.add_argument("path", help="Path to file, or - for stdin (forward only)")
    parser.add_argument("pattern", help="Pattern to search for (text, or hex with --hex)")
    parser.add_argument("-r", "--reverse", action="store_true", help="Search from the end")
    parser.add_argument("--hex", action="store_true", help="PATTERN is hex, e.g. 'deadbeef'")
    parser.add_argument("--encoding", help="Encoding for text patterns (default from profile)")
    parser.add_argument("--start", type=int, default=0, help="Forward search starts at this offset")
    parser.add_argument("-m", "--max", type=int, dest="max_matches", help="Stop after N matches")
    parser.add_argument("-C", "--context", type=int, help="Bytes of context around each match")
    parser.add_argument("-c", "--count", action="store_true", help="Only print the match count")
    parser.add_argument("--profile", default="default", help="Named search profile")
    parser.add_argument("--profile-file", help="YAML file with profile settings")
    parser.add_argument("--browse", action="store_true", help="Open the interactive match browser")
    parser.add_argument("--log-level", default=None, help="Logging level (default WARNING)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    out = Console(highlight=False)
    err = Console(stderr=True, highlight=False)

    def fail(message: str) -> int:
        err.print(error_line(message), soft_wrap=True)
        return 2

    try:
        profile = _resolve_profile(args)
    except ProfileError as e:
        return fail(str(e))

    encoding = args.encoding or profile.encoding
    limit = args.max_matches if args.max_matches is not None else profile.max_matches
    context = args.context if args.context is not None else profile.context
    if limit is not None and limit <= 0:
        return fail("--max must be positive")
    if context < 0 or args.start < 0:
        return fail("--context and --start must be >= 0")

    try:
        needle = parse_pattern(args.pattern, hex_mode=args.hex, encoding=encoding)
        finder = StreamFinder(needle, min_capacity=profile.min_capacity)
    except (ValueError, LookupError) as e:
        return fail(f"invalid pattern: {e}")

    from_stdin = args.path == "-"
    if from_stdin and (args.reverse or args.browse):
        return fail("stdin can only be searched forward")
    if args.reverse and args.start:
        return fail("--start applies to forward search only")
    if not from_stdin and not os.path.exists(args.path):
        return fail(f"file not found: {args.path}")

    if args.browse:
        from streamfind.app import MatchBrowserApp

        app = MatchBrowserApp(
            args.path, finder, reverse=args.reverse, offset=args.start, profile=profile
        )
        app.run()
        return 0

    logger.info("searching %s for %d-byte pattern", args.path, len(needle))
    count = 0
    try:
        with contextlib.ExitStack() as stack:
            if from_stdin:
                stream = sys.stdin.buffer
            else:
                stream = stack.enter_context(open(args.path, "rb"))
                if args.start:
                    stream.seek(args.start)
            reader = None
            if not args.count and context > 0 and not from_stdin:
                reader = stack.enter_context(ContextReader(args.path))
            for pos in iter_matches(
                finder, stream, reverse=args.reverse, offset=args.start, limit=limit
            ):
                count += 1
                if args.count:
                    continue
                snippet = snippet_at(reader, pos, len(needle), context) if reader else None
                out.print(match_line(pos, snippet), soft_wrap=True)
    except (OSError, StreamfindError) as e:
        return fail(str(e))

    limited = limit is not None and count >= limit
    out.print(summary_line(count, needle, reverse=args.reverse, limited=limited), soft_wrap=True)
    return 0 if count else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
