"""Rich renderables for search results."""

from __future__ import annotations

from rich.text import Text

from streamfind.core.context import Snippet, to_glyphs
from streamfind.ui.palette import PALETTE

HEX_ROW = 16


def format_needle(needle: bytes) -> str:
    """Show a needle as text when printable, otherwise as hex."""
    if all(32 <= c <= 126 for c in needle):
        return repr(needle.decode("ascii"))
    return "0x" + needle.hex()


def match_line(offset: int, snippet: Snippet | None = None) -> Text:
    """One result row: decimal offset, hex offset and optional ASCII context."""
    text = Text()
    text.append(f"{offset:>12}", style=PALETTE.offset_fg)
    text.append(f"  0x{offset:08x}", style=PALETTE.offset_hex_fg)
    if snippet is not None:
        text.append("  ")
        text.append(to_glyphs(snippet.before), style=PALETTE.context_fg)
        text.append(to_glyphs(snippet.hit), style=f"bold {PALETTE.hit_fg} on {PALETTE.hit_bg}")
        text.append(to_glyphs(snippet.after), style=PALETTE.context_fg)
    return text


def hex_preview(snippet: Snippet) -> Text:
    """Hex dump of a snippet, rows aligned to 16 bytes, with the hit highlighted."""
    data = snippet.before + snippet.hit + snippet.after
    hit_lo = len(snippet.before)
    hit_hi = hit_lo + len(snippet.hit)
    base = snippet.start - (snippet.start % HEX_ROW)
    pad = snippet.start - base

    text = Text()
    row_start = 0 - pad
    while row_start < len(data):
        text.append(f"{base + row_start + pad:08x}  ", style=PALETTE.offset_hex_fg)
        glyphs = Text()
        for i in range(row_start, row_start + HEX_ROW):
            if i < 0 or i >= len(data):
                text.append("   ")
                glyphs.append(" ")
                continue
            if hit_lo <= i < hit_hi:
                style = glyph_style = f"bold {PALETTE.hit_fg} on {PALETTE.hit_bg}"
            else:
                style, glyph_style = PALETTE.context_fg, PALETTE.glyph_fg
            text.append(f"{data[i]:02x}", style=style)
            text.append(" ")
            glyphs.append(to_glyphs(data[i : i + 1]), style=glyph_style)
        text.append(" ")
        text.append_text(glyphs)
        text.append("\n")
        row_start += HEX_ROW
    text.rstrip()
    return text


def summary_line(count: int, needle: bytes, *, reverse: bool, limited: bool) -> Text:
    direction = "backward" if reverse else "forward"
    noun = "match" if count == 1 else "matches"
    text = Text()
    text.append(f"{count} {noun}", style=f"bold {PALETTE.summary_fg}")
    text.append(f" for {format_needle(needle)} ({direction})", style=PALETTE.summary_fg)
    if limited:
        text.append(" [limit reached]", style=PALETTE.accent_dim)
    return text


def error_line(message: str) -> Text:
    return Text(f"streamfind: {message}", style=PALETTE.error_fg)
