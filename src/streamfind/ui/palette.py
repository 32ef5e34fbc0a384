from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Palette:
    accent_dim: str
    offset_fg: str
    offset_hex_fg: str
    hit_fg: str
    hit_bg: str
    context_fg: str
    glyph_fg: str
    summary_fg: str
    error_fg: str
    banner_bg: str
    banner_fg: str


DEFAULT = Palette(
    accent_dim="#4c75c6",
    offset_fg="#d8dee9",
    offset_hex_fg="#8892a0",
    hit_fg="#ffffff",
    hit_bg="#10b981",
    context_fg="#6b7280",
    glyph_fg="#d7ba7d",
    summary_fg="#9cdcfe",
    error_fg="#ff5555",
    banner_bg="#10b981",
    banner_fg="#ffffff",
)

# Selected palette for now
PALETTE = DEFAULT
