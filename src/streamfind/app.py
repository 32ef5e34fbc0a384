from __future__ import annotations

import os

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Footer, Header, OptionList, Static

from streamfind.cli import collect_matches
from streamfind.core.context import ContextReader, snippet_at
from streamfind.core.profiles import DEFAULT_PROFILE, SearchProfile
from streamfind.core.search import StreamFinder
from streamfind.ui.palette import PALETTE
from streamfind.ui.render import error_line, hex_preview, match_line, summary_line

# Preview always shows at least a couple of hex rows around the hit.
MIN_PREVIEW_CONTEXT = 32


class MatchBrowserApp(App):
    """Textual application listing matches with a hex preview of the selected one."""

    CSS = f"""
    #banner {{
        background: {PALETTE.banner_bg};
        color: {PALETTE.banner_fg};
        padding: 0 1;
    }}
    #matches {{
        width: 40;
        border: solid {PALETTE.accent_dim};
    }}
    #preview {{
        border: solid {PALETTE.accent_dim};
        padding: 0 1;
    }}
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("n", "next_match", "Next Match"),
        ("p", "prev_match", "Prev Match"),
    ]

    def __init__(
        self,
        path: str,
        finder: StreamFinder,
        *,
        reverse: bool = False,
        offset: int = 0,
        profile: SearchProfile = DEFAULT_PROFILE,
    ) -> None:
        super().__init__()
        self._path = path
        self._finder = finder
        self._reverse = reverse
        self._offset = offset
        self._profile = profile
        self._positions: list[int] = []
        self._limited = False
        self._reader: ContextReader | None = None
        self.title = f"streamfind: {os.path.basename(path)}"
        self.banner = Static(id="banner")
        self.preview = Static(id="preview")

    @property
    def positions(self) -> list[int]:
        return list(self._positions)

    def compose(self) -> ComposeResult:
        yield Header()
        yield self.banner
        with Horizontal():
            yield OptionList(id="matches")
            yield self.preview
        yield Footer()

    def on_mount(self) -> None:
        self.load_matches()

    def on_unmount(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def load_matches(self) -> None:
        """Run the search and fill the match list."""
        options = self.query_one("#matches", OptionList)
        options.clear_options()
        try:
            with open(self._path, "rb") as fh:
                if self._offset and not self._reverse:
                    fh.seek(self._offset)
                self._positions, self._limited = collect_matches(
                    self._finder,
                    fh,
                    reverse=self._reverse,
                    offset=self._offset,
                    limit=self._profile.max_matches,
                )
        except OSError as e:
            self._positions, self._limited = [], False
            self.banner.update(error_line(str(e)))
            return

        options.add_options([match_line(pos) for pos in self._positions])
        self.banner.update(
            summary_line(
                len(self._positions),
                self._finder.needle,
                reverse=self._reverse,
                limited=self._limited,
            )
        )
        if self._positions:
            options.highlighted = 0
            self.show_preview(0)
        else:
            self.preview.update("No matches")

    def show_preview(self, index: int) -> None:
        if not 0 <= index < len(self._positions):
            return
        if self._reader is None:
            self._reader = ContextReader(self._path)
        context = max(self._profile.context, MIN_PREVIEW_CONTEXT)
        snippet = snippet_at(self._reader, self._positions[index], len(self._finder.needle), context)
        self.preview.update(hex_preview(snippet))

    def on_option_list_option_highlighted(self, event: OptionList.OptionHighlighted) -> None:
        self.show_preview(event.option_index)

    def _move(self, delta: int) -> None:
        if not self._positions:
            return
        options = self.query_one("#matches", OptionList)
        current = options.highlighted or 0
        options.highlighted = max(0, min(len(self._positions) - 1, current + delta))

    def action_next_match(self) -> None:
        self._move(1)

    def action_prev_match(self) -> None:
        self._move(-1)
