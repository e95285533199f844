"""Shared fixtures: a terminal double that keeps a character grid."""

from __future__ import annotations

import io
from collections.abc import Callable

import pytest
from rich.style import Style

from progressview.terminal import ScreenDimensions, Terminal


class FakeTerminal(Terminal):
    """Records terminal state instead of emitting escape sequences."""

    def __init__(self, columns: int = 80, rows: int = 24) -> None:
        super().__init__(io.StringIO())
        self.dims = ScreenDimensions(columns, rows)
        self.grid: dict[int, dict[int, str]] = {}
        self.cursor = (0, 0)
        self.saved: tuple[int, int] | None = None
        self.scroll_region: tuple[int, int] | None = None
        self.cursor_visible = True
        self.alt_screen = False
        self.resize_callback: Callable[[], None] | None = None
        self.painted: list[tuple[Style, str]] = []
        self.flushes = 0
        self.erases = 0

    def get_dimensions(self) -> ScreenDimensions:
        return self.dims

    def write(self, text: str) -> None:
        col, row = self.cursor
        for ch in text:
            if ch == "\n":
                col, row = 0, row + 1
                continue
            self.grid.setdefault(row, {})[col] = ch
            col += 1
        self.cursor = (col, row)

    def paint(self, style: Style, text: str) -> str:
        self.painted.append((style, text))
        return text

    def flush(self) -> None:
        self.flushes += 1

    def set_cursor(self, col: int, row: int) -> None:
        self.cursor = (col, row)

    def save_cursor(self) -> None:
        self.saved = self.cursor

    def restore_cursor(self) -> None:
        assert self.saved is not None
        self.cursor = self.saved

    def hide_cursor(self) -> None:
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.cursor_visible = True

    def erase_screen(self) -> None:
        self.grid.clear()
        self.erases += 1

    def set_scroll_region(self, top: int, bottom: int) -> None:
        self.scroll_region = (top, bottom)

    def clear_scroll_region(self) -> None:
        self.scroll_region = None

    def enter_alt_screen(self) -> None:
        self.alt_screen = True

    def exit_alt_screen(self) -> None:
        self.alt_screen = False

    def on_resize(self, callback: Callable[[], None]) -> None:
        self.resize_callback = callback

    def remove_resize(self) -> None:
        self.resize_callback = None

    # ── Test helpers ───────────────────────────────────────────────────────

    def row(self, row: int) -> str:
        cells = self.grid.get(row, {})
        if not cells:
            return ""
        return "".join(cells.get(c, " ") for c in range(max(cells) + 1))

    def resize(self, columns: int, rows: int) -> None:
        self.dims = ScreenDimensions(columns, rows)
        assert self.resize_callback is not None
        self.resize_callback()


@pytest.fixture
def term() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def stats_config() -> dict[str, object]:
    return {
        "preserve_previous_screen": True,
        "progress": {"header": "Records", "symbol": " ", "type": "NUMBER", "max": 100},
        "stats": [
            [
                {"name": "read:", "digits": 6, "style": "NONE"},
                {"name": "r/s:", "digits": 5, "style": "SPARK"},
            ],
            [{"name": "queue:", "digits": 5, "style": "GAUGE", "colour": "on magenta"}],
        ],
    }


@pytest.fixture
def make_term() -> type[FakeTerminal]:
    return FakeTerminal
