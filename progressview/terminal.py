"""ANSI terminal capability port.

All screen output goes through :class:`Terminal`: cursor movement, erasing,
scroll-region (DECSTBM) control, alternate-screen switching, styled writes
and SIGWINCH subscription. Output is buffered and sent with :meth:`flush`.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import sys
from collections.abc import Callable
from typing import Any, NamedTuple, TextIO

from rich.style import Style

logger = logging.getLogger(__name__)

ESC = "\x1b"
CSI = ESC + "["


class ScreenDimensions(NamedTuple):
    columns: int
    rows: int


def _get_terminal_size(stream: TextIO) -> ScreenDimensions:
    """Return the terminal size for *stream*, with a safe fallback."""
    try:
        size = os.get_terminal_size(stream.fileno())
    except (OSError, ValueError, AttributeError):
        size = shutil.get_terminal_size(fallback=(80, 24))
    return ScreenDimensions(size.columns, size.lines)


class Terminal:
    """Escape-sequence writer bound to one output stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self._buffer: list[str] = []
        self._prev_handler: Any = None
        self._resize_installed = False

    # ── Queries ────────────────────────────────────────────────────────────

    def get_dimensions(self) -> ScreenDimensions:
        return _get_terminal_size(self.stream)

    # ── Output ─────────────────────────────────────────────────────────────

    def write(self, text: str) -> None:
        self._buffer.append(text)

    def paint(self, style: Style, text: str) -> str:
        return style.render(text)

    def flush(self) -> None:
        if not self._buffer:
            return
        self.stream.write("".join(self._buffer))
        self._buffer.clear()
        self.stream.flush()

    # ── Cursor and screen control ──────────────────────────────────────────

    def set_cursor(self, col: int, row: int) -> None:
        """Move to the zero-based (*col*, *row*)."""
        self.write(f"{CSI}{row + 1};{col + 1}H")

    def save_cursor(self) -> None:
        self.write(f"{ESC}7")

    def restore_cursor(self) -> None:
        self.write(f"{ESC}8")

    def hide_cursor(self) -> None:
        self.write(f"{CSI}?25l")

    def show_cursor(self) -> None:
        self.write(f"{CSI}?25h")

    def erase_screen(self) -> None:
        self.write(f"{CSI}2J")

    def set_scroll_region(self, top: int, bottom: int) -> None:
        """Confine scrolling to the zero-based rows *top*..*bottom* inclusive."""
        if bottom < top:
            raise ValueError(f"scroll region bottom {bottom} above top {top}")
        self.write(f"{CSI}{top + 1};{bottom + 1}r")

    def clear_scroll_region(self) -> None:
        self.write(f"{CSI}r")

    def enter_alt_screen(self) -> None:
        self.write(f"{CSI}?1049h")

    def exit_alt_screen(self) -> None:
        self.write(f"{CSI}?1049l")

    # ── Resize notifications ───────────────────────────────────────────────

    def on_resize(self, callback: Callable[[], None]) -> None:
        """Call *callback* on SIGWINCH, chaining any previous handler."""
        sigwinch = getattr(signal, "SIGWINCH", None)
        if sigwinch is None:
            logger.debug("SIGWINCH not available; resize tracking disabled")
            return
        prev = signal.getsignal(sigwinch)

        def _handler(signum: int, frame: Any) -> None:
            callback()
            if callable(prev):
                prev(signum, frame)

        try:
            signal.signal(sigwinch, _handler)
        except ValueError:
            # Only the main thread may install signal handlers.
            logger.warning("cannot watch terminal resizes outside the main thread")
            return
        self._prev_handler = prev
        self._resize_installed = True

    def remove_resize(self) -> None:
        if not self._resize_installed:
            return
        try:
            signal.signal(
                signal.SIGWINCH,
                self._prev_handler if self._prev_handler is not None else signal.SIG_DFL,
            )
        except ValueError:
            logger.warning("cannot restore the SIGWINCH handler outside the main thread")
        self._prev_handler = None
        self._resize_installed = False
