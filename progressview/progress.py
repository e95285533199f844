"""Progress bar state machine.

The bar is DETERMINATE while its maximum is known and INDETERMINATE while a
pending maximum (a :class:`concurrent.futures.Future`) is outstanding; in
that state a highlighted fragment bounces across the bar, advanced by a
:class:`Ticker` thread every 20 ms until the future settles.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass

from progressview.config import DashboardConfig, ProgressType
from progressview.layout import ScreenLayout
from progressview.styles import GLYPHS
from progressview.terminal import Terminal

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.02
FRAGMENT_SHARE = 0.1
PENDING_TRAILER = "calculating..."
CAPTION = " Progress "


class BarState(enum.Enum):
    DETERMINATE = "determinate"
    INDETERMINATE = "indeterminate"


class Ticker:
    """Calls *callback* every *interval* seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="progress-ticker", daemon=True)
        self.ticks = 0

    def start(self) -> None:
        self._thread.start()

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def cancel(self) -> bool:
        """Stop ticking. Returns True only for the call that actually cancelled.

        Never joins: the callback may be waiting on a lock the caller holds.
        """
        if self._stop.is_set():
            return False
        self._stop.set()
        return True

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.ticks += 1
            try:
                self._callback()
            except Exception:
                logger.exception("progress animation tick failed")
                self._stop.set()


@dataclass
class AnimationState:
    """Leading edge and travel direction of the indeterminate fragment."""

    position: int = 0
    direction: int = 1

    def advance(self, bar_width: int) -> None:
        limit = max(0, bar_width - fragment_width(bar_width))
        nxt = self.position + self.direction
        if nxt < 0 or nxt > limit:
            self.direction = -self.direction
            nxt = self.position + self.direction
        self.position = min(max(nxt, 0), limit)


def fragment_width(bar_width: int) -> int:
    return round(FRAGMENT_SHARE * bar_width)


def _digits(value: float) -> int:
    return len(str(int(value)))


class ProgressBar:
    """State and rendering of the single progress line."""

    def __init__(self, config: DashboardConfig, on_tick: Callable[[], None]) -> None:
        self.mode = config.progress_type
        self.header = config.progress_header
        self.symbol = config.progress_symbol
        self.colour = config.progress_colour
        self.background = config.progress_background
        self.max: float = config.progress_max
        self.digits = _digits(self.max)
        self.value: float = 0
        self.state = BarState.DETERMINATE
        self.animation = AnimationState()
        self.pending: Future[float] | None = None
        self._on_tick = on_tick
        self._ticker: Ticker | None = None
        self.update(config.progress_value)

    # ── State transitions ──────────────────────────────────────────────────

    @property
    def upper(self) -> float:
        return 100 if self.mode is ProgressType.PERCENTAGE else self.max

    def update(self, value: float | None = None) -> None:
        """Record a new value; ``None`` keeps the current one."""
        if value is None:
            return
        if self.state is BarState.INDETERMINATE:
            self.value = value
            return
        self.value = min(max(value, 0), self.upper)

    def set_max(self, value: float) -> None:
        self._stop_animation()
        self.pending = None
        self.state = BarState.DETERMINATE
        self.max = max(value, 0)
        self.digits = _digits(self.max)
        self.value = min(max(self.value, 0), self.upper)

    def begin_pending(self, future: Future[float]) -> None:
        """Switch to INDETERMINATE until *future* is passed to :meth:`settle`."""
        self._stop_animation()
        self.pending = future
        self.state = BarState.INDETERMINATE
        self.animation = AnimationState()
        self._ticker = Ticker(TICK_INTERVAL, self._on_tick)
        self._ticker.start()

    def settle(self, future: Future[float]) -> bool:
        """Leave INDETERMINATE with the outcome of *future*.

        Returns False (and changes nothing) if *future* has been superseded.
        """
        if future is not self.pending:
            logger.debug("ignoring a superseded pending maximum")
            return False
        self._stop_animation()
        self.pending = None
        self.state = BarState.DETERMINATE
        self.value = 0
        if future.cancelled():
            logger.warning("pending progress maximum was cancelled; keeping max %s", self.max)
            return True
        exc = future.exception()
        if exc is not None:
            logger.warning(
                "pending progress maximum failed: %s; keeping max %s", exc, self.max
            )
            return True
        self.max = max(future.result(), 0)
        self.digits = _digits(self.max)
        return True

    def tick(self, layout: ScreenLayout) -> bool:
        """Advance the animation one step. Returns False once it is no longer running."""
        if self.state is not BarState.INDETERMINATE:
            return False
        self.animation.advance(self.bar_width(layout, PENDING_TRAILER))
        return True

    def stop(self) -> None:
        self._stop_animation()

    @property
    def animating(self) -> bool:
        return self._ticker is not None and self._ticker.active

    def _stop_animation(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    # ── Rendering ──────────────────────────────────────────────────────────

    def trailer(self) -> str:
        if self.state is BarState.INDETERMINATE:
            return PENDING_TRAILER
        if self.mode is ProgressType.NUMBER:
            return f"{int(self.value):>{self.digits}d}/{int(self.max)}"
        return f"{int(self.value):3d}/100%"

    def bar_width(self, layout: ScreenLayout, trailer: str) -> int:
        return max(0, layout.columns - len(self.header) - len(trailer) - 4)

    def filled_width(self, width: int) -> int:
        if self.mode is ProgressType.NUMBER:
            if self.max <= 0:
                return 0
            filled = round(self.value / self.max * width)
        else:
            filled = round(self.value / 100 * width)
        return min(max(filled, 0), width)

    def render_separator(self, term: Terminal, layout: ScreenLayout) -> None:
        width = max(0, layout.columns - len(CAPTION))
        left = GLYPHS.horiz * (width // 2)
        right = GLYPHS.horiz * (width - len(left))
        term.save_cursor()
        term.set_cursor(0, layout.separator_row)
        term.write(left + CAPTION + right)
        term.restore_cursor()

    def render(self, term: Terminal, layout: ScreenLayout) -> None:
        trailer = self.trailer()
        width = self.bar_width(layout, trailer)
        if self.state is BarState.INDETERMINATE:
            fragment = fragment_width(width)
            front = min(self.animation.position, max(0, width - fragment))
            back = width - fragment - front
            bar = (
                term.paint(self.background, self.symbol * front)
                + term.paint(self.colour, self.symbol * fragment)
                + term.paint(self.background, self.symbol * back)
            )
        else:
            filled = self.filled_width(width)
            bar = term.paint(self.colour, self.symbol * filled) + term.paint(
                self.background, self.symbol * (width - filled)
            )
        term.save_cursor()
        term.set_cursor(0, layout.progress_row)
        term.write(f" {self.header} {bar} {trailer}")
        term.restore_cursor()
