"""In-place terminal dashboard: one progress bar over a statistics panel.

The dashboard carves the bottom rows of the terminal out of the scroll
region, so ordinary output keeps scrolling above while the bar and panel are
redrawn in place below it::

    dash = Dashboard().init(load_config())
    dash.set_progress_max(executor.submit(count_items))
    for n, item in enumerate(items, 1):
        print(f"processing {item}")
        dash.update_progress(n)
        dash.update_statistics([[reads, rate], [writes, rate]])
    dash.reset()

Resize signals, animation ticks and caller updates are serialised by one
re-entrant lock; a resize only marks the layout stale, and the next frame
recomputes it before drawing anything.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from concurrent.futures import Future
from contextlib import contextmanager
from typing import Any

from progressview.config import DashboardConfig
from progressview.layout import ScreenLayout
from progressview.progress import ProgressBar
from progressview.stats import StatisticsPanel, StatValues
from progressview.terminal import Terminal

logger = logging.getLogger(__name__)


class Dashboard:
    """Owns the screen layout, the progress bar and the statistics panel."""

    def __init__(self, terminal: Terminal | None = None) -> None:
        self.terminal = terminal if terminal is not None else Terminal()
        self.config: DashboardConfig | None = None
        self.layout: ScreenLayout | None = None
        self.progress: ProgressBar | None = None
        self.stats: StatisticsPanel | None = None
        self._lock = threading.RLock()
        self._depth = 0
        self._resize_pending = False
        self._active = False

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def init(self, config: DashboardConfig | Mapping[str, Any]) -> Dashboard:
        """Take over the bottom of the screen and draw the full frame.

        Raises:
            ConfigError: If *config* is invalid (nothing is drawn).
            GeometryError: If the terminal is too small (nothing is drawn).
            RuntimeError: If the dashboard is already initialised.
        """
        if self._active:
            raise RuntimeError("dashboard is already initialised")
        if not isinstance(config, DashboardConfig):
            config = DashboardConfig.from_mapping(config)
        layout = ScreenLayout(stats_height=len(config.stats))
        layout.initialize(self.terminal.get_dimensions())

        self.config = config
        self.layout = layout
        self.stats = StatisticsPanel(config.stats)
        self.stats.relayout(layout.columns)
        self.progress = ProgressBar(config, on_tick=self._animate)

        term = self.terminal
        with self._frame():
            term.hide_cursor()
            if config.preserve_previous_screen:
                term.enter_alt_screen()
            term.erase_screen()
            self._carve()
            term.set_cursor(0, 0)
            self._active = True
            self._resize_pending = False
            self._draw_all()
        term.on_resize(self._on_resize)
        logger.debug(
            "dashboard initialised at %dx%d with %d statistics lines",
            layout.columns,
            layout.rows,
            layout.stats_height,
        )
        return self

    def reset(self, keep_output: bool = False) -> None:
        """Give the whole terminal back to free scrolling.

        Safe to call repeatedly and from a signal handler. With
        ``keep_output`` the alternate screen is left in place even if the
        configuration asked for the previous screen to be restored.
        """
        if not self._active:
            return
        assert self.progress is not None and self.layout is not None
        assert self.config is not None
        term = self.terminal
        with self._lock:
            self._active = False
            self.progress.stop()
            term.remove_resize()
            term.clear_scroll_region()
            term.show_cursor()
            term.set_cursor(0, self.layout.rows - 1)
            term.write("\n")
            if self.config.preserve_previous_screen and not keep_output:
                term.exit_alt_screen()
            term.flush()

    def __enter__(self) -> Dashboard:
        return self

    def __exit__(self, *exc: object) -> None:
        self.reset()

    @property
    def active(self) -> bool:
        return self._active

    # ── Updates ────────────────────────────────────────────────────────────

    def update_progress(self, value: float | None = None) -> None:
        """Set the bar to *value* (``None`` just redraws it)."""
        if not self._active:
            return
        with self._frame():
            assert self.progress is not None
            self.progress.update(value)
            self._draw_progress()

    def set_progress_max(
        self, value: float | Future[float] | None = None
    ) -> float | Future[float] | None:
        """Set the bar's maximum, or animate it until *value* (a Future) resolves."""
        if not self._active:
            return value
        assert self.progress is not None
        if isinstance(value, Future):
            with self._frame():
                self.progress.begin_pending(value)
                self._draw_progress()
            value.add_done_callback(self._max_settled)
            return value
        with self._frame():
            self.progress.set_max(value if value is not None else 100)
            self._draw_progress()
        return value

    def update_statistics(self, values: StatValues | None = None) -> None:
        """Record and redraw one round of statistics.

        ``values[i][j]`` is the new value of field ``j`` on line ``i``;
        ``None`` entries leave that field without a new sample.
        """
        if not self._active:
            return
        with self._frame():
            assert self.stats is not None
            self.stats.update(values)
            if self._visible:
                self.stats.render(self.terminal, self.layout)

    # ── Internals ──────────────────────────────────────────────────────────

    @property
    def _visible(self) -> bool:
        return self._active and self.layout is not None and not self.layout.degraded

    @contextmanager
    def _frame(self) -> Iterator[None]:
        with self._lock:
            self._depth += 1
            try:
                if self._depth == 1 and self._resize_pending and self._active:
                    self._relayout()
                yield
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self.terminal.flush()

    def _carve(self) -> None:
        assert self.layout is not None
        self.terminal.set_scroll_region(0, self.layout.region_bottom)

    def _draw_progress(self) -> None:
        if self._visible:
            assert self.progress is not None
            self.progress.render(self.terminal, self.layout)

    def _draw_all(self) -> None:
        assert self.progress is not None and self.stats is not None
        if not self._visible:
            return
        self.progress.render_separator(self.terminal, self.layout)
        self.progress.render(self.terminal, self.layout)
        self.stats.render_frame(self.terminal, self.layout)
        self.stats.update()
        self.stats.render(self.terminal, self.layout)

    def _relayout(self) -> None:
        assert self.layout is not None and self.stats is not None
        self._resize_pending = False
        term = self.terminal
        fits = self.layout.resize(term.get_dimensions())
        term.clear_scroll_region()
        term.set_cursor(0, 0)
        term.erase_screen()
        if not fits:
            return
        self._carve()
        self.stats.relayout(self.layout.columns)
        self._draw_all()

    def _on_resize(self) -> None:
        self._resize_pending = True
        if not self._lock.acquire(blocking=False):
            return
        try:
            # Mid-frame (a signal interrupting our own thread): the next
            # frame picks the flag up.
            if self._depth == 0 and self._active:
                with self._frame():
                    pass
        finally:
            self._lock.release()

    def _animate(self) -> None:
        with self._frame():
            if not self._active:
                return
            assert self.progress is not None and self.layout is not None
            if self.progress.tick(self.layout):
                self._draw_progress()

    def _max_settled(self, future: Future[float]) -> None:
        with self._frame():
            if not self._active:
                return
            assert self.progress is not None
            if self.progress.settle(future):
                self._draw_progress()
