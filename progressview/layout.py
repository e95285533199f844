"""Vertical split of the screen between scrolling output and the panel.

Row map for a terminal of ``R`` rows and ``H`` statistics lines (zero-based)::

    0 .. R-H-6      free-scrolling region
    R-H-5           gap
    R-H-4           "Progress" separator
    R-H-3           progress bar
    R-H-2           statistics top border
    R-H-1 .. R-2    statistics lines
    R-1             statistics bottom border
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from progressview.terminal import ScreenDimensions

logger = logging.getLogger(__name__)

# Borders (2) plus gap, separator and progress line (3).
RESERVED_EXTRA = 5
# Rows needed beyond the statistics lines before anything can be drawn.
MIN_HEADROOM = 9


class GeometryError(RuntimeError):
    """The terminal is too small to hold the progress bar and panel."""


@dataclass
class ScreenLayout:
    """Current dimensions and the rows derived from them."""

    stats_height: int
    columns: int = 80
    rows: int = 24
    degraded: bool = False

    @property
    def min_rows(self) -> int:
        return self.stats_height + MIN_HEADROOM

    def fits(self, dims: ScreenDimensions) -> bool:
        return dims.rows >= self.min_rows

    def initialize(self, dims: ScreenDimensions) -> None:
        """Adopt *dims*; raise :class:`GeometryError` if they cannot fit."""
        if not self.fits(dims):
            raise GeometryError(
                f"screen is vertically too small: {dims.rows} rows, "
                f"need at least {self.min_rows}"
            )
        self.columns, self.rows = dims
        self.degraded = False

    def resize(self, dims: ScreenDimensions) -> bool:
        """Adopt *dims* after a resize and return True if the panel fits.

        An undersized terminal is not an error here: the layout is flagged
        degraded and the panel stays suppressed until a later resize fits.
        """
        self.columns, self.rows = dims
        fits = self.fits(dims)
        if not fits and not self.degraded:
            logger.warning(
                "screen is vertically too small (%d rows, need %d); "
                "suppressing the dashboard",
                dims.rows,
                self.min_rows,
            )
        elif fits and self.degraded:
            logger.info("screen large enough again; restoring the dashboard")
        self.degraded = not fits
        return fits

    # ── Derived rows ───────────────────────────────────────────────────────

    @property
    def region_bottom(self) -> int:
        return self.rows - self.stats_height - RESERVED_EXTRA - 1

    @property
    def region_height(self) -> int:
        """Rows available to free-scrolling output above the panel."""
        return max(0, self.region_bottom + 1)

    @property
    def separator_row(self) -> int:
        return self.rows - self.stats_height - 4

    @property
    def progress_row(self) -> int:
        return self.rows - self.stats_height - 3

    @property
    def stats_top_row(self) -> int:
        return self.rows - self.stats_height - 2

    def stats_line_row(self, index: int) -> int:
        return self.stats_top_row + 1 + index

    @property
    def stats_bottom_row(self) -> int:
        return self.rows - 1
