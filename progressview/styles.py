"""Styles and glyphs used by the dashboard renderers.

Everything the renderers draw with lives here: the box-drawing and
sparkline glyph table and the neutral gauge background. Colours are rich
:class:`~rich.style.Style` objects parsed from strings such as
``"bold white on bright_green"`` or ``"on #ff8800"``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from rich.style import Style

# ── Glyph table ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Glyphs:
    """Box-drawing and sparkline characters."""

    horiz: str = "─"
    vert: str = "│"
    corner_tl: str = "╭"
    corner_tr: str = "╮"
    corner_bl: str = "╰"
    corner_br: str = "╯"
    spark: str = "▁▂▃▄▅▆▇█"


GLYPHS = Glyphs()

NEUTRAL_BACKGROUND = Style.parse("on black")


def sparkline(values: Sequence[float], glyphs: str = GLYPHS.spark) -> str:
    """Render *values* as one glyph per sample, scaled to their min..max."""
    if not values:
        return ""
    lo = min(values)
    hi = max(values)
    span = hi - lo
    top = len(glyphs) - 1
    if span <= 0:
        return glyphs[0] * len(values)
    return "".join(glyphs[round((v - lo) / span * top)] for v in values)
