"""Statistics panel: a bordered box of labelled counters, sparklines and gauges.

Each panel line holds one or more fields. Whatever width the labels and
values on a line leave free is shared evenly between its SPARK and GAUGE
fields (the line's *pixel budget*). Budgets follow the screen width and are
recomputed only on init and resize; value updates never touch them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from progressview.config import FieldSpec, FieldStyle
from progressview.layout import ScreenLayout
from progressview.styles import GLYPHS, NEUTRAL_BACKGROUND, sparkline
from progressview.terminal import Terminal

CAPTION = " Statistics "
GAUGE_MAX_LABEL = " max: "
# Left border plus padding, right padding plus border.
FRAME_WIDTH = 4
FIRST_COLUMN = 2

StatValues = Sequence[Sequence[float | None] | None]


@dataclass
class StatField:
    spec: FieldSpec
    history: list[float] = field(default_factory=lambda: list[float]())
    max: float = 0

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def digits(self) -> int:
        return self.spec.digits

    @property
    def style(self) -> FieldStyle:
        return self.spec.style

    def record(self, value: float | None, budget: int) -> None:
        """Fold *value* into the field's history or running max."""
        if self.style is FieldStyle.SPARK:
            if value is not None:
                self.history.append(value)
            excess = len(self.history) - budget
            if excess > 0:
                del self.history[:excess]
        elif self.style is FieldStyle.GAUGE and value is not None:
            self.max = max(self.max, value)

    def gauge_fill(self, value: float, budget: int) -> int:
        if self.max <= 0:
            return 0
        return min(max(round(budget / self.max * value), 0), budget)


@dataclass
class LineLayout:
    spark_count: int = 0
    gauge_count: int = 0
    label_width: int = 0
    value_width: int = 0
    pixel_budget: int = 0


@dataclass
class StatLine:
    fields: list[StatField]
    layout: LineLayout = field(default_factory=LineLayout)

    def relayout(self, columns: int) -> None:
        lay = LineLayout()
        for f in self.fields:
            lay.label_width += len(f.name) + 1
            lay.value_width += f.digits + 2
            if f.style is FieldStyle.SPARK:
                lay.spark_count += 1
            elif f.style is FieldStyle.GAUGE:
                lay.gauge_count += 1
                lay.value_width += len(GAUGE_MAX_LABEL) + f.digits
        graphics = lay.spark_count + lay.gauge_count
        if graphics:
            # One separating blank after every graphic.
            free = columns - FRAME_WIDTH - lay.label_width - lay.value_width - graphics
            lay.pixel_budget = max(0, free // graphics)
        self.layout = lay


def _as_int(value: float) -> int:
    return int(round(value))


class StatisticsPanel:
    """Ordered statistics lines plus their frame."""

    def __init__(self, lines: Sequence[Sequence[FieldSpec]]) -> None:
        self.lines = [StatLine([StatField(spec) for spec in line]) for line in lines]
        self._current: list[list[float | None]] = []

    @property
    def height(self) -> int:
        return len(self.lines)

    def relayout(self, columns: int) -> None:
        for line in self.lines:
            line.relayout(columns)

    def render_frame(self, term: Terminal, layout: ScreenLayout) -> None:
        """Draw the rounded border with its centred caption."""
        cols = layout.columns
        inner = max(0, cols - 2 - len(CAPTION))
        left = GLYPHS.horiz * (inner // 2)
        right = GLYPHS.horiz * (inner - len(left))
        term.save_cursor()
        term.set_cursor(0, layout.stats_top_row)
        term.write(GLYPHS.corner_tl + left + CAPTION + right + GLYPHS.corner_tr)
        for i in range(self.height):
            row = layout.stats_line_row(i)
            term.set_cursor(0, row)
            term.write(GLYPHS.vert)
            term.set_cursor(cols - 1, row)
            term.write(GLYPHS.vert)
        term.set_cursor(0, layout.stats_bottom_row)
        term.write(GLYPHS.corner_bl + GLYPHS.horiz * max(0, cols - 2) + GLYPHS.corner_br)
        term.restore_cursor()

    def update(self, values: StatValues | None = None) -> None:
        """Fold one round of values into the per-field state.

        ``values[i][j]`` belongs to field ``j`` of line ``i``; ``None`` or a
        short sequence means no new value for that field.
        """
        self._current.clear()
        for i, line in enumerate(self.lines):
            row = values[i] if values is not None and i < len(values) else None
            current: list[float | None] = []
            for j, f in enumerate(line.fields):
                value = row[j] if row is not None and j < len(row) else None
                f.record(value, line.layout.pixel_budget)
                current.append(value)
            self._current.append(current)

    def render(self, term: Terminal, layout: ScreenLayout) -> None:
        current = self._current
        term.save_cursor()
        for i, line in enumerate(self.lines):
            term.set_cursor(FIRST_COLUMN, layout.stats_line_row(i))
            budget = line.layout.pixel_budget
            parts: list[str] = []
            for j, f in enumerate(line.fields):
                given = current[i][j] if i < len(current) else None
                value = given if given is not None else 0
                parts.append(f"{f.name} ")
                if f.style is FieldStyle.GAUGE:
                    parts.append(
                        f"{_as_int(value):{f.digits}d}{GAUGE_MAX_LABEL}"
                        f"{_as_int(f.max):{f.digits}d}  "
                    )
                    filled = f.gauge_fill(value, budget)
                    colour = f.spec.colour if f.spec.colour is not None else NEUTRAL_BACKGROUND
                    parts.append(
                        term.paint(colour, " " * filled)
                        + term.paint(NEUTRAL_BACKGROUND, " " * (budget - filled))
                        + " "
                    )
                else:
                    parts.append(f"{_as_int(value):{f.digits}d}  ")
                    if f.style is FieldStyle.SPARK:
                        spark = sparkline(f.history).ljust(budget)
                        if f.spec.colour is not None:
                            spark = term.paint(f.spec.colour, spark)
                        parts.append(spark + " ")
            term.write("".join(parts))
        term.restore_cursor()
