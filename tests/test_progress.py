"""Tests for the progress bar state machine."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any

import pytest

from progressview.config import DashboardConfig
from progressview.layout import ScreenLayout
from progressview.progress import (
    PENDING_TRAILER,
    AnimationState,
    BarState,
    ProgressBar,
    Ticker,
    fragment_width,
)
from progressview.terminal import ScreenDimensions


def _bar(**progress: Any) -> ProgressBar:
    settings = {"header": "Records", "symbol": "=", "type": "NUMBER", "max": 100}
    settings.update(progress)
    config = DashboardConfig.from_mapping(
        {"progress": settings, "stats": [[{"name": "n:", "digits": 3}]]}
    )
    return ProgressBar(config, on_tick=lambda: None)


def _layout(columns: int = 80) -> ScreenLayout:
    layout = ScreenLayout(stats_height=1)
    layout.initialize(ScreenDimensions(columns, 24))
    return layout


# ── Determinate rendering ──────────────────────────────────────────────────


class TestDeterminate:
    def test_number_trailer_and_fill(self, term: Any) -> None:
        bar = _bar()
        bar.update(50)
        assert bar.trailer() == " 50/100"
        layout = _layout()
        width = bar.bar_width(layout, bar.trailer())
        assert width == 80 - len("Records") - len(" 50/100") - 4
        bar.render(term, layout)
        filled = [text for style, text in term.painted if style == bar.colour]
        assert filled == ["=" * round(50 / 100 * width)]
        assert term.row(layout.progress_row) == (
            " Records " + "=" * width + " " + " 50/100"
        )

    def test_digit_width_follows_max(self) -> None:
        bar = _bar(max=1234567890)
        bar.update(42)
        assert bar.trailer() == "        42/1234567890"

    @pytest.mark.parametrize("value", [101, 500, 10**9])
    def test_values_above_max_fill_the_whole_bar(self, value: int) -> None:
        bar = _bar()
        bar.update(value)
        assert bar.value == 100
        assert bar.filled_width(62) == 62

    def test_negative_values_clamp_to_zero(self) -> None:
        bar = _bar()
        bar.update(-5)
        assert bar.value == 0
        assert bar.filled_width(62) == 0

    def test_none_keeps_value_and_zero_sets_it(self) -> None:
        bar = _bar()
        bar.update(30)
        bar.update(None)
        assert bar.value == 30
        bar.update(0)
        assert bar.value == 0

    def test_percentage_mode(self) -> None:
        bar = _bar(type="PERCENTAGE", max=5000)
        bar.update(42.7)
        assert bar.trailer() == " 42/100%"
        assert bar.filled_width(100) == round(42.7 / 100 * 100)
        bar.update(250)
        assert bar.value == 100

    def test_zero_max_renders_empty(self) -> None:
        bar = _bar()
        bar.set_max(0)
        bar.update(10)
        assert bar.filled_width(50) == 0

    def test_set_max_reclamps_value(self) -> None:
        bar = _bar()
        bar.update(80)
        bar.set_max(40)
        assert bar.value == 40
        assert bar.digits == 2

    def test_initial_value_from_config(self) -> None:
        assert _bar(value=12).value == 12

    def test_narrow_screen_never_goes_negative(self) -> None:
        bar = _bar(header="A very long header indeed")
        assert bar.bar_width(_layout(columns=20), bar.trailer()) == 0

    def test_separator_caption_is_centred(self, term: Any) -> None:
        bar = _bar()
        layout = _layout(columns=31)
        bar.render_separator(term, layout)
        line = term.row(layout.separator_row)
        assert line == "─" * 10 + " Progress " + "─" * 11


# ── Indeterminate animation ────────────────────────────────────────────────


class TestAnimationState:
    def test_bounces_between_both_ends(self) -> None:
        anim = AnimationState()
        width = 20
        limit = width - fragment_width(width)
        positions = []
        for _ in range(2 * limit + 2):
            anim.advance(width)
            positions.append(anim.position)
        assert max(positions) == limit
        assert min(positions) == 0
        assert positions[limit - 1] == limit
        assert positions[limit] == limit - 1
        assert all(0 <= p <= limit for p in positions)

    def test_stays_in_bounds_after_shrink(self) -> None:
        anim = AnimationState(position=50, direction=1)
        anim.advance(30)
        assert 0 <= anim.position <= 30 - fragment_width(30)


class TestPending:
    def test_pending_future_switches_to_indeterminate(self, term: Any) -> None:
        bar = _bar()
        future: Future[float] = Future()
        bar.begin_pending(future)
        try:
            assert bar.state is BarState.INDETERMINATE
            assert bar.trailer() == PENDING_TRAILER
            assert bar.animating
            layout = _layout()
            assert bar.tick(layout)
            bar.render(term, layout)
            assert term.row(layout.progress_row).endswith(" calculating...")
        finally:
            bar.stop()

    def test_resolution_resets_value_and_sets_max(self) -> None:
        bar = _bar()
        bar.update(70)
        future: Future[float] = Future()
        bar.begin_pending(future)
        future.set_result(2500)
        assert bar.settle(future)
        assert bar.state is BarState.DETERMINATE
        assert bar.value == 0
        assert bar.max == 2500
        assert bar.trailer() == "   0/2500"
        assert not bar.animating
        assert not bar.tick(_layout())

    def test_rejection_falls_back_to_zero(self, caplog: pytest.LogCaptureFixture) -> None:
        bar = _bar()
        future: Future[float] = Future()
        bar.begin_pending(future)
        future.set_exception(RuntimeError("count failed"))
        assert bar.settle(future)
        assert bar.state is BarState.DETERMINATE
        assert bar.value == 0
        assert bar.max == 100
        assert not bar.animating
        assert "count failed" in caplog.text

    def test_cancelled_future_stops_animation(self) -> None:
        bar = _bar()
        future: Future[float] = Future()
        bar.begin_pending(future)
        future.cancel()
        assert bar.settle(future)
        assert bar.state is BarState.DETERMINATE
        assert not bar.animating

    def test_superseded_future_is_ignored(self) -> None:
        bar = _bar()
        first: Future[float] = Future()
        second: Future[float] = Future()
        bar.begin_pending(first)
        bar.begin_pending(second)
        try:
            first.set_result(10)
            assert not bar.settle(first)
            assert bar.state is BarState.INDETERMINATE
            second.set_result(20)
            assert bar.settle(second)
            assert bar.max == 20
        finally:
            bar.stop()

    def test_set_max_cancels_pending(self) -> None:
        bar = _bar()
        future: Future[float] = Future()
        bar.begin_pending(future)
        bar.set_max(300)
        assert bar.state is BarState.DETERMINATE
        assert not bar.animating
        future.set_result(5)
        assert not bar.settle(future)
        assert bar.max == 300


# ── Ticker ─────────────────────────────────────────────────────────────────


class TestTicker:
    def test_ticks_until_cancelled_once(self) -> None:
        fired = threading.Event()
        ticker = Ticker(0.001, fired.set)
        ticker.start()
        assert fired.wait(2)
        assert ticker.cancel() is True
        assert ticker.cancel() is False
        ticker.join(2)
        assert not ticker.active
        assert ticker.ticks >= 1

    def test_failing_callback_stops_ticker(self) -> None:
        def boom() -> None:
            raise RuntimeError("tick")

        ticker = Ticker(0.001, boom)
        ticker.start()
        ticker.join(2)
        assert not ticker.active
        assert ticker.ticks == 1
