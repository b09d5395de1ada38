"""Tests for EMA, RSI, MACD and the indicator snapshot."""

import pytest

from conftest import flat_bars, make_bar
from replay_core.indicators import (
    ema_series,
    indicator_snapshot,
    macd_histogram_series,
    rsi_series,
    sma,
)


def test_sma() -> None:
    assert sma([1, 2, 3, 4], 2) == 3.5
    assert sma([1, 2], 3) is None


class TestEMA:
    def test_seeded_with_sma(self) -> None:
        assert ema_series([1, 2, 3, 4, 5], 3) == pytest.approx([2.0, 3.0, 4.0])

    def test_constant_input(self) -> None:
        assert ema_series([7.0] * 10, 4) == pytest.approx([7.0] * 7)

    def test_too_short(self) -> None:
        assert ema_series([1, 2], 3) == []


class TestRSI:
    def test_only_gains_is_100(self) -> None:
        assert rsi_series(list(range(1, 30)), 14)[-1] == 100.0

    def test_only_losses_is_0(self) -> None:
        assert rsi_series(list(range(30, 1, -1)), 14)[-1] == pytest.approx(0.0)

    def test_flat_is_neutral(self) -> None:
        assert rsi_series([5.0] * 20, 14) == [50.0] * 6

    def test_length(self) -> None:
        assert len(rsi_series(list(range(40)), 14)) == 40 - 14

    def test_equal_gains_and_losses(self) -> None:
        values = [100 + (1 if i % 2 else 0) for i in range(15)]
        assert rsi_series(values, 14)[0] == pytest.approx(50.0)


class TestMACD:
    def test_length(self) -> None:
        assert len(macd_histogram_series([float(v) for v in range(100)])) == 100 - 33

    def test_flat_series_zero_histogram(self) -> None:
        assert macd_histogram_series([10.0] * 60) == pytest.approx([0.0] * 27)

    def test_too_short(self) -> None:
        assert macd_histogram_series([1.0] * 30) == []


class TestSnapshot:
    def test_none_below_200_bars(self) -> None:
        assert indicator_snapshot(flat_bars(199)) is None

    def test_uptrend(self) -> None:
        bars = [make_bar(i, 100.0 + i) for i in range(220)]
        snap = indicator_snapshot(bars)
        assert snap is not None
        assert snap["ema_50"] > snap["ema_200"]
        assert snap["rsi_14"] == 100.0
        assert snap["rsi_slope"] == 0.0
        assert snap["atr_20"] == pytest.approx(2.0)

    def test_flat(self) -> None:
        snap = indicator_snapshot(flat_bars(200))
        assert snap is not None
        assert snap["ema_50"] == pytest.approx(snap["ema_200"])
        assert snap["rsi_14"] == 50.0
        assert snap["macd_histogram"] == pytest.approx(0.0)
