"""
Average True Range (ATR) computation.

ATR measures volatility by averaging the True Range over a lookback
window. Used to place volatility-adaptive stop-loss and take-profit levels.

True Range = max(
    high - low,
    |high - prev_close|,
    |low  - prev_close|
)

ATR(n) = arithmetic mean of True Range over the last n bars.

Pure functions; no I/O.
"""

from __future__ import annotations

from typing import Sequence

from replay_core.contracts import Bar


def true_range(current: Bar, prev_close: float) -> float:
    """Compute the True Range for a single bar.

    The True Range accounts for gaps between bars by comparing
    the current bar's high/low against the previous close.
    """
    return max(
        current.high - current.low,
        abs(current.high - prev_close),
        abs(current.low - prev_close),
    )


def compute_atr(bars: Sequence[Bar], period: int = 14) -> float | None:
    """Compute ATR over the last ``period`` bars.

    Parameters
    ----------
    bars:
        Ordered bar history (oldest first).
    period:
        Number of bars to average (default: 14).

    Returns
    -------
    float | None
        The ATR value, or ``None`` when fewer than ``period`` bars are
        available. The first considered bar uses the close of the bar
        before it when that bar is in ``bars``; otherwise its own high
        stands in for the previous close.
    """
    if period < 1:
        raise ValueError(f"ATR period must be >= 1, got {period}")
    if len(bars) < period:
        return None

    start = len(bars) - period
    tr_values: list[float] = []
    for i in range(start, len(bars)):
        prev_close = bars[i - 1].close if i > 0 else bars[i].high
        tr_values.append(true_range(bars[i], prev_close))
    return sum(tr_values) / len(tr_values)


def effective_volatility(bars: Sequence[Bar], period: int = 14) -> float:
    """ATR with fallbacks for short windows.

    Falls back to the latest bar's high-low range when the window is
    shorter than ``period``, and to 0.0 when there are no bars at all.
    """
    atr = compute_atr(bars, period)
    if atr is not None:
        return atr
    if not bars:
        return 0.0
    return bars[-1].bar_range()
