"""
Trend and momentum indicator series used by the rule-based oracle.

EMA(n):  seeded with the SMA of the first n values, then
         ema = (value - prev) * 2 / (n + 1) + prev
RSI(n):  Wilder smoothing of average gain / average loss.
MACD:    EMA(fast) - EMA(slow); histogram = MACD - EMA(signal) of MACD.

Every series is aligned to the *end* of its input: the last element
corresponds to the last input value. Pure functions; no I/O.
"""

from __future__ import annotations

import logging
from typing import Sequence

from replay_core.contracts import Bar
from replay_core.volatility import compute_atr

logger = logging.getLogger("perp.indicators")

MIN_SNAPSHOT_BARS = 200


def sma(values: Sequence[float], period: int) -> float | None:
    """Simple average of the last ``period`` values, None if too few."""
    if period < 1 or len(values) < period:
        return None
    return sum(values[-period:]) / period


def ema_series(values: Sequence[float], period: int) -> list[float]:
    if period < 1 or len(values) < period:
        return []
    k = 2 / (period + 1)
    current = sum(values[:period]) / period
    out = [current]
    for value in values[period:]:
        current = (value - current) * k + current
        out.append(current)
    return out


def rsi_series(values: Sequence[float], period: int = 14) -> list[float]:
    if period < 1 or len(values) <= period:
        return []
    gains: list[float] = []
    losses: list[float] = []
    for prev, cur in zip(values, values[1:]):
        change = cur - prev
        gains.append(max(change, 0.0))
        losses.append(max(-change, 0.0))

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    out = [_rsi(avg_gain, avg_loss)]
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        out.append(_rsi(avg_gain, avg_loss))
    return out


def _rsi(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def macd_histogram_series(
    values: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> list[float]:
    fast_ema = ema_series(values, fast)
    slow_ema = ema_series(values, slow)
    if not slow_ema:
        return []
    # Align the fast EMA to the slow EMA's start.
    offset = len(fast_ema) - len(slow_ema)
    macd_line = [f - s for f, s in zip(fast_ema[offset:], slow_ema)]
    signal_line = ema_series(macd_line, signal)
    if not signal_line:
        return []
    offset = len(macd_line) - len(signal_line)
    return [m - s for m, s in zip(macd_line[offset:], signal_line)]


def indicator_snapshot(bars: Sequence[Bar]) -> dict[str, float] | None:
    """Latest EMA(50), EMA(200), RSI(14), RSI slope, MACD histogram, ATR(20).

    Returns None when fewer than 200 bars are available (EMA(200) needs
    them all).
    """
    if len(bars) < MIN_SNAPSHOT_BARS:
        logger.debug(
            "Insufficient data for indicators: need %d bars, have %d",
            MIN_SNAPSHOT_BARS, len(bars),
        )
        return None

    closes = [b.close for b in bars]
    rsi = rsi_series(closes, 14)
    macd_hist = macd_histogram_series(closes)
    atr = compute_atr(bars, 20)
    snapshot = {
        "ema_50": ema_series(closes, 50)[-1],
        "ema_200": ema_series(closes, 200)[-1],
        "rsi_14": rsi[-1],
        "rsi_slope": rsi[-1] - rsi[-4] if len(rsi) >= 4 else 0.0,
        "macd_histogram": macd_hist[-1] if macd_hist else 0.0,
        "atr_20": atr if atr is not None else 0.0,
    }
    return snapshot
