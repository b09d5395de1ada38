"""
Entry pre-filters: cheap local tests that decide whether a replay step is
worth spending an oracle call on.

MA_CROSSOVER: SMA(fast) crossed SMA(slow) between the previous bar and the
              current bar, in either direction.
BREAKOUT:     the current bar's high exceeds the highest high (or its low
              undercuts the lowest low) of the ``lookback`` bars before it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Sequence

from replay_core.contracts import Bar
from replay_core.indicators import sma

if TYPE_CHECKING:
    from config.sim_config import EntryFilterConfig

logger = logging.getLogger("perp.filters")

EntryFilter = Callable[[Sequence[Bar]], bool]

FILTER_NONE = "NONE"
FILTER_MA_CROSSOVER = "MA_CROSSOVER"
FILTER_BREAKOUT = "BREAKOUT"


def ma_crossover(bars: Sequence[Bar], fast: int = 20, slow: int = 50) -> bool:
    if len(bars) < slow + 1:
        return False
    closes = [b.close for b in bars]
    prev_fast, prev_slow = sma(closes[:-1], fast), sma(closes[:-1], slow)
    cur_fast, cur_slow = sma(closes, fast), sma(closes, slow)
    if None in (prev_fast, prev_slow, cur_fast, cur_slow):
        return False
    prev_diff = prev_fast - prev_slow
    cur_diff = cur_fast - cur_slow
    crossed = (prev_diff <= 0 < cur_diff) or (prev_diff >= 0 > cur_diff)
    if crossed:
        logger.info("Filter: SMA(%d)/SMA(%d) crossover at %s", fast, slow, bars[-1].timestamp)
    return crossed


def breakout(bars: Sequence[Bar], lookback: int = 20) -> bool:
    if len(bars) < lookback + 1:
        return False
    current = bars[-1]
    prior = bars[-lookback - 1:-1]
    highest_high = max(b.high for b in prior)
    lowest_low = min(b.low for b in prior)
    if current.high > highest_high:
        logger.info("Filter: bullish breakout above %s", highest_high)
        return True
    if current.low < lowest_low:
        logger.info("Filter: bearish breakout below %s", lowest_low)
        return True
    return False


def build_entry_filter(config: EntryFilterConfig) -> EntryFilter | None:
    """Return the configured filter, or None when filtering is disabled."""
    if config.kind == FILTER_NONE:
        return None
    if config.kind == FILTER_MA_CROSSOVER:
        return lambda bars: ma_crossover(bars, config.fast_period, config.slow_period)
    if config.kind == FILTER_BREAKOUT:
        return lambda bars: breakout(bars, config.lookback)
    raise ValueError(f"Unknown entry filter: {config.kind!r}")
