"""
Exit level derivation: entry price + direction + volatility -> stop-loss / take-profit.

distance    = volatility * stop_multiplier
LONG:  stop = entry - distance, target = entry + distance * take_profit_multiplier
SHORT: stop = entry + distance, target = entry - distance * take_profit_multiplier

Both levels are rounded to the instrument's tick size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from replay_core.contracts import Direction, Opinion
from replay_core.errors import ZeroVolatilityError

logger = logging.getLogger("perp.exits")

STOP_SOURCE_ATR = "ATR"
STOP_SOURCE_ORACLE = "ORACLE"


@dataclass(frozen=True)
class ExitLevels:
    stop_loss: float
    take_profit: float


def round_to_tick(price: float, tick_size: float = 1.0) -> float:
    """Round ``price`` to the nearest multiple of ``tick_size``."""
    if tick_size <= 0:
        raise ValueError(f"tick_size must be positive, got {tick_size}")
    ticks = round(price / tick_size)
    # Re-round to strip float noise like 96.00000000000001.
    decimals = max(0, len(f"{tick_size:.10f}".rstrip("0").split(".")[1]))
    return round(ticks * tick_size, decimals)


def derive_exit_levels(
    direction: Direction,
    entry_price: float,
    atr: float,
    stop_multiplier: float,
    take_profit_multiplier: float,
    tick_size: float = 1.0,
) -> ExitLevels:
    """Compute stop-loss and take-profit prices for a new position.

    Raises
    ------
    ZeroVolatilityError
        If ``atr`` is zero (or negative); no trade may be opened.
    ValueError
        If ``direction`` is HOLD.
    """
    if atr <= 0:
        raise ZeroVolatilityError(f"Cannot derive exit levels with volatility {atr}")
    if direction is Direction.HOLD:
        raise ValueError("Exit levels are undefined for HOLD")

    distance = atr * stop_multiplier
    sign = direction.sign
    stop_loss = entry_price - sign * distance
    take_profit = entry_price + sign * distance * take_profit_multiplier
    return ExitLevels(
        stop_loss=round_to_tick(stop_loss, tick_size),
        take_profit=round_to_tick(take_profit, tick_size),
    )


def resolve_stop_basis(
    opinion: Opinion,
    local_volatility: float,
    stop_source: str,
    stop_multiplier: float,
) -> tuple[float, float]:
    """Pick the (volatility, stop_multiplier) pair the stop distance comes from.

    ``ATR`` scales the locally computed volatility by ``stop_multiplier``.
    ``ORACLE`` takes the opinion's ``stop_loss_distance`` as the full
    distance (multiplier 1.0) and falls back to local volatility when the
    oracle supplied none.
    """
    if stop_source == STOP_SOURCE_ORACLE:
        if opinion.stop_loss_distance > 0:
            return opinion.stop_loss_distance, 1.0
        logger.debug("Oracle supplied no stop distance; using local volatility %.4f", local_volatility)
    return local_volatility, stop_multiplier
