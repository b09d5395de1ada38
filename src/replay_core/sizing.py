"""
Position sizing: account equity + price (+ stop) -> order size.

Two interchangeable policies, chosen by configuration (sizing.policy):

    LEVERAGE          size = equity * leverage * (1 - margin_buffer) / price
    FIXED_FRACTIONAL  size = equity * risk_fraction / |entry - stop|
                      rejected when size * entry / leverage > equity

Every sizer fails closed: it returns None instead of a zero or negative size.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from config.sim_config import SizingConfig

logger = logging.getLogger("perp.sizing")

POLICY_LEVERAGE = "LEVERAGE"
POLICY_FIXED_FRACTIONAL = "FIXED_FRACTIONAL"


def leverage_size(
    equity: float,
    price: float,
    leverage: float,
    margin_buffer: float,
) -> float | None:
    """Leverage-based notional sizing with a safety buffer."""
    if equity <= 0 or price <= 0:
        logger.warning("Sizing rejected: equity=%s price=%s", equity, price)
        return None
    notional = equity * leverage * (1 - margin_buffer)
    size = notional / price
    if size <= 0:
        logger.warning("Sizing rejected: computed size %s is not positive", size)
        return None
    return size


def fixed_fractional_size(
    equity: float,
    entry_price: float,
    stop_loss_price: float,
    risk_fraction: float,
    leverage: float,
) -> float | None:
    """Risk a fixed fraction of equity between entry and stop.

    Also checks that the margin the position needs at ``leverage`` does not
    exceed equity.
    """
    if equity <= 0 or entry_price <= 0:
        logger.warning("Sizing rejected: equity=%s price=%s", equity, entry_price)
        return None
    risk_per_unit = abs(entry_price - stop_loss_price)
    if risk_per_unit <= 0:
        logger.warning("Sizing rejected: stop equals entry (%s)", entry_price)
        return None
    size = (equity * risk_fraction) / risk_per_unit
    if size <= 0:
        logger.warning("Sizing rejected: computed size %s is not positive", size)
        return None
    required_margin = size * entry_price / leverage
    if required_margin > equity:
        logger.warning(
            "Sizing rejected: required margin %.2f exceeds equity %.2f",
            required_margin, equity,
        )
        return None
    return size


class PositionSizer(Protocol):
    """Strategy interface for sizing policies."""

    def size(self, equity: float, entry_price: float, stop_loss_price: float) -> float | None:
        ...


class LeverageSizer:
    """Notional sizing; ignores the stop level."""

    policy = POLICY_LEVERAGE

    def __init__(self, leverage: float, margin_buffer: float) -> None:
        self.leverage = leverage
        self.margin_buffer = margin_buffer

    def size(self, equity: float, entry_price: float, stop_loss_price: float) -> float | None:
        return leverage_size(equity, entry_price, self.leverage, self.margin_buffer)


class FixedFractionalSizer:
    """Risk-budget sizing from the distance between entry and stop."""

    policy = POLICY_FIXED_FRACTIONAL

    def __init__(self, risk_fraction: float, leverage: float) -> None:
        self.risk_fraction = risk_fraction
        self.leverage = leverage

    def size(self, equity: float, entry_price: float, stop_loss_price: float) -> float | None:
        return fixed_fractional_size(
            equity, entry_price, stop_loss_price, self.risk_fraction, self.leverage,
        )


def build_sizer(config: SizingConfig) -> PositionSizer:
    """Instantiate the sizer named by ``config.policy``."""
    if config.policy == POLICY_LEVERAGE:
        return LeverageSizer(config.leverage, config.margin_buffer)
    if config.policy == POLICY_FIXED_FRACTIONAL:
        return FixedFractionalSizer(config.risk_fraction, config.leverage)
    raise ValueError(f"Unknown sizing policy: {config.policy!r}")
