"""
Trade Ledger: the single open-position slot, account balance, and trade history.

States: NONE -> OPEN -> NONE. At most one position is open at any time.
Intrabar exits are checked stop-loss first: when one bar spans both levels
the order of touches is unknown and the adverse outcome is assumed.
"""

from __future__ import annotations

import logging
from enum import Enum

from replay_core.contracts import (
    Bar,
    Direction,
    ExitReason,
    Position,
    PositionStatus,
    TradeParameters,
)
from replay_core.errors import NoOpenPositionError, PositionAlreadyOpenError

logger = logging.getLogger("perp.ledger")


class LedgerState(str, Enum):
    NONE = "NONE"
    OPEN = "OPEN"


class TradeLedger:
    """Owns the account balance and every Position opened during one run.

    Not shared across runs; concurrent backtests need their own ledger.
    """

    def __init__(self, initial_balance: float) -> None:
        self._initial_balance = initial_balance
        self._balance = initial_balance
        self._open: Position | None = None
        self._history: list[Position] = []

    @property
    def initial_balance(self) -> float:
        return self._initial_balance

    @property
    def balance(self) -> float:
        return self._balance

    @property
    def state(self) -> LedgerState:
        return LedgerState.OPEN if self._open is not None else LedgerState.NONE

    def open_position(self) -> Position | None:
        return self._open

    def history(self) -> tuple[Position, ...]:
        """All positions in insertion order, open one included."""
        return tuple(self._history)

    def closed_positions(self) -> list[Position]:
        return [p for p in self._history if p.status is PositionStatus.CLOSED]

    def open(
        self,
        direction: Direction,
        params: TradeParameters,
        entry_price: float,
        entry_time: int,
        *,
        rationale: str = "",
        confidence: float = 0.0,
    ) -> Position:
        """Record a new OPEN position.

        Raises
        ------
        PositionAlreadyOpenError
            If a position is already open.
        ValueError
            If ``direction`` is HOLD or the size is not positive.
        """
        if self._open is not None:
            raise PositionAlreadyOpenError(
                f"Cannot open {direction.value}: {self._open.direction.value} position "
                f"from {self._open.entry_time} is still open"
            )
        if direction is Direction.HOLD:
            raise ValueError("Cannot open a HOLD position")
        if params.size <= 0:
            raise ValueError(f"Position size must be positive, got {params.size}")

        position = Position(
            direction=direction,
            size=params.size,
            entry_price=entry_price,
            entry_time=entry_time,
            stop_loss_price=params.stop_loss_price,
            take_profit_price=params.take_profit_price,
            rationale=rationale,
            confidence=confidence,
        )
        self._open = position
        self._history.append(position)
        logger.info(
            "Opened %s size=%.6f entry=%.2f SL=%.2f TP=%.2f",
            direction.value, params.size, entry_price,
            params.stop_loss_price, params.take_profit_price,
        )
        return position

    def check_exit(self, bar: Bar) -> Position | None:
        """Close the open position if ``bar`` touched its stop-loss or take-profit.

        Returns the closed Position, or None if neither level was reached.

        Raises
        ------
        NoOpenPositionError
            If there is no open position.
        """
        position = self._open
        if position is None:
            raise NoOpenPositionError("check_exit() called with no open position")

        exit_price: float | None = None
        reason: ExitReason | None = None
        if position.direction is Direction.LONG:
            if bar.low <= position.stop_loss_price:
                exit_price, reason = position.stop_loss_price, ExitReason.STOP_LOSS
            elif bar.high >= position.take_profit_price:
                exit_price, reason = position.take_profit_price, ExitReason.TAKE_PROFIT
        else:
            if bar.high >= position.stop_loss_price:
                exit_price, reason = position.stop_loss_price, ExitReason.STOP_LOSS
            elif bar.low <= position.take_profit_price:
                exit_price, reason = position.take_profit_price, ExitReason.TAKE_PROFIT

        if exit_price is None or reason is None:
            return None
        return self._close(position, exit_price, bar.timestamp, reason)

    def _close(self, position: Position, exit_price: float, exit_time: int, reason: ExitReason) -> Position:
        pnl = position.pnl_at(exit_price)
        self._balance += pnl
        position.status = PositionStatus.CLOSED
        position.exit_price = exit_price
        position.exit_time = exit_time
        position.realized_pnl = pnl
        position.exit_reason = reason
        self._open = None
        logger.info(
            "Closed %s at %.2f (%s) | PnL %.2f | balance %.2f",
            position.direction.value, exit_price, reason.value, pnl, self._balance,
        )
        return position
