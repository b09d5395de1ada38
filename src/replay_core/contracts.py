"""
Data contracts for replay-core: Bar, Opinion, TradeParameters, Position.

replay-core consumes Bars and Opinions and produces TradeParameters and
Positions. No I/O; these are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Direction(str, Enum):
    """Directional opinion from the decision oracle."""

    LONG = "LONG"
    SHORT = "SHORT"
    HOLD = "HOLD"

    @property
    def sign(self) -> int:
        """+1 for LONG, -1 for SHORT, 0 for HOLD."""
        if self is Direction.LONG:
            return 1
        if self is Direction.SHORT:
            return -1
        return 0


class PositionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ExitReason(str, Enum):
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


@dataclass(frozen=True)
class Bar:
    """OHLCV bar; ``timestamp`` is epoch seconds (UTC)."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def bar_range(self) -> float:
        """Full extent of the candle: high - low."""
        return self.high - self.low

    def is_up(self) -> bool:
        return self.close > self.open


@dataclass(frozen=True)
class Opinion:
    """Output of the decision oracle for one replay step. Never persisted."""

    direction: Direction
    confidence: float = 0.0
    stop_loss_distance: float = 0.0
    metadata: str = ""

    @classmethod
    def hold(cls, reason: str = "") -> Opinion:
        """Fail-safe opinion: HOLD with zero confidence."""
        return cls(direction=Direction.HOLD, confidence=0.0, stop_loss_distance=0.0, metadata=reason)

    @property
    def is_actionable(self) -> bool:
        return self.direction is not Direction.HOLD


@dataclass(frozen=True)
class TradeParameters:
    """Sized order with protective exit levels.

    This is exactly the payload an execution venue needs for an entry plus
    its paired stop and target orders.
    """

    size: float
    stop_loss_price: float
    take_profit_price: float

    def is_consistent(self, direction: Direction, entry_price: float) -> bool:
        """LONG: stop < entry < target. SHORT: target < entry < stop."""
        if self.size <= 0:
            return False
        if direction is Direction.LONG:
            return self.stop_loss_price < entry_price < self.take_profit_price
        if direction is Direction.SHORT:
            return self.take_profit_price < entry_price < self.stop_loss_price
        return False


@dataclass
class Position:
    """The single mutable trade record owned by the TradeLedger."""

    direction: Direction
    size: float
    entry_price: float
    entry_time: int
    stop_loss_price: float
    take_profit_price: float
    status: PositionStatus = PositionStatus.OPEN
    exit_price: float | None = None
    exit_time: int | None = None
    realized_pnl: float | None = None
    exit_reason: ExitReason | None = None
    rationale: str = ""
    confidence: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.status is PositionStatus.OPEN

    def pnl_at(self, price: float) -> float:
        """P&L if the position were closed at ``price``."""
        return (price - self.entry_price) * self.size * self.direction.sign
