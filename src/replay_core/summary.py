"""
Summary Reporter: closed-trade history -> win rate, P&L, trade log.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from replay_core.contracts import Position, PositionStatus


@dataclass(frozen=True)
class TradeLogEntry:
    direction: str
    entry_price: float
    exit_price: float
    entry_time: int
    exit_time: int
    pnl: float
    exit_reason: str
    rationale: str


@dataclass(frozen=True)
class RunSummary:
    initial_balance: float
    final_balance: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    open_positions: int = 0
    trade_log: list[TradeLogEntry] = field(default_factory=list)

    @property
    def total_pnl(self) -> float:
        return self.final_balance - self.initial_balance

    @property
    def total_return_pct(self) -> float:
        if self.initial_balance <= 0:
            return 0.0
        return self.total_pnl / self.initial_balance * 100


def summarize(
    history: Sequence[Position],
    initial_balance: float,
    final_balance: float,
) -> RunSummary:
    """Aggregate a ledger history. Open positions are counted but not scored."""
    closed = [p for p in history if p.status is PositionStatus.CLOSED]
    winning = sum(1 for p in closed if (p.realized_pnl or 0.0) > 0)
    total = len(closed)
    win_rate = winning / total * 100 if total else 0.0

    log = [
        TradeLogEntry(
            direction=p.direction.value,
            entry_price=p.entry_price,
            exit_price=p.exit_price if p.exit_price is not None else p.entry_price,
            entry_time=p.entry_time,
            exit_time=p.exit_time if p.exit_time is not None else p.entry_time,
            pnl=p.realized_pnl or 0.0,
            exit_reason=p.exit_reason.value if p.exit_reason else "",
            rationale=p.rationale,
        )
        for p in closed
    ]

    return RunSummary(
        initial_balance=initial_balance,
        final_balance=final_balance,
        total_trades=total,
        winning_trades=winning,
        losing_trades=total - winning,
        win_rate=win_rate,
        open_positions=len(history) - total,
        trade_log=log,
    )
