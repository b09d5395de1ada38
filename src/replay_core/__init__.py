"""
replay-core: pure simulation pieces for a single-instrument perpetual futures replay.

No I/O, no network, no side effects beyond logging. Consumes bars and
oracle opinions, produces sized trades, ledger history and summaries.
Fully deterministic and unit-testable.
"""

from replay_core.contracts import (
    Bar,
    Direction,
    ExitReason,
    Opinion,
    Position,
    PositionStatus,
    TradeParameters,
)
from replay_core.ledger import LedgerState, TradeLedger
from replay_core.oracle import DecisionOracle, MarketWindow, consult, parse_opinion, validate_opinion
from replay_core.summary import RunSummary, summarize

__all__ = [
    "Bar",
    "consult",
    "DecisionOracle",
    "Direction",
    "ExitReason",
    "LedgerState",
    "MarketWindow",
    "Opinion",
    "parse_opinion",
    "Position",
    "PositionStatus",
    "RunSummary",
    "summarize",
    "TradeLedger",
    "TradeParameters",
    "validate_opinion",
]
