"""
Data pipeline: import OHLCV, persist bars, expose a BarSeries for replay.

Depends on replay_core.contracts for Bar; no dependency from replay_core back to data.
"""

from data.bar_series import BarSeries, parse_interval_seconds
from data.bar_store import BarStore
from data.csv_loader import load_csv_bars

__all__ = [
    "BarSeries",
    "BarStore",
    "load_csv_bars",
    "parse_interval_seconds",
]
