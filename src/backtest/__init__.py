"""
Backtest engine: replay bars, consult the oracle, size trades, track the ledger.
"""

from backtest.runner import ReplayResult, StopReason, plan_trade, run_replay

__all__ = ["ReplayResult", "StopReason", "plan_trade", "run_replay"]
