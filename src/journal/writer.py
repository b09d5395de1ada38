"""
Structured journal: append-only JSON lines. Every trade event carries the oracle's rationale.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


def _serialize(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "__dict__") and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def oracle_call(self, call: int, direction: str, confidence: float, rationale: str, **extra: Any) -> None:
        self._write(
            "oracle_call",
            {"call": call, "direction": direction, "confidence": confidence, "rationale": rationale, **extra},
        )

    def entry(self, symbol: str, direction: str, entry_price: float, size: float, stop_loss: float, take_profit: float, rationale: str, **extra: Any) -> None:
        self._write(
            "entry",
            {"symbol": symbol, "direction": direction, "entry_price": entry_price, "size": size, "stop_loss": stop_loss, "take_profit": take_profit, "rationale": rationale, **extra},
        )

    def trade(self, symbol: str, direction: str, entry_price: float, exit_price: float, size: float, pnl: float, exit_reason: str, rationale: str, **extra: Any) -> None:
        self._write(
            "trade",
            {"symbol": symbol, "direction": direction, "entry_price": entry_price, "exit_price": exit_price, "size": size, "pnl": pnl, "exit_reason": exit_reason, "rationale": rationale, **extra},
        )

    def skip(self, reason: str, **extra: Any) -> None:
        self._write("skip", {"reason": reason, **extra})

    def budget_exhausted(self, calls: int, **extra: Any) -> None:
        self._write("budget_exhausted", {"calls": calls, **extra})
