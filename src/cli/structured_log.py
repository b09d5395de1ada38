"""
Structured JSON event logger for replay runs.

Emits one JSON object per line to stderr so a run can be followed by a log
aggregator or grepped afterwards.

Optional webhook: when configured, trade-level events (trade_opened,
trade_closed, budget_exhausted, error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("perp.events")


class StructuredEventLogger:
    """Emit structured JSON events to stderr and optional webhook."""

    def __init__(
        self,
        symbol: str,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._symbol = symbol
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr
        self._ALERT_EVENTS = {
            "trade_opened",
            "trade_closed",
            "budget_exhausted",
            "error",
        }

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "symbol": self._symbol,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in self._ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            data = json.dumps(record).encode("utf-8")
            req = urllib.request.Request(
                self._webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=5)
        except Exception as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def run_start(self, bars: int, warmup: int, max_calls: int) -> dict:
        return self._emit("run_start", bars=bars, warmup=warmup, max_calls=max_calls)

    def oracle_call(self, call: int, direction: str, confidence: float) -> dict:
        return self._emit(
            "oracle_call",
            call=call,
            direction=direction,
            confidence=round(confidence, 2),
        )

    def trade_opened(
        self,
        direction: str,
        entry_price: float,
        size: float,
        stop_loss: float,
        take_profit: float,
    ) -> dict:
        return self._emit(
            "trade_opened",
            direction=direction,
            entry_price=entry_price,
            size=size,
            stop_loss=stop_loss,
            take_profit=take_profit,
        )

    def trade_closed(self, direction: str, exit_price: float, pnl: float, exit_reason: str) -> dict:
        return self._emit(
            "trade_closed",
            direction=direction,
            exit_price=exit_price,
            pnl=round(pnl, 2),
            exit_reason=exit_reason,
        )

    def budget_exhausted(self, calls: int) -> dict:
        return self._emit("budget_exhausted", calls=calls)

    def run_complete(self, stop_reason: str, trades: int, final_balance: float) -> dict:
        return self._emit(
            "run_complete",
            stop_reason=stop_reason,
            trades=trades,
            final_balance=round(final_balance, 2),
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
