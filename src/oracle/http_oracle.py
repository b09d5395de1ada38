"""
HTTP decision oracle: POST the market window as JSON, parse the reply.

Request body:
    {"current_utc_timestamp": "...", "ohlc": [...], "ohlc_aux": [...], "indicators": {...}}
The reply may be a bare JSON object or text wrapping one; both go through
``parse_opinion``.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Any, Sequence

from replay_core.contracts import Bar, Opinion
from replay_core.errors import OracleTransportError
from replay_core.oracle import MarketWindow, parse_opinion

logger = logging.getLogger("perp.oracle.http")


def _bar_dict(bar: Bar) -> dict[str, Any]:
    return {
        "date": bar.time.isoformat(),
        "open": bar.open,
        "high": bar.high,
        "low": bar.low,
        "close": bar.close,
        "volume": bar.volume,
    }


def _bars(bars: Sequence[Bar]) -> list[dict[str, Any]]:
    return [_bar_dict(b) for b in bars]


def build_payload(window: MarketWindow) -> dict[str, Any]:
    """Market data the remote decision service receives for one step."""
    current = window.current
    ts = current.time if current else datetime.now(timezone.utc)
    return {
        "current_utc_timestamp": ts.isoformat(),
        "ohlc": _bars(window.bars),
        "ohlc_aux": _bars(window.aux_bars),
        "indicators": dict(window.indicators) if window.indicators else None,
    }


class HttpOracle:
    """Remote decision service over HTTP JSON."""

    def __init__(self, url: str, *, api_key: str = "", timeout: float = 30.0) -> None:
        if not url:
            raise ValueError("HttpOracle needs a URL")
        self.url = url
        self._api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def decide(self, window: MarketWindow) -> Opinion:
        body = json.dumps(build_payload(window)).encode("utf-8")
        req = urllib.request.Request(self.url, data=body, headers=self._headers(), method="POST")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                text = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise OracleTransportError(f"Oracle HTTP {exc.code}: {exc.reason}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise OracleTransportError(f"Oracle request failed: {exc}") from exc

        logger.debug("Oracle reply (%d bytes) for %s", len(text), window.timestamp)
        return parse_opinion(text)
