"""
Human-readable replay output for the terminal.

Every trade carries the oracle's rationale so a run explains itself.
Every CLI command uses these formatters. Journal receives the same data.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Mapping

from replay_core.contracts import Bar, Opinion, TradeParameters

if TYPE_CHECKING:
    from backtest.runner import ReplayResult


def _fmt_ts(ts: int | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _fmt_volume(vol: int | float) -> str:
    if vol >= 1_000_000:
        return f"{vol / 1_000_000:.2f}M"
    if vol >= 1_000:
        return f"{vol / 1_000:.0f}K"
    return str(int(vol))


def format_bar(bar: Bar) -> str:
    bar_type = "UP" if bar.close >= bar.open else "DOWN"
    return (
        f"{bar_type} | O {bar.open:.2f}  H {bar.high:.2f}  L {bar.low:.2f}  "
        f"C {bar.close:.2f}  V {_fmt_volume(bar.volume)}"
    )


def format_replay_summary(result: ReplayResult, symbol: str = "", interval: str = "") -> str:
    """Format replay result summary."""
    s = result.summary
    header = " ".join(p for p in ("=== Replay:", symbol, interval) if p) + " ==="
    lines = [
        header,
        f"Period        : {_fmt_ts(result.start_time)} -> {_fmt_ts(result.end_time)}",
        f"Steps         : {result.steps}  |  Oracle calls: {result.oracle_calls}  |  Stop: {result.stop_reason.value}",
        f"Initial bal.  : ${s.initial_balance:,.2f}",
        f"Final bal.    : ${s.final_balance:,.2f}",
        f"Total P&L     : ${s.total_pnl:+,.2f} ({s.total_return_pct:+.2f}%)",
        f"Trades        : {s.total_trades} (W:{s.winning_trades} / L:{s.losing_trades})  Win rate {s.win_rate:.2f}%",
    ]
    if s.open_positions:
        lines.append(f"Still open    : {s.open_positions} (not scored)")
    if s.trade_log:
        lines.append("")
        for i, t in enumerate(s.trade_log, 1):
            lines.append(f"  Trade #{i}: {t.direction} | entry {t.entry_price:.2f} @ {_fmt_ts(t.entry_time)}")
            lines.append(f"            exit  {t.exit_price:.2f} @ {_fmt_ts(t.exit_time)} ({t.exit_reason}) | PnL ${t.pnl:+.2f}")
            lines.append(f"            Rationale: {t.rationale or '-'}")
    lines.append("===")
    return "\n".join(lines)


def format_scan(
    symbol: str,
    interval: str,
    bar: Bar,
    indicators: Mapping[str, float] | None,
    opinion: Opinion,
    params: TradeParameters | None,
    reason: str = "",
    payload: dict | None = None,
) -> str:
    """Format a one-shot decision on the latest bar, with the order batch it implies."""
    lines = [
        f"=== Scan: {symbol} {interval} @ {_fmt_ts(bar.timestamp)} ===",
        "",
        f"  Bar        : {format_bar(bar)}",
    ]
    if indicators:
        lines.append(
            f"  Indicators : EMA50 {indicators['ema_50']:.2f}  EMA200 {indicators['ema_200']:.2f}  "
            f"RSI {indicators['rsi_14']:.1f} (slope {indicators['rsi_slope']:+.1f})  "
            f"MACD hist {indicators['macd_histogram']:+.2f}  ATR20 {indicators['atr_20']:.2f}"
        )
    else:
        lines.append("  Indicators : n/a (fewer than 200 bars)")

    lines.append(f"  Opinion    : {opinion.direction.value} confidence={opinion.confidence:.1f}")
    if opinion.metadata:
        lines.append(f"  Rationale  : {opinion.metadata}")
    lines.append("")

    if params is None:
        lines.append(f"  No trade: {reason or 'opinion does not qualify'}")
    else:
        lines.append(f"  TRADE     : {opinion.direction.value} {params.size:.6f} @ market (~{bar.close:.2f})")
        lines.append(f"    Stop    : {params.stop_loss_price:.2f}")
        lines.append(f"    Target  : {params.take_profit_price:.2f}")
        if payload is not None:
            lines.append("")
            lines.append("  Batch order payload (not sent):")
            lines.extend("    " + ln for ln in json.dumps(payload, indent=2).splitlines())
    lines.append("===")
    return "\n".join(lines)
