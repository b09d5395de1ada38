"""
Replay driver: step through bars, check exits, consult the oracle, open trades.

No lookahead: the window on step i ends with bar i (the current bar).
Entries fill at the current bar's close; exits are checked from the next bar on.
Oracle calls are budgeted (max_api_calls) and spaced in wall-clock time
(min_seconds_between_calls) to behave like the constrained live system.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Sequence

from config.sim_config import SimConfig
from data.bar_series import BarSeries
from replay_core.contracts import Bar, Opinion, Position, TradeParameters
from replay_core.errors import InsufficientDataError, ZeroVolatilityError
from replay_core.exits import derive_exit_levels, resolve_stop_basis
from replay_core.filters import EntryFilter, build_entry_filter
from replay_core.indicators import indicator_snapshot
from replay_core.ledger import LedgerState, TradeLedger
from replay_core.oracle import DecisionOracle, MarketWindow, consult
from replay_core.sizing import PositionSizer, build_sizer
from replay_core.summary import RunSummary, summarize
from replay_core.volatility import effective_volatility

logger = logging.getLogger("perp.replay")

JournalCallback = Callable[[str, dict], None]


class StopReason(str, Enum):
    DATA_EXHAUSTED = "DATA_EXHAUSTED"
    BUDGET_EXHAUSTED = "BUDGET_EXHAUSTED"


@dataclass
class ReplayResult:
    """Result of a replay run."""

    summary: RunSummary
    history: tuple[Position, ...]
    stop_reason: StopReason
    oracle_calls: int
    steps: int
    call_times: list[float] = field(default_factory=list)
    start_time: int | None = None
    end_time: int | None = None

    @property
    def final_balance(self) -> float:
        return self.summary.final_balance

    @property
    def initial_balance(self) -> float:
        return self.summary.initial_balance


def _market_window(
    window: Sequence[Bar],
    aux_series: BarSeries | None,
    aux_lookback_seconds: int,
) -> MarketWindow:
    current = window[-1]
    aux: Sequence[Bar] = ()
    if aux_series is not None:
        aux = aux_series.between(current.timestamp - aux_lookback_seconds, current.timestamp)
    return MarketWindow(bars=window, aux_bars=aux, indicators=indicator_snapshot(window))


def plan_trade(
    opinion: Opinion,
    window: Sequence[Bar],
    equity: float,
    config: SimConfig,
    sizer: PositionSizer,
) -> tuple[TradeParameters | None, str]:
    """Turn a qualifying opinion into sized TradeParameters, or (None, reason)."""
    current = window[-1]
    entry_price = current.close
    exits = config.exits

    volatility = effective_volatility(window, exits.atr_period)
    basis, multiplier = resolve_stop_basis(
        opinion, volatility, exits.stop_source, exits.stop_loss_multiplier,
    )
    try:
        levels = derive_exit_levels(
            opinion.direction,
            entry_price,
            basis,
            multiplier,
            exits.take_profit_multiplier,
            exits.tick_size,
        )
    except ZeroVolatilityError as exc:
        logger.warning("No trade at %s: %s", current.timestamp, exc)
        return None, "zero_volatility"

    size = sizer.size(equity, entry_price, levels.stop_loss)
    if size is None or size <= 0:
        return None, "sizing_rejected"

    params = TradeParameters(
        size=size,
        stop_loss_price=levels.stop_loss,
        take_profit_price=levels.take_profit,
    )
    if not params.is_consistent(opinion.direction, entry_price):
        logger.warning(
            "No trade at %s: inconsistent %s levels entry=%.2f SL=%.2f TP=%.2f",
            current.timestamp, opinion.direction.value, entry_price,
            params.stop_loss_price, params.take_profit_price,
        )
        return None, "inconsistent_levels"
    return params, ""


def run_replay(
    series: BarSeries,
    oracle: DecisionOracle,
    config: SimConfig,
    *,
    aux_series: BarSeries | None = None,
    entry_filter: EntryFilter | None = None,
    interval_seconds: int | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    journal_callback: JournalCallback | None = None,
) -> ReplayResult:
    """Replay ``series`` through the oracle, sizer and ledger.

    Parameters
    ----------
    series:
        Primary bar history, oldest first.
    oracle:
        Decision oracle; any failure degrades to HOLD for that step.
    config:
        Run configuration (balance, window, warm-up, call budget and
        spacing, confidence threshold, sizing, exits, entry filter).
    aux_series:
        Optional secondary-interval bars handed to the oracle as context
        (the last ``replay.aux_lookback_seconds`` up to the current bar).
    entry_filter:
        Pre-filter deciding whether a step is worth an oracle call.
        Defaults to the one named by ``config.entry_filter``.
    interval_seconds:
        Expected bar spacing; when given, gaps in ``series`` are logged.
    clock, sleep:
        Wall-clock source and suspension used for call spacing. Tests
        inject a virtual clock.
    journal_callback:
        Optional callback for event journaling.

    Raises
    ------
    InsufficientDataError
        If the series has no bars beyond the warm-up period. A series of
        exactly ``warmup_period`` bars has no eligible step and is rejected
        too.
    """
    replay = config.replay
    total = series.total_count()
    if total <= replay.warmup_period:
        raise InsufficientDataError(
            f"Not enough data for the warm-up period: {total} bars, "
            f"warm-up needs more than {replay.warmup_period}"
        )

    if interval_seconds:
        gaps = series.gaps(interval_seconds)
        if gaps:
            logger.warning("Bar series has %d gap(s); first at %s -> %s", len(gaps), *gaps[0])

    if entry_filter is None:
        entry_filter = build_entry_filter(config.entry_filter)
    sizer = build_sizer(config.sizing)
    ledger = TradeLedger(config.account.initial_balance)
    threshold = config.decision.minimum_confidence_threshold

    def emit(event_type: str, payload: dict) -> None:
        if journal_callback:
            journal_callback(event_type, payload)

    call_count = 0
    call_times: list[float] = []
    steps = 0
    stop_reason = StopReason.DATA_EXHAUSTED

    logger.info(
        "Replay start: %d bars, warm-up %d, window %d, budget %d calls, spacing %.1fs",
        total, replay.warmup_period, replay.data_window_size,
        replay.max_api_calls, replay.min_seconds_between_calls,
    )

    for i in range(replay.warmup_period, total):
        # Window ends with bar i, the current bar.
        window = series.slice(i + 1, replay.data_window_size)
        current = window[-1]
        steps += 1

        # --- Exit check on the open position ---
        if ledger.state is LedgerState.OPEN:
            closed = ledger.check_exit(current)
            if closed is not None:
                emit("exit", {"position": closed, "bar_index": i, "balance": ledger.balance})
            continue

        # --- Pre-filter: skip steps not worth an oracle call ---
        if entry_filter is not None and not entry_filter(window):
            continue

        if call_count >= replay.max_api_calls:
            logger.info("Reached the oracle call limit of %d. Ending simulation.", replay.max_api_calls)
            stop_reason = StopReason.BUDGET_EXHAUSTED
            emit("budget_exhausted", {"bar_index": i, "calls": call_count})
            break

        call_start = clock()
        call_times.append(call_start)
        opinion = consult(oracle, _market_window(window, aux_series, replay.aux_lookback_seconds))
        call_count += 1
        logger.info(
            "[Call #%d/%d] %s confidence=%.1f | %s",
            call_count, replay.max_api_calls, opinion.direction.value,
            opinion.confidence, opinion.metadata,
        )
        emit("oracle_call", {"call": call_count, "bar_index": i, "opinion": opinion})

        if not opinion.is_actionable:
            emit("skip", {"bar_index": i, "reason": "hold"})
        elif opinion.confidence < threshold:
            logger.info("Confidence %.1f below threshold %.1f; no trade.", opinion.confidence, threshold)
            emit("skip", {"bar_index": i, "reason": "low_confidence"})
        else:
            params, reason = plan_trade(opinion, window, ledger.balance, config, sizer)
            if params is None:
                emit("skip", {"bar_index": i, "reason": reason})
            else:
                position = ledger.open(
                    opinion.direction,
                    params,
                    current.close,
                    current.timestamp,
                    rationale=opinion.metadata,
                    confidence=opinion.confidence,
                )
                emit("entry", {"position": position, "bar_index": i})

        # --- Rate limit: oracle latency counts against the spacing ---
        elapsed = clock() - call_start
        delay = replay.min_seconds_between_calls - elapsed
        if delay > 0:
            logger.info("[RATE_LIMIT] Waiting %.1fs before the next step.", delay)
            sleep(delay)
        elif replay.min_seconds_between_calls > 0:
            logger.warning(
                "Oracle step took %.1fs, exceeding the %.1fs call spacing.",
                elapsed, replay.min_seconds_between_calls,
            )

    history = ledger.history()
    summary = summarize(history, ledger.initial_balance, ledger.balance)
    logger.info(
        "Replay finished (%s): %d steps, %d oracle calls, %d trades, balance %.2f",
        stop_reason.value, steps, call_count, summary.total_trades, ledger.balance,
    )
    return ReplayResult(
        summary=summary,
        history=history,
        stop_reason=stop_reason,
        oracle_calls=call_count,
        steps=steps,
        call_times=call_times,
        start_time=series[replay.warmup_period].timestamp,
        end_time=series[total - 1].timestamp,
    )
