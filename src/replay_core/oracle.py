"""
Decision oracle contract: bounded market window -> validated Opinion.

The oracle is an injected dependency. It may be rule-based, a remote model,
or a canned test double. Its output is untrusted: ``validate_opinion``
range-checks every Opinion, parsed or prebuilt, and ``consult`` turns any
failure into a zero-confidence HOLD so the replay never opens a trade on
ambiguous input.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, Sequence

from replay_core.contracts import Bar, Direction, Opinion
from replay_core.errors import OracleError, OracleResponseError
from replay_core.indicators import indicator_snapshot

logger = logging.getLogger("perp.oracle")

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

# Accepted spellings, first match wins.
_DIRECTION_KEYS = ("direction", "signal")
_STOP_KEYS = ("stop_loss_distance", "stop_loss_distance_in_usd")
_METADATA_KEYS = ("metadata", "reason")


@dataclass(frozen=True)
class MarketWindow:
    """What the oracle sees on one replay step. Oldest bar first; no lookahead."""

    bars: Sequence[Bar]
    aux_bars: Sequence[Bar] = ()
    indicators: Mapping[str, float] | None = None

    @property
    def current(self) -> Bar | None:
        if not self.bars:
            return None
        return self.bars[-1]

    @property
    def timestamp(self) -> int | None:
        current = self.current
        return current.timestamp if current else None


class DecisionOracle(Protocol):
    """Given a market window, return an Opinion or raise OracleError."""

    def decide(self, window: MarketWindow) -> Opinion:
        ...


# ---------------------------------------------------------------------------
# Response validation
# ---------------------------------------------------------------------------


def _first(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _number(value: Any, name: str, raw: Any) -> float:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise OracleResponseError(f"'{name}' must be a number, got {value!r}", raw=raw)
    if math.isnan(value) or math.isinf(value):
        raise OracleResponseError(f"'{name}' must be finite, got {value!r}", raw=raw)
    return float(value)


def parse_opinion(payload: str | Mapping[str, Any]) -> Opinion:
    """Validate an oracle payload and build an Opinion.

    ``payload`` may be a mapping or text. Text may wrap the JSON object in
    prose or code fences; the outermost ``{...}`` is extracted.

    Raises
    ------
    OracleResponseError
        On unparseable JSON, a missing or unknown direction, a confidence
        outside [0, 100], or a negative stop distance. The raw payload is
        attached as ``exc.raw``.
    """
    if isinstance(payload, str):
        match = _JSON_OBJECT.search(payload)
        if match is None:
            raise OracleResponseError("No JSON object in oracle response", raw=payload)
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise OracleResponseError(f"Oracle response is not valid JSON: {exc}", raw=payload) from exc
    else:
        data = payload

    if not isinstance(data, Mapping):
        raise OracleResponseError("Oracle response must be a JSON object", raw=payload)

    direction_raw = _first(data, _DIRECTION_KEYS)
    if not isinstance(direction_raw, str):
        raise OracleResponseError(f"Missing or non-string direction: {direction_raw!r}", raw=payload)
    try:
        direction = Direction(direction_raw.strip().upper())
    except ValueError as exc:
        raise OracleResponseError(f"Unknown direction {direction_raw!r}", raw=payload) from exc

    confidence = _number(data.get("confidence"), "confidence", payload)
    stop_raw = _first(data, _STOP_KEYS)
    stop_distance = 0.0 if stop_raw is None else _number(stop_raw, "stop_loss_distance", payload)

    metadata = _first(data, _METADATA_KEYS)
    return validate_opinion(
        Opinion(
            direction=direction,
            confidence=confidence,
            stop_loss_distance=stop_distance,
            metadata="" if metadata is None else str(metadata),
        ),
        raw=payload,
    )


def validate_opinion(opinion: Opinion, raw: Any = None) -> Opinion:
    """Range-check an Opinion, however it was built.

    Raises ``OracleResponseError`` when the direction is not a Direction,
    confidence is not a finite number in [0, 100], or the stop distance is
    negative or not finite.
    """
    if raw is None:
        raw = opinion
    if not isinstance(opinion.direction, Direction):
        raise OracleResponseError(f"Unknown direction {opinion.direction!r}", raw=raw)
    confidence = _number(opinion.confidence, "confidence", raw)
    if not 0 <= confidence <= 100:
        raise OracleResponseError(f"confidence {confidence} outside [0, 100]", raw=raw)
    stop_distance = _number(opinion.stop_loss_distance, "stop_loss_distance", raw)
    if stop_distance < 0:
        raise OracleResponseError(f"stop_loss_distance {stop_distance} is negative", raw=raw)
    return opinion


def consult(oracle: DecisionOracle, window: MarketWindow) -> Opinion:
    """Ask the oracle, degrading every failure to a zero-confidence HOLD."""
    try:
        opinion = oracle.decide(window)
    except OracleError as exc:
        logger.error("Oracle failed: %s | raw payload: %r", exc, exc.raw)
        return Opinion.hold(f"Oracle error: {exc}")
    except Exception as exc:
        logger.exception("Oracle raised unexpectedly: %s", exc)
        return Opinion.hold(f"Oracle error: {exc}")

    if not isinstance(opinion, Opinion):
        logger.error("Oracle returned %s instead of an Opinion | raw payload: %r", type(opinion).__name__, opinion)
        return Opinion.hold("Oracle returned a non-Opinion value")
    try:
        validate_opinion(opinion)
    except OracleResponseError as exc:
        logger.error("Oracle opinion rejected: %s | opinion: %r", exc, opinion)
        return Opinion.hold(f"Oracle error: {exc}")
    return opinion


# ---------------------------------------------------------------------------
# Built-in oracles
# ---------------------------------------------------------------------------


class HoldOracle:
    """Always HOLD. Useful for dry runs of data and config."""

    def decide(self, window: MarketWindow) -> Opinion:
        return Opinion.hold("HoldOracle")


class ScriptedOracle:
    """Replays a fixed sequence of opinions (or raw payloads), then HOLDs.

    Raw payloads (str or mapping) go through ``parse_opinion`` so malformed
    responses can be scripted too. Every call's window is recorded.
    """

    def __init__(self, script: Iterable[Opinion | str | Mapping[str, Any]]) -> None:
        self._script = list(script)
        self._cursor = 0
        self.windows: list[MarketWindow] = []

    def decide(self, window: MarketWindow) -> Opinion:
        self.windows.append(window)
        if self._cursor >= len(self._script):
            return Opinion.hold("script exhausted")
        item = self._script[self._cursor]
        self._cursor += 1
        if isinstance(item, Opinion):
            return item
        return parse_opinion(item)


def _clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class IndicatorOracle:
    """Rule-based strategist over EMA/RSI/MACD/ATR.

    Composite score in [-1, 1]:
        trend     +/-0.35  EMA(50) above / below EMA(200)
        rsi       0.25 * (RSI - 50) / 50
        momentum  0.15 * clamp(RSI slope / 10)
        macd      0.25 * clamp(MACD histogram / ATR)

    LONG at score >= threshold, SHORT at <= -threshold, else HOLD.
    Confidence = |score| * 100; stop distance = ATR(20) * stop_atr_multiple.
    """

    def __init__(self, threshold: float = 0.3, stop_atr_multiple: float = 2.0) -> None:
        self.threshold = threshold
        self.stop_atr_multiple = stop_atr_multiple

    def score(self, ind: Mapping[str, float]) -> float:
        trend = 0.35 if ind["ema_50"] > ind["ema_200"] else -0.35
        rsi = 0.25 * _clamp((ind["rsi_14"] - 50) / 50)
        momentum = 0.15 * _clamp(ind["rsi_slope"] / 10)
        atr = ind["atr_20"]
        macd = 0.25 * _clamp(ind["macd_histogram"] / atr) if atr > 0 else 0.0
        return round(trend + rsi + momentum + macd, 4)

    def decide(self, window: MarketWindow) -> Opinion:
        ind = window.indicators if window.indicators is not None else indicator_snapshot(window.bars)
        if ind is None:
            return Opinion.hold("Insufficient market data for indicators")

        score = self.score(ind)
        if score >= self.threshold:
            direction = Direction.LONG
        elif score <= -self.threshold:
            direction = Direction.SHORT
        else:
            return Opinion(
                direction=Direction.HOLD,
                confidence=abs(score) * 100,
                metadata=f"Composite score {score:+.2f} inside the neutral band",
            )
        return Opinion(
            direction=direction,
            confidence=min(100.0, abs(score) * 100),
            stop_loss_distance=ind["atr_20"] * self.stop_atr_multiple,
            metadata=(
                f"Composite score {score:+.2f}: EMA50 {'>' if ind['ema_50'] > ind['ema_200'] else '<'} EMA200, "
                f"RSI {ind['rsi_14']:.1f} (slope {ind['rsi_slope']:+.1f}), "
                f"MACD hist {ind['macd_histogram']:+.2f}"
            ),
        )
