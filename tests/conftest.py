"""Pytest fixtures: bar sequences, run configs and a virtual clock for deterministic tests."""

import math

import pytest

from config.sim_config import (
    AccountConfig,
    DecisionConfig,
    EntryFilterConfig,
    ExitsConfig,
    ReplayConfig,
    SimConfig,
    SizingConfig,
)
from replay_core.contracts import Bar

HOUR = 3600
T0 = 1_699_999_200  # 2023-11-14 22:00 UTC, on the hour


def make_bar(i: int, close: float, *, spread: float = 1.0, high: float | None = None,
             low: float | None = None, open_: float | None = None, volume: float = 10.0) -> Bar:
    """Hourly bar number ``i``; high/low default to close +/- spread."""
    return Bar(
        timestamp=T0 + i * HOUR,
        open=close if open_ is None else open_,
        high=close + spread if high is None else high,
        low=close - spread if low is None else low,
        close=close,
        volume=volume,
    )


def flat_bars(n: int, price: float = 100.0, spread: float = 1.0) -> list[Bar]:
    return [make_bar(i, price, spread=spread) for i in range(n)]


def wave_bars(n: int, base: float = 30_000.0, amplitude: float = 1_500.0, period: int = 60) -> list[Bar]:
    """Deterministic oscillating series with a slow drift; wide enough ranges to hit exits."""
    bars = []
    prev = base
    for i in range(n):
        close = base + amplitude * math.sin(2 * math.pi * i / period) + 2.0 * i
        high = max(prev, close) + 40.0
        low = min(prev, close) - 40.0
        bars.append(Bar(T0 + i * HOUR, prev, high, low, close, 5.0 + (i % 7)))
        prev = close
    return bars


class VirtualClock:
    """Monotonic clock that only moves when slept on or advanced by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def sim_config() -> SimConfig:
    """Small-window run config: 20-bar warm-up and window, 10 calls, 60s spacing."""
    return SimConfig(
        version="test",
        account=AccountConfig(initial_balance=10_000.0),
        replay=ReplayConfig(
            data_window_size=20,
            warmup_period=20,
            min_seconds_between_calls=60.0,
            max_api_calls=10,
        ),
        decision=DecisionConfig(minimum_confidence_threshold=50.0),
        sizing=SizingConfig(policy="LEVERAGE", leverage=10.0, margin_buffer=0.01),
        exits=ExitsConfig(stop_loss_multiplier=2.0, take_profit_multiplier=3.0, tick_size=1.0, atr_period=14),
        entry_filter=EntryFilterConfig(),
    )
