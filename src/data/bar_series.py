"""
Bar Series Provider: ordered, duplicate-free bars with random-access windows.

Immutable once built; every window handed out is a read-only tuple.
"""

from __future__ import annotations

import bisect
from typing import Iterable

from replay_core.contracts import Bar
from replay_core.errors import InsufficientDataError


class BarSeries:
    """Bars for one symbol/interval, strictly ascending by timestamp."""

    def __init__(self, bars: Iterable[Bar]) -> None:
        self._bars: tuple[Bar, ...] = tuple(bars)
        for prev, cur in zip(self._bars, self._bars[1:]):
            if cur.timestamp <= prev.timestamp:
                raise ValueError(
                    f"Bars must be strictly ascending with no duplicates: "
                    f"{cur.timestamp} follows {prev.timestamp}"
                )
        self._timestamps = [b.timestamp for b in self._bars]

    def __len__(self) -> int:
        return len(self._bars)

    def __getitem__(self, index: int) -> Bar:
        return self._bars[index]

    def total_count(self) -> int:
        return len(self._bars)

    def slice(self, end_exclusive: int, window_size: int) -> tuple[Bar, ...]:
        """Return up to ``window_size`` bars ending just before ``end_exclusive``.

        Fewer bars are returned near the start of history.

        Raises
        ------
        InsufficientDataError
            If ``end_exclusive`` is outside ``1..total_count()`` or
            ``window_size`` is less than 1.
        """
        if window_size < 1:
            raise InsufficientDataError(f"window_size must be >= 1, got {window_size}")
        if not 1 <= end_exclusive <= len(self._bars):
            raise InsufficientDataError(
                f"Window end {end_exclusive} outside available history (1..{len(self._bars)})"
            )
        start = max(0, end_exclusive - window_size)
        return self._bars[start:end_exclusive]

    def between(self, since: int, until: int) -> tuple[Bar, ...]:
        """Bars with ``since <= timestamp <= until``."""
        lo = bisect.bisect_left(self._timestamps, since)
        hi = bisect.bisect_right(self._timestamps, until)
        return self._bars[lo:hi]

    def gaps(self, interval_seconds: int) -> list[tuple[int, int]]:
        """(previous_ts, next_ts) pairs further apart than one interval."""
        if interval_seconds <= 0:
            return []
        return [
            (prev, cur)
            for prev, cur in zip(self._timestamps, self._timestamps[1:])
            if cur - prev > interval_seconds
        ]


def parse_interval_seconds(interval: str) -> int:
    """Convert an interval like '15m', '1h', '1d' or bare minutes '60' to seconds."""
    text = interval.strip().lower()
    if text.isdigit():
        return int(text) * 60
    units = {"m": 60, "h": 3600, "d": 86400}
    if len(text) > 1 and text[-1] in units and text[:-1].isdigit():
        return int(text[:-1]) * units[text[-1]]
    raise ValueError(f"Unsupported interval: {interval!r} (use e.g. '15m', '1h', '1d')")
