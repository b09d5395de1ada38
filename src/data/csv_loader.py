"""
Load historical OHLCV bars from CSV.

Expected header: ``timestamp,open,high,low,close,volume``. ``timestamp`` is
epoch seconds, epoch milliseconds, or an ISO-8601 string (naive means UTC).
``volume`` is optional. Rows are returned sorted by timestamp.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path

from replay_core.contracts import Bar

logger = logging.getLogger("perp.data")

REQUIRED_COLUMNS = ("timestamp", "open", "high", "low", "close")

# Anything above this is taken to be milliseconds (year 33658 in seconds).
_MS_THRESHOLD = 10_000_000_000


def parse_timestamp(value: str) -> int:
    """Epoch seconds from a CSV cell."""
    text = value.strip()
    try:
        number = float(text)
    except ValueError:
        ts = datetime.fromisoformat(text.replace("Z", "+00:00"))
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return int(ts.timestamp())
    if number > _MS_THRESHOLD:
        number /= 1000
    return int(number)


def load_csv_bars(path: str | Path) -> list[Bar]:
    """Read and validate a bar CSV.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        On missing columns, unparseable values, or duplicate timestamps.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        columns = [c.strip().lower() for c in (reader.fieldnames or [])]
        missing = [c for c in REQUIRED_COLUMNS if c not in columns]
        if missing:
            raise ValueError(f"{csv_path.name}: missing columns {missing}; found {columns}")

        bars: list[Bar] = []
        for line_no, row in enumerate(reader, start=2):
            row = {k.strip().lower(): v for k, v in row.items() if k is not None}
            try:
                bars.append(
                    Bar(
                        timestamp=parse_timestamp(row["timestamp"]),
                        open=float(row["open"]),
                        high=float(row["high"]),
                        low=float(row["low"]),
                        close=float(row["close"]),
                        volume=float(row.get("volume") or 0.0),
                    )
                )
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{csv_path.name}:{line_no}: {exc}") from exc

    bars.sort(key=lambda b: b.timestamp)
    for prev, cur in zip(bars, bars[1:]):
        if prev.timestamp == cur.timestamp:
            raise ValueError(f"{csv_path.name}: duplicate timestamp {cur.timestamp}")
    logger.info("Loaded %d bars from %s", len(bars), csv_path)
    return bars
