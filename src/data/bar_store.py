"""
Persist and load OHLCV bars (SQLite). Keyed by (symbol, interval, ts); ts in epoch seconds UTC.
"""

import sqlite3
from pathlib import Path
from typing import Sequence

from replay_core.contracts import Bar


class BarStore:
    """SQLite-backed bar storage. One file per path."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._path))

    def _init_schema(self) -> None:
        with self._conn() as c:
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS bars (
                    symbol TEXT NOT NULL,
                    interval TEXT NOT NULL,
                    ts INTEGER NOT NULL,
                    open REAL NOT NULL,
                    high REAL NOT NULL,
                    low REAL NOT NULL,
                    close REAL NOT NULL,
                    volume REAL NOT NULL,
                    PRIMARY KEY (symbol, interval, ts)
                )
                """
            )

    def write_bars(
        self,
        symbol: str,
        interval: str,
        bars: Sequence[Bar],
    ) -> None:
        """Upsert bars (by symbol, interval, ts)."""
        with self._conn() as c:
            c.executemany(
                """
                INSERT OR REPLACE INTO bars (symbol, interval, ts, open, high, low, close, volume)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (symbol, interval, int(b.timestamp), b.open, b.high, b.low, b.close, b.volume)
                    for b in bars
                ],
            )

    def get_bars(
        self,
        symbol: str,
        interval: str,
        *,
        since: int | None = None,
        until: int | None = None,
        limit: int | None = None,
    ) -> list[Bar]:
        """Return bars in ascending time order; ``since``/``until`` are inclusive epoch seconds."""
        with self._conn() as c:
            q = "SELECT ts, open, high, low, close, volume FROM bars WHERE symbol = ? AND interval = ?"
            params: list = [symbol, interval]
            if since is not None:
                q += " AND ts >= ?"
                params.append(int(since))
            if until is not None:
                q += " AND ts <= ?"
                params.append(int(until))
            q += " ORDER BY ts ASC"
            if limit is not None:
                q += " LIMIT ?"
                params.append(limit)
            rows = c.execute(q, params).fetchall()
        return self._rows_to_bars(rows)

    def count_bars(self, symbol: str, interval: str) -> int:
        """Return the total number of bars stored for a symbol/interval pair."""
        with self._conn() as c:
            row = c.execute(
                "SELECT COUNT(*) FROM bars WHERE symbol = ? AND interval = ?",
                (symbol, interval),
            ).fetchone()
        return row[0] if row else 0

    def get_last_bars(
        self,
        symbol: str,
        interval: str,
        n: int,
        *,
        until: int | None = None,
    ) -> list[Bar]:
        """Return the last n bars (by time) in ascending order."""
        with self._conn() as c:
            q = (
                "SELECT ts, open, high, low, close, volume FROM bars "
                "WHERE symbol = ? AND interval = ?"
            )
            params: list = [symbol, interval]
            if until is not None:
                q += " AND ts <= ?"
                params.append(int(until))
            q += " ORDER BY ts DESC LIMIT ?"
            params.append(n)
            rows = c.execute(q, params).fetchall()
        rows = list(reversed(rows))  # back to ascending
        return self._rows_to_bars(rows)

    def _rows_to_bars(self, rows: list) -> list[Bar]:
        return [
            Bar(timestamp=int(ts), open=o, high=h, low=l, close=c, volume=vol)
            for ts, o, h, l, c, vol in rows
        ]
