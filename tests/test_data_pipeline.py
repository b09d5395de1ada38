"""Integration tests for the data pipeline: bar store, CSV import and BarSeries."""

from pathlib import Path

import pytest

from conftest import HOUR, T0, flat_bars, make_bar
from data.bar_series import BarSeries, parse_interval_seconds
from data.bar_store import BarStore
from data.csv_loader import load_csv_bars, parse_timestamp
from replay_core.errors import InsufficientDataError


# ---------------------------------------------------------------------------
# BarSeries
# ---------------------------------------------------------------------------


class TestBarSeries:
    def test_slice_returns_window_before_end(self) -> None:
        bars = [make_bar(i, 100.0 + i) for i in range(10)]
        series = BarSeries(bars)
        assert series.total_count() == 10
        assert series.slice(6, 3) == tuple(bars[3:6])

    def test_slice_near_start_returns_fewer(self) -> None:
        bars = flat_bars(10)
        assert BarSeries(bars).slice(2, 5) == tuple(bars[:2])

    def test_slice_full_history(self) -> None:
        bars = flat_bars(10)
        assert BarSeries(bars).slice(10, 10) == tuple(bars)

    @pytest.mark.parametrize("end, size", [(0, 3), (11, 3), (5, 0), (-1, 2)])
    def test_slice_out_of_range(self, end: int, size: int) -> None:
        with pytest.raises(InsufficientDataError):
            BarSeries(flat_bars(10)).slice(end, size)

    def test_slice_is_deterministic(self) -> None:
        series = BarSeries(flat_bars(10))
        assert series.slice(8, 4) == series.slice(8, 4)

    def test_rejects_unordered(self) -> None:
        with pytest.raises(ValueError):
            BarSeries([make_bar(1, 100.0), make_bar(0, 100.0)])

    def test_rejects_duplicates(self) -> None:
        with pytest.raises(ValueError):
            BarSeries([make_bar(0, 100.0), make_bar(0, 101.0)])

    def test_between_is_inclusive(self) -> None:
        bars = flat_bars(10)
        series = BarSeries(bars)
        assert series.between(T0 + 2 * HOUR, T0 + 4 * HOUR) == tuple(bars[2:5])
        assert series.between(T0 + 2 * HOUR + 1, T0 + 2 * HOUR + 2) == ()

    def test_gaps(self) -> None:
        bars = flat_bars(3) + [make_bar(5, 100.0)]
        assert BarSeries(bars).gaps(HOUR) == [(T0 + 2 * HOUR, T0 + 5 * HOUR)]
        assert BarSeries(flat_bars(5)).gaps(HOUR) == []


@pytest.mark.parametrize(
    "interval, seconds",
    [("15m", 900), ("1h", 3600), ("4H", 14_400), ("1d", 86_400), ("60", 3600)],
)
def test_parse_interval_seconds(interval: str, seconds: int) -> None:
    assert parse_interval_seconds(interval) == seconds


def test_parse_interval_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        parse_interval_seconds("1w")


# ---------------------------------------------------------------------------
# BarStore
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path: Path) -> BarStore:
    return BarStore(tmp_path / "nested" / "bars.db")


class TestBarStore:
    def test_write_and_get(self, store: BarStore) -> None:
        bars = [make_bar(i, 100.0 + i) for i in range(3)]
        store.write_bars("PF_XBTUSD", "1h", bars)
        assert store.get_bars("PF_XBTUSD", "1h") == bars
        assert store.count_bars("PF_XBTUSD", "1h") == 3

    def test_returns_ascending_regardless_of_write_order(self, store: BarStore) -> None:
        bars = [make_bar(i, 100.0 + i) for i in range(5)]
        store.write_bars("PF_XBTUSD", "1h", list(reversed(bars)))
        assert store.get_bars("PF_XBTUSD", "1h") == bars

    def test_upsert_has_no_duplicates(self, store: BarStore) -> None:
        store.write_bars("PF_XBTUSD", "1h", [make_bar(0, 100.0)])
        store.write_bars("PF_XBTUSD", "1h", [make_bar(0, 105.0)])
        out = store.get_bars("PF_XBTUSD", "1h")
        assert len(out) == 1
        assert out[0].close == 105.0

    def test_range_filter_inclusive(self, store: BarStore) -> None:
        bars = flat_bars(10)
        store.write_bars("PF_XBTUSD", "1h", bars)
        out = store.get_bars("PF_XBTUSD", "1h", since=T0 + 3 * HOUR, until=T0 + 6 * HOUR)
        assert out == bars[3:7]

    def test_limit(self, store: BarStore) -> None:
        store.write_bars("PF_XBTUSD", "1h", flat_bars(10))
        assert len(store.get_bars("PF_XBTUSD", "1h", limit=4)) == 4

    def test_keyed_by_symbol_and_interval(self, store: BarStore) -> None:
        store.write_bars("PF_XBTUSD", "1h", flat_bars(3))
        store.write_bars("PF_XBTUSD", "15m", flat_bars(5))
        store.write_bars("PF_ETHUSD", "1h", flat_bars(2))
        assert store.count_bars("PF_XBTUSD", "1h") == 3
        assert store.count_bars("PF_XBTUSD", "15m") == 5
        assert store.count_bars("PF_ETHUSD", "1h") == 2
        assert store.get_bars("PF_SOLUSD", "1h") == []

    def test_get_last_bars(self, store: BarStore) -> None:
        bars = flat_bars(10)
        store.write_bars("PF_XBTUSD", "1h", bars)
        assert store.get_last_bars("PF_XBTUSD", "1h", 3) == bars[7:]
        assert store.get_last_bars("PF_XBTUSD", "1h", 3, until=T0 + 4 * HOUR) == bars[2:5]

    def test_store_feeds_series(self, store: BarStore) -> None:
        store.write_bars("PF_XBTUSD", "1h", flat_bars(30))
        series = BarSeries(store.get_bars("PF_XBTUSD", "1h"))
        assert series.total_count() == 30


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------


class TestParseTimestamp:
    def test_epoch_seconds(self) -> None:
        assert parse_timestamp("1700000000") == 1_700_000_000

    def test_epoch_milliseconds(self) -> None:
        assert parse_timestamp("1700000000000") == 1_700_000_000

    def test_iso_zulu(self) -> None:
        assert parse_timestamp("2023-11-14T22:13:20Z") == 1_700_000_000

    def test_naive_iso_is_utc(self) -> None:
        assert parse_timestamp("2023-11-14 22:13:20") == 1_700_000_000

    def test_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestLoadCsv:
    def test_loads_and_sorts(self, tmp_path: Path) -> None:
        path = tmp_path / "bars.csv"
        path.write_text(
            "timestamp,open,high,low,close,volume\n"
            "1700003600,101,103,100,102,7.5\n"
            "1700000000,100,102,99,101,3\n"
        )
        bars = load_csv_bars(path)
        assert [b.timestamp for b in bars] == [1_700_000_000, 1_700_003_600]
        assert bars[0].close == 101.0
        assert bars[1].volume == 7.5

    def test_volume_optional_and_headers_case_insensitive(self, tmp_path: Path) -> None:
        path = tmp_path / "bars.csv"
        path.write_text("Timestamp,Open,High,Low,Close\n2023-11-14T22:00:00Z,1,2,0.5,1.5\n")
        bars = load_csv_bars(path)
        assert bars[0].volume == 0.0
        assert bars[0].high == 2.0

    def test_missing_column(self, tmp_path: Path) -> None:
        path = tmp_path / "bars.csv"
        path.write_text("timestamp,open,high,close\n1700000000,1,2,1.5\n")
        with pytest.raises(ValueError, match="missing columns"):
            load_csv_bars(path)

    def test_bad_number_reports_line(self, tmp_path: Path) -> None:
        path = tmp_path / "bars.csv"
        path.write_text("timestamp,open,high,low,close\n1700000000,1,2,0.5,1.5\n1700003600,1,x,0.5,1.5\n")
        with pytest.raises(ValueError, match=":3:"):
            load_csv_bars(path)

    def test_duplicate_timestamp(self, tmp_path: Path) -> None:
        path = tmp_path / "bars.csv"
        path.write_text("timestamp,open,high,low,close\n1700000000,1,2,0.5,1.5\n1700000000,1,2,0.5,1.6\n")
        with pytest.raises(ValueError, match="duplicate"):
            load_csv_bars(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_csv_bars(tmp_path / "nope.csv")
