import json

import pytest

from journal_analytics import aggregator
from journal_analytics.aggregator import ResetBoundary
from journal_analytics.detector import detect
from journal_analytics.models import RoundTripEntry
from journal_analytics.normalizer import normalize, parse_round_trips
from journal_analytics.positions import replay
from tests.helpers.fakes import entry

pytestmark = pytest.mark.unit

DAY = 86_400_000
T0 = 1735689600000  # 2025-01-01T00:00:00Z


def _ledger():
    return [
        entry(T0 + 2 * DAY + 5, "B", "sell", 1, 20, pnl=-3.0),
        entry(T0 + 1000, "A", "buy", 2, 10),
        entry(T0 + 2000, "A", "sell", 1, 12, pnl=2.0),
        entry(T0 + 40 * DAY, "A", "sell", 1, 15, pnl=5.0),
    ]


def _standard_ledger(text):
    return replay(normalize(detect(text))).entries


def test_entries_frame_is_sorted_with_derived_columns():
    df = aggregator.entries_frame(_ledger())
    assert df["timestamp"].is_monotonic_increasing
    assert list(df["day"]) == ["2025-01-01", "2025-01-01", "2025-01-03", "2025-02-10"]
    assert list(df["month"]) == ["2025-01", "2025-01", "2025-01", "2025-02"]
    assert df["volume"].iloc[0] == pytest.approx(20.0)


def test_entries_frame_empty():
    df = aggregator.entries_frame([])
    assert df.empty
    assert {"day", "month", "volume"} <= set(df.columns)


def test_bucket_by_asset_counts_and_win_rate():
    buckets = aggregator.bucket_by_asset(_ledger())
    assert list(buckets) == ["A", "B"]
    a = buckets["A"]
    assert a.trade_count == 3
    assert a.total_pnl == pytest.approx(7.0)
    assert a.win_rate == pytest.approx(200.0 / 3)
    assert a.total_volume == pytest.approx(20 + 12 + 15)
    assert buckets["B"].win_rate == 0.0


def test_day_and_month_buckets():
    days = aggregator.bucket_by_day(_ledger())
    months = aggregator.bucket_by_month(_ledger())
    assert list(days) == ["2025-01-01", "2025-01-03", "2025-02-10"]
    assert days["2025-01-01"].trade_count == 2
    assert months["2025-01"].total_pnl == pytest.approx(-1.0)
    assert months["2025-02"].total_pnl == pytest.approx(5.0)


def test_day_buckets_conserve_total_pnl(standard_text):
    entries = _standard_ledger(standard_text)
    days = aggregator.bucket_by_day(entries)
    assert sum(b.total_pnl for b in days.values()) == pytest.approx(sum(e.realized_pnl for e in entries))


def test_cumulative_pnl_last_point_equals_total(standard_text):
    entries = _standard_ledger(standard_text)
    points = aggregator.cumulative_pnl(entries)
    assert points[-1].cumulative_pnl == pytest.approx(sum(e.realized_pnl for e in entries))
    assert [p.timestamp for p in points] == sorted(p.timestamp for p in points)


def test_cumulative_pnl_sorts_unordered_input():
    points = aggregator.cumulative_pnl(_ledger())
    assert [p.cumulative_pnl for p in points] == pytest.approx([0.0, 2.0, -1.0, 4.0])
    assert not any(p.is_day_start for p in points)


def test_cumulative_pnl_daily_reset_and_quote():
    points = aggregator.cumulative_pnl(_ledger(), reset_boundary=ResetBoundary.DAY, quote_multiplier=2.0)
    assert [p.cumulative_pnl for p in points] == pytest.approx([0.0, 2.0, -3.0, 5.0])
    assert [p.is_day_start for p in points] == [True, False, True, True]
    assert [p.cumulative_pnl_quote for p in points] == pytest.approx([0.0, 4.0, -6.0, 10.0])


def test_cumulative_pnl_empty():
    assert aggregator.cumulative_pnl([]) == []


def test_daily_pnl_without_and_with_zero_fill():
    sparse = aggregator.daily_pnl(_ledger(), zero_fill=False)
    assert list(sparse.index) == ["2025-01-01", "2025-01-03", "2025-02-10"]
    assert list(sparse) == pytest.approx([2.0, -3.0, 5.0])

    filled = aggregator.daily_pnl(_ledger(), zero_fill=True)
    assert len(filled) == 41
    assert filled.loc["2025-01-02"] == 0.0
    assert filled.sum() == pytest.approx(4.0)


def test_daily_pnl_empty():
    assert aggregator.daily_pnl([], zero_fill=True).empty


def test_round_trip_example_bucket():
    text = json.dumps(
        [{"pnlSol": -0.5, "solInvested": 1, "solReceived": 0.5, "timestamp": 1700000000000, "tokenName": "FOO"}]
    )
    buckets = aggregator.bucket_by_asset(normalize(detect(text)))
    assert list(buckets) == ["FOO"]
    assert buckets["FOO"].total_pnl == pytest.approx(-0.5)
    assert buckets["FOO"].win_rate == 0.0


def test_round_trip_series_converts_to_quote(round_trip_text):
    trips = parse_round_trips(detect(round_trip_text))
    series = aggregator.round_trip_series(list(reversed(trips)), quote_multiplier=150.0)
    assert [p.asset for p in series] == ["BONK", "FOO", "WIF", "BONK"]
    assert series[-1].cumulative_pnl == pytest.approx(0.82)
    assert series[-1].cumulative_pnl_quote == pytest.approx(0.82 * 150.0)


def test_summarize_totals_and_extremes():
    summary = aggregator.summarize(_ledger())
    assert summary.total_trades == 4
    assert summary.total_pnl == pytest.approx(4.0)
    assert summary.win_rate == pytest.approx(50.0)
    assert summary.avg_win == pytest.approx(3.5)
    assert summary.avg_loss == pytest.approx(-3.0)
    assert summary.max_win == pytest.approx(5.0)
    assert summary.max_loss == pytest.approx(-3.0)
    assert summary.best_asset == "A"
    assert summary.worst_asset == "B"


def test_summarize_empty():
    summary = aggregator.summarize([])
    assert summary.total_trades == 0
    assert summary.best_asset == ""


def test_aggregation_is_deterministic(standard_text):
    first = aggregator.bucket_by_asset(_standard_ledger(standard_text))
    second = aggregator.bucket_by_asset(_standard_ledger(standard_text))
    assert {k: v.to_dict() for k, v in first.items()} == {k: v.to_dict() for k, v in second.items()}


def test_round_trip_series_daily_reset(round_trip_text):
    trips = parse_round_trips(detect(round_trip_text))
    running = aggregator.round_trip_series(trips)
    reset = aggregator.round_trip_series(trips, reset_boundary=ResetBoundary.DAY)
    assert [p.date for p in reset] == [p.date for p in running]
    for prev, point in zip([None] + reset[:-1], reset):
        if prev is None or prev.date != point.date:
            assert point.is_day_start
            assert point.cumulative_pnl == pytest.approx(point.pnl)
        else:
            assert not point.is_day_start
            assert point.cumulative_pnl == pytest.approx(prev.cumulative_pnl + point.pnl)
    assert not any(p.is_day_start for p in running)


def test_chart_data_per_day_running_total():
    chart = aggregator.chart_data(_ledger())
    assert [c.date for c in chart] == ["2025-01-01", "2025-01-03", "2025-02-10"]
    assert [c.pnl for c in chart] == pytest.approx([2.0, -3.0, 5.0])
    assert [c.cumulative_pnl for c in chart] == pytest.approx([2.0, -1.0, 4.0])
    assert [c.volume for c in chart] == pytest.approx([32.0, 20.0, 15.0])
    assert [c.trades for c in chart] == [2, 1, 1]
    assert aggregator.chart_data([]) == []


def test_asset_breakdown_sorted_by_value_with_share():
    breakdown = aggregator.asset_breakdown(_ledger())
    assert [a.asset for a in breakdown] == ["A", "B"]
    assert breakdown[0].value == pytest.approx(47.0)
    assert breakdown[0].percentage == pytest.approx(47.0 / 67.0 * 100.0)
    assert breakdown[1].pnl == pytest.approx(-3.0)
    assert [a.trades for a in breakdown] == [3, 1]
    assert sum(a.percentage for a in breakdown) == pytest.approx(100.0)
    assert aggregator.asset_breakdown([]) == []


def test_round_trip_series_reset_within_one_day():
    trips = [
        RoundTripEntry("A", 1.0, 1.0, 2.0, T0 + 1000),
        RoundTripEntry("B", 2.0, 1.0, 3.0, T0 + 2000),
        RoundTripEntry("C", -0.5, 1.0, 0.5, T0 + DAY),
    ]
    series = aggregator.round_trip_series(trips, quote_multiplier=10.0, reset_boundary="day")
    assert [p.cumulative_pnl for p in series] == pytest.approx([1.0, 3.0, -0.5])
    assert [p.is_day_start for p in series] == [True, False, True]
    assert [p.cumulative_pnl_quote for p in series] == pytest.approx([10.0, 30.0, -5.0])
