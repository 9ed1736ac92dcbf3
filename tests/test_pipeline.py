import json

import pytest

from journal_analytics import analyze as lazy_analyze
from journal_analytics.errors import FormatError, ParseError, ValidationError
from journal_analytics.pipeline import AnalysisResult, analyze, analyze_entries

pytestmark = pytest.mark.unit


def test_example_one_end_to_end(example_one_text):
    result = analyze(example_one_text)
    assert result.format == "standard-trades"
    assert [e.realized_pnl for e in result.entries] == pytest.approx([0.0, 19.9])
    assert result.pnl_series[-1].cumulative_pnl == pytest.approx(19.9)
    assert result.summary.total_pnl == pytest.approx(19.9)
    assert result.positions["SOL"].open_quantity == pytest.approx(1.0)


def test_example_two_round_trip_bucket():
    text = json.dumps(
        [{"pnlSol": -0.5, "solInvested": 1, "solReceived": 0.5, "timestamp": 1700000000000, "tokenName": "FOO"}]
    )
    result = analyze(text, sol_price_usd=200.0)
    assert result.format == "round-trip"
    assert list(result.asset_buckets) == ["FOO"]
    assert result.asset_buckets["FOO"].total_pnl == pytest.approx(-0.5)
    assert result.asset_buckets["FOO"].win_rate == 0.0
    assert len(result.pnl_series) == 1
    assert result.pnl_series[0].cumulative_pnl_quote == pytest.approx(-100.0)
    assert result.positions == {}


def test_empty_ledger_yields_zeroed_result():
    result = analyze_entries([])
    assert isinstance(result, AnalysisResult)
    assert result.summary.total_trades == 0
    assert result.insights.sharpe_ratio == 0.0
    assert result.insights.var95 == 0.0
    assert result.pnl_series == []
    assert result.risk.portfolio["var95"] == 0.0


def test_round_trip_sample_skips_position_replay(round_trip_text):
    result = analyze(round_trip_text)
    assert len(result.entries) == 8
    assert result.summary.total_pnl == pytest.approx(0.82)
    assert len(result.round_trips) == 4


def test_standard_sample_totals(standard_text):
    result = analyze(standard_text, zero_fill=False)
    assert result.summary.total_pnl == pytest.approx(19.9 - 10.1 + 28.5 - 152.0)
    assert result.summary.best_asset == "BTC"
    assert result.summary.worst_asset == "ETH"
    assert sum(b.total_pnl for b in result.daily_buckets.values()) == pytest.approx(result.summary.total_pnl)


def test_zero_fill_changes_time_base(standard_text):
    sparse = analyze(standard_text, zero_fill=False)
    filled = analyze(standard_text, zero_fill=True)
    assert len(filled.daily_pnl) > len(sparse.daily_pnl)
    assert filled.daily_pnl.sum() == pytest.approx(sparse.daily_pnl.sum())


def test_replay_order_is_configurable():
    text = json.dumps(
        [
            {"date": "2025-01-02T00:00:00Z", "asset": "SOL", "side": "sell", "quantity": 1, "price": 120},
            {"date": "2025-01-01T00:00:00Z", "asset": "SOL", "side": "buy", "quantity": 1, "price": 100},
        ]
    )
    assert analyze(text, replay_order="timestamp").summary.total_pnl == pytest.approx(20.0)
    assert analyze(text, replay_order="input").summary.total_pnl == pytest.approx(0.0)


def test_daily_reset_series(standard_text):
    result = analyze(standard_text, reset_boundary="day")
    starts = [p for p in result.pnl_series if p.is_day_start]
    assert len(starts) == len(result.daily_buckets)


def test_analysis_is_deterministic(standard_text):
    first = analyze(standard_text).to_dict()
    second = analyze(standard_text).to_dict()
    assert first == second


def test_to_dict_contains_buckets_and_positions(standard_text):
    payload = analyze(standard_text).to_dict()
    assert set(payload["buckets"]) == {"day", "month", "asset"}
    assert payload["positions"]["SOL"]["open_quantity"] == pytest.approx(0.0)
    assert payload["format"] == "standard-trades"


@pytest.mark.parametrize(
    "text,error",
    [
        ("not json", ParseError),
        ("[]", ParseError),
        (json.dumps([{"x": 1}]), FormatError),
        (json.dumps([{"date": "2025-01-01", "asset": "A", "side": "buy", "quantity": -1, "price": 1}]), ValidationError),
        (json.dumps([{"date": "now", "asset": "A", "side": "buy", "quantity": 1, "price": 1}]), ValidationError),
        (
            json.dumps([{"pnlSol": 1, "solInvested": 1, "solReceived": 2, "timestamp": 1e16, "tokenName": "X"}]),
            ValidationError,
        ),
    ],
)
def test_input_errors_propagate(text, error):
    with pytest.raises(error):
        analyze(text)


def test_package_exposes_analyze_lazily(example_one_text):
    assert lazy_analyze is analyze
    assert lazy_analyze(example_one_text).summary.total_trades == 2


def test_round_trip_daily_reset_restarts_each_day():
    day = 86_400_000
    text = json.dumps(
        [
            {"pnlSol": 1, "solInvested": 1, "solReceived": 2, "timestamp": 1699990000000, "tokenName": "A"},
            {"pnlSol": 2, "solInvested": 1, "solReceived": 3, "timestamp": 1699990000000 + day, "tokenName": "B"},
        ]
    )
    series = analyze(text, reset_boundary="day", sol_price_usd=1.0).pnl_series
    assert [(p.date, p.cumulative_pnl, p.is_day_start) for p in series] == [
        ("2023-11-14", 1.0, True),
        ("2023-11-15", 2.0, True),
    ]
    running = analyze(text, sol_price_usd=1.0).pnl_series
    assert [p.cumulative_pnl for p in running] == pytest.approx([1.0, 3.0])


def test_chart_and_asset_breakdown_in_result(standard_text):
    result = analyze(standard_text, zero_fill=False, sol_price_usd=1.0)
    assert result.chart[-1].cumulative_pnl == pytest.approx(result.summary.total_pnl)
    assert sum(c.trades for c in result.chart) == 7
    assert sum(a.percentage for a in result.asset_breakdown) == pytest.approx(100.0)
    payload = result.to_dict()
    assert payload["chart"][0]["date"] == result.chart[0].date
    assert [a["asset"] for a in payload["asset_breakdown"]] == [a.asset for a in result.asset_breakdown]
