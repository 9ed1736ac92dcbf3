import pytest

from journal_analytics.heuristics import RiskHeuristics
from journal_analytics.models import AdvancedInsights, TradeSummary

pytestmark = pytest.mark.unit


@pytest.fixture
def rules():
    return RiskHeuristics()


def test_risk_score_weights_and_cap(rules):
    assert rules.risk_score(1.0, 2.0, 3.0) == pytest.approx(1 * 10 + 2 * 5 + 3 * 2)
    assert rules.risk_score(50.0, 0.0, 0.0) == 100.0


@pytest.mark.parametrize(
    "monthly,expected",
    [
        ([5.0], "neutral"),
        ([-9.0, 1.0, 1.0, 1.0], "bullish"),
        ([1.0, -0.5, -0.5, -0.5], "bearish"),
        ([0.1, -0.1], "neutral"),
    ],
)
def test_trend_direction_uses_last_three_months(rules, monthly, expected):
    assert rules.trend_direction(monthly) == expected


def test_momentum_needs_ten_days(rules):
    assert rules.momentum_score([1.0] * 9) == 0.0
    daily = [0.0] * 10 + [2.0] * 10
    assert rules.momentum_score(daily) == pytest.approx(2.0)
    assert rules.momentum_score([1.0] * 10) == pytest.approx(1.0)


def test_volatility_forecast_rms_of_last_ten(rules):
    assert rules.volatility_forecast([3.0] * 5) == 0.0
    assert rules.volatility_forecast([100.0] + [-2.0, 2.0] * 5) == pytest.approx(2.0)


def test_recommendations_thresholds(rules):
    insights = AdvancedInsights(diversification_score=40, risk_score=80, max_drawdown=30, sharpe_ratio=0.5)
    assert len(rules.recommendations(insights, total_volume=100)) == 4

    calm = AdvancedInsights(diversification_score=60, risk_score=10, max_drawdown=1, sharpe_ratio=1.5)
    assert rules.recommendations(calm, total_volume=100) == []


def test_risk_warnings_thresholds(rules):
    insights = AdvancedInsights(var95=11, max_drawdown=31, concentration_risk=81, volatility=6)
    warnings = rules.risk_warnings(insights, total_volume=100)
    assert len(warnings) == 4
    assert rules.risk_warnings(AdvancedInsights(), total_volume=100) == []


def test_risk_label(rules):
    assert rules.risk_label(71) == "HIGH RISK"
    assert rules.risk_label(41) == "MODERATE RISK"
    assert rules.risk_label(40) == "LOW RISK"


def test_risk_level_counts_factors(rules):
    assert rules.risk_level(TradeSummary(total_trades=10, win_rate=50, total_volume=100)) == "LOW"
    assert rules.risk_level(TradeSummary(total_trades=10, win_rate=20, total_volume=100)) == "MEDIUM"
    high = TradeSummary(total_trades=10, win_rate=20, total_volume=100, max_loss=-40, total_pnl=-20)
    assert rules.risk_level(high) == "HIGH"


def test_thresholds_can_be_overridden():
    class Strict(RiskHeuristics):
        MIN_SHARPE = 0.1

    insights = AdvancedInsights(diversification_score=60, sharpe_ratio=0.5)
    assert Strict().recommendations(insights, total_volume=100) == []
