from __future__ import annotations

import math
from typing import List, Sequence

from .models import AdvancedInsights, TradeSummary

__all__ = ["RiskHeuristics"]


class RiskHeuristics:
    """Product rules layered on top of the statistics.

    These are tunable thresholds, not derived quantities; subclass and
    override the class attributes to change them.
    """

    VOLATILITY_WEIGHT = 10.0
    DRAWDOWN_WEIGHT = 5.0
    CONCENTRATION_WEIGHT = 2.0
    MAX_RISK_SCORE = 100.0

    TREND_MONTHS = 3
    TREND_THRESHOLD = 0.1
    MOMENTUM_WINDOW = 10

    MIN_DIVERSIFICATION = 50.0
    HIGH_RISK_SCORE = 70.0
    MODERATE_RISK_SCORE = 40.0
    DRAWDOWN_ADVICE_RATIO = 0.2
    MIN_SHARPE = 1.0

    VAR_WARNING_RATIO = 0.1
    DRAWDOWN_WARNING_RATIO = 0.3
    MAX_CONCENTRATION = 80.0
    VOLATILITY_WARNING_RATIO = 0.05

    LOW_WIN_RATE = 30.0
    LOSS_LEVEL_RATIO = -0.3
    PNL_LEVEL_RATIO = -0.1

    def risk_score(self, volatility: float, max_drawdown: float, concentration: float) -> float:
        raw = (
            volatility * self.VOLATILITY_WEIGHT
            + max_drawdown * self.DRAWDOWN_WEIGHT
            + concentration * self.CONCENTRATION_WEIGHT
        )
        return min(self.MAX_RISK_SCORE, raw)

    def trend_direction(self, monthly_pnl: Sequence[float]) -> str:
        if len(monthly_pnl) < 2:
            return "neutral"
        recent = list(monthly_pnl)[-self.TREND_MONTHS:]
        avg = sum(recent) / len(recent)
        if avg > self.TREND_THRESHOLD:
            return "bullish"
        if avg < -self.TREND_THRESHOLD:
            return "bearish"
        return "neutral"

    def momentum_score(self, daily: Sequence[float]) -> float:
        """Average of the last window of days minus the average of the window before it."""
        values = list(daily)
        window = self.MOMENTUM_WINDOW
        if len(values) < window:
            return 0.0
        recent = values[-window:]
        older = values[-2 * window:-window]
        recent_avg = sum(recent) / len(recent)
        older_avg = sum(older) / len(older) if older else 0.0
        return recent_avg - older_avg

    def volatility_forecast(self, daily: Sequence[float]) -> float:
        values = list(daily)
        if len(values) < self.MOMENTUM_WINDOW:
            return 0.0
        recent = values[-self.MOMENTUM_WINDOW:]
        return math.sqrt(sum(v * v for v in recent) / len(recent))

    def recommendations(self, insights: AdvancedInsights, total_volume: float) -> List[str]:
        items: List[str] = []
        if insights.diversification_score < self.MIN_DIVERSIFICATION:
            items.append("Consider diversifying the portfolio across more assets")
        if insights.risk_score > self.HIGH_RISK_SCORE:
            items.append("Reduce position sizes to lower overall risk")
        if insights.max_drawdown > total_volume * self.DRAWDOWN_ADVICE_RATIO:
            items.append("Use stop-losses to limit losses")
        if insights.sharpe_ratio < self.MIN_SHARPE:
            items.append("Improve the risk/reward ratio of your trades")
        return items

    def risk_warnings(self, insights: AdvancedInsights, total_volume: float) -> List[str]:
        items: List[str] = []
        if insights.var95 > total_volume * self.VAR_WARNING_RATIO:
            items.append("High loss risk: 5% chance of losing more than 10% of capital")
        if insights.max_drawdown > total_volume * self.DRAWDOWN_WARNING_RATIO:
            items.append("Very high maximum drawdown detected")
        if insights.concentration_risk > self.MAX_CONCENTRATION:
            items.append("Excessive concentration on one or more assets")
        if insights.volatility > total_volume * self.VOLATILITY_WARNING_RATIO:
            items.append("High portfolio volatility")
        return items

    def risk_label(self, risk_score: float) -> str:
        if risk_score > self.HIGH_RISK_SCORE:
            return "HIGH RISK"
        if risk_score > self.MODERATE_RISK_SCORE:
            return "MODERATE RISK"
        return "LOW RISK"

    def risk_level(self, summary: TradeSummary) -> str:
        """Coarse LOW/MEDIUM/HIGH rating from the trade summary alone."""
        factors = 0
        if summary.total_trades and summary.win_rate < self.LOW_WIN_RATE:
            factors += 1
        if summary.max_loss < summary.total_volume * self.LOSS_LEVEL_RATIO:
            factors += 1
        if summary.total_pnl < summary.total_volume * self.PNL_LEVEL_RATIO:
            factors += 1
        if factors >= 2:
            return "HIGH"
        if factors == 1:
            return "MEDIUM"
        return "LOW"
