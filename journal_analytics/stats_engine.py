"""Portfolio statistics over realized-PnL series.

Every metric degrades to ``0`` on empty or degenerate input rather than
raising. Return series are plain float sequences; the daily series is one
value per UTC day that had activity (see ``aggregator.daily_pnl``).
"""

from __future__ import annotations

import json
import logging
import math
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

import config
from . import aggregator
from .heuristics import RiskHeuristics
from .models import (
    AdvancedInsights,
    AssetPerformance,
    Bucket,
    LedgerEntry,
    MonthlyPerformance,
    RiskMetrics,
    TradeSummary,
)

logger = logging.getLogger(__name__)

_DEBUG_VALUES = {"1", "true", "yes", "on"}


def _debug_metrics_enabled() -> bool:
    value = os.getenv("JOURNAL_DEBUG_METRICS", "")
    return value.strip().lower() in _DEBUG_VALUES


def _as_array(returns: Sequence[float]) -> np.ndarray:
    return np.asarray(list(returns), dtype=float)


def mean(returns: Sequence[float]) -> float:
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    return float(values.mean())


def volatility(returns: Sequence[float]) -> float:
    """Population standard deviation."""
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    return float(values.std(ddof=0))


def sharpe_ratio(returns: Sequence[float]) -> float:
    # No risk-free rate and no annualization.
    std = volatility(returns)
    if std == 0:
        return 0.0
    return mean(returns) / std


def max_drawdown(returns: Sequence[float]) -> float:
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    running = np.cumsum(values)
    peak = np.maximum.accumulate(np.maximum(running, 0.0))
    return float(np.max(peak - running))


def sortino_ratio(returns: Sequence[float]) -> float:
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    avg = float(values.mean())
    negative = values[values < 0]
    if negative.size == 0:
        # Historical behaviour: the mean itself, not a ratio.
        return avg
    downside = math.sqrt(float(np.mean(negative ** 2)))
    if downside == 0:
        return 0.0
    return avg / downside


def calmar_ratio(returns: Sequence[float]) -> float:
    dd = max_drawdown(returns)
    if dd == 0:
        return 0.0
    return mean(returns) / dd


def value_at_risk(returns: Sequence[float], confidence: Optional[float] = None) -> float:
    """Historical VaR: the order statistic at ``floor((1 - c) * n)``, as a positive number."""
    if confidence is None:
        confidence = config.VAR_CONFIDENCE
    values = np.sort(_as_array(returns))
    if values.size == 0:
        return 0.0
    index = int(math.floor((1.0 - confidence) * values.size))
    if index < 0 or index >= values.size:
        return 0.0
    return abs(float(values[index]))


def expected_shortfall(returns: Sequence[float], confidence: Optional[float] = None) -> float:
    values = _as_array(returns)
    if values.size == 0:
        return 0.0
    var = value_at_risk(values, confidence)
    tail = values[values <= -var]
    if tail.size == 0:
        return 0.0
    return abs(float(tail.mean()))


def _longest_run(flags: Sequence[bool]) -> int:
    best = current = 0
    for flag in flags:
        current = current + 1 if flag else 0
        best = max(best, current)
    return best


def win_streak(pnls: Sequence[float]) -> int:
    return _longest_run([p > 0 for p in pnls])


def loss_streak(pnls: Sequence[float]) -> int:
    return _longest_run([p < 0 for p in pnls])


def correlation(asset_returns: Sequence[float], portfolio_returns: Sequence[float]) -> float:
    """Simplified Pearson coefficient over index-aligned prefixes.

    The two series are not aligned in time: the covariance term pairs the
    i-th asset trade with the i-th portfolio day, while each variance uses
    its full series.
    """
    a = _as_array(asset_returns)
    p = _as_array(portfolio_returns)
    if a.size == 0 or p.size == 0:
        return 0.0
    n = min(a.size, p.size)
    a_dev = a - a.mean()
    p_dev = p - p.mean()
    cov = float(np.sum(a_dev[:n] * p_dev[:n])) / n
    denom = math.sqrt(float(np.mean(a_dev ** 2)) * float(np.mean(p_dev ** 2)))
    if denom == 0 or not math.isfinite(denom):
        return 0.0
    result = cov / denom
    return result if math.isfinite(result) else 0.0


def diversification_score(asset_buckets: Mapping[str, Bucket]) -> float:
    """100 minus the Herfindahl index over per-asset trade counts (x100), floored at 0."""
    total = sum(b.trade_count for b in asset_buckets.values())
    if total == 0:
        return 0.0
    hhi = sum((b.trade_count / total) ** 2 for b in asset_buckets.values())
    return max(0.0, 100.0 - hhi * 100.0)


def concentration_risk(asset_buckets: Mapping[str, Bucket]) -> float:
    """Herfindahl index over per-asset volume, scaled to 0..100."""
    total = sum(b.total_volume for b in asset_buckets.values())
    if total == 0:
        return 0.0
    return sum((b.total_volume / total) ** 2 for b in asset_buckets.values()) * 100.0


def average_trade_duration(entries: Sequence[LedgerEntry]) -> float:
    """Mean whole-day gap between consecutive same-asset entries in time order."""
    if len(entries) < 2:
        return 0.0
    ordered = sorted(entries, key=lambda e: e.timestamp)
    gaps: List[int] = []
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.asset == cur.asset:
            # whole days, truncated toward zero
            gaps.append(int((cur.timestamp - prev.timestamp) / 86_400_000))
    if not gaps:
        return 0.0
    return float(sum(gaps)) / len(gaps)


def best_trading_day(daily: pd.Series) -> str:
    if daily is None or len(daily) == 0:
        return ""
    return str(daily.idxmax())


def worst_trading_day(daily: pd.Series) -> str:
    if daily is None or len(daily) == 0:
        return ""
    return str(daily.idxmin())


def _trade_pnls(entries: Sequence[LedgerEntry]) -> List[float]:
    return [e.realized_pnl for e in sorted(entries, key=lambda e: e.timestamp)]


def generate_insights(
    entries: Sequence[LedgerEntry],
    summary: TradeSummary,
    asset_buckets: Mapping[str, Bucket],
    monthly_buckets: Mapping[str, Bucket],
    *,
    confidence: Optional[float] = None,
    zero_fill: Optional[bool] = None,
    heuristics: Optional[RiskHeuristics] = None,
) -> AdvancedInsights:
    if not entries:
        return AdvancedInsights.empty()
    if confidence is None:
        confidence = config.VAR_CONFIDENCE
    rules = heuristics or RiskHeuristics()

    daily = aggregator.daily_pnl(entries, zero_fill=zero_fill)
    returns = daily.tolist()
    pnls = _trade_pnls(entries)

    vol = volatility(returns)
    dd = max_drawdown(returns)
    concentration = concentration_risk(asset_buckets)
    monthly_pnl = [monthly_buckets[key].total_pnl for key in sorted(monthly_buckets)]

    insights = AdvancedInsights(
        sharpe_ratio=sharpe_ratio(returns),
        max_drawdown=dd,
        volatility=vol,
        win_streak=win_streak(pnls),
        loss_streak=loss_streak(pnls),
        best_trading_day=best_trading_day(daily),
        worst_trading_day=worst_trading_day(daily),
        average_trade_duration=average_trade_duration(entries),
        risk_score=rules.risk_score(vol, dd, concentration),
        diversification_score=diversification_score(asset_buckets),
        concentration_risk=concentration,
        trend_direction=rules.trend_direction(monthly_pnl),
        momentum_score=rules.momentum_score(returns),
        volatility_forecast=rules.volatility_forecast(returns),
        calmar_ratio=calmar_ratio(returns),
        sortino_ratio=sortino_ratio(returns),
        var95=value_at_risk(returns, confidence),
        expected_shortfall=expected_shortfall(returns, confidence),
    )
    insights.recommendations = rules.recommendations(insights, summary.total_volume)
    insights.risk_warnings = rules.risk_warnings(insights, summary.total_volume)

    if _debug_metrics_enabled():
        payload: Dict[str, Any] = {
            "days": len(returns),
            "trades": len(entries),
            "sharpe": round(insights.sharpe_ratio, 6),
            "max_drawdown": round(insights.max_drawdown, 6),
            "var": round(insights.var95, 6),
            "confidence": confidence,
            "risk_score": round(insights.risk_score, 4),
        }
        logger.info("ANALYSIS_METRICS %s", json.dumps(payload, sort_keys=True))
    return insights


def monthly_performance(entries: Sequence[LedgerEntry]) -> List[MonthlyPerformance]:
    df = aggregator.entries_frame(entries)
    if df.empty:
        return []
    rows: List[MonthlyPerformance] = []
    for month, group in df.groupby("month", sort=True):
        pnl = group["realized_pnl"].astype(float).tolist()
        count = len(pnl)
        rows.append(
            MonthlyPerformance(
                month=str(month),
                trades=count,
                pnl=float(sum(pnl)),
                volume=float(group["volume"].sum()),
                win_rate=(sum(1 for p in pnl if p > 0) / count) * 100.0,
                sharpe_ratio=sharpe_ratio(pnl),
                max_drawdown=max_drawdown(pnl),
            )
        )
    return rows


def _asset_returns(entries: Sequence[LedgerEntry]) -> Dict[str, List[float]]:
    grouped: Dict[str, List[float]] = {}
    for pnl_entry in sorted(entries, key=lambda e: e.timestamp):
        grouped.setdefault(pnl_entry.asset, []).append(pnl_entry.realized_pnl)
    return grouped


def asset_performance(
    entries: Sequence[LedgerEntry],
    asset_buckets: Mapping[str, Bucket],
    daily: Sequence[float],
) -> List[AssetPerformance]:
    per_asset = _asset_returns(entries)
    portfolio = list(daily)
    rows: List[AssetPerformance] = []
    for asset in sorted(asset_buckets):
        bucket = asset_buckets[asset]
        returns = per_asset.get(asset, [])
        rows.append(
            AssetPerformance(
                asset=asset,
                total_trades=bucket.trade_count,
                total_pnl=bucket.total_pnl,
                win_rate=bucket.win_rate,
                avg_return=mean(returns),
                volatility=volatility(returns),
                sharpe_ratio=sharpe_ratio(returns),
                max_drawdown=max_drawdown(returns),
                correlation=correlation(returns, portfolio),
            )
        )
    return rows


def risk_metrics(
    entries: Sequence[LedgerEntry],
    asset_buckets: Mapping[str, Bucket],
    daily: Sequence[float],
    confidence: Optional[float] = None,
) -> RiskMetrics:
    if confidence is None:
        confidence = config.VAR_CONFIDENCE
    portfolio = list(daily)
    per_asset = _asset_returns(entries)
    metrics = RiskMetrics(
        portfolio={
            "var95": value_at_risk(portfolio, confidence),
            "expected_shortfall": expected_shortfall(portfolio, confidence),
            "max_drawdown": max_drawdown(portfolio),
            "volatility": volatility(portfolio),
            "sharpe_ratio": sharpe_ratio(portfolio),
        }
    )
    for asset in sorted(asset_buckets):
        returns = per_asset.get(asset, [])
        metrics.assets[asset] = {
            "var95": value_at_risk(returns, confidence),
            "volatility": volatility(returns),
            # beta is approximated by the simplified correlation
            "beta": correlation(returns, portfolio),
        }
    return metrics
