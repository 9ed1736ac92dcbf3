"""End-to-end analysis: detect, normalize, replay, aggregate, score."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

import config
from . import aggregator, stats_engine
from .aggregator import ResetBoundary
from .detector import detect
from .heuristics import RiskHeuristics
from .models import (
    AdvancedInsights,
    AssetPerformance,
    AssetPosition,
    AssetShare,
    Bucket,
    ChartPoint,
    ExportData,
    LedgerEntry,
    MonthlyPerformance,
    PnlPoint,
    RiskMetrics,
    RoundTripEntry,
    RoundTrips,
    StandardTrades,
    TradeSummary,
)
from .normalizer import normalize, parse_round_trips
from .positions import ReplayOrder, replay

__all__ = ["AnalysisResult", "analyze", "analyze_entries"]

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    format: str
    entries: List[LedgerEntry]
    summary: TradeSummary
    daily_buckets: Dict[str, Bucket]
    monthly_buckets: Dict[str, Bucket]
    asset_buckets: Dict[str, Bucket]
    pnl_series: List[PnlPoint]
    daily_pnl: pd.Series
    insights: AdvancedInsights
    monthly: List[MonthlyPerformance]
    assets: List[AssetPerformance]
    risk: RiskMetrics
    risk_level: str = "LOW"
    sol_price_usd: float = 1.0
    positions: Mapping[str, AssetPosition] = field(default_factory=dict)
    round_trips: List[RoundTripEntry] = field(default_factory=list)
    chart: List[ChartPoint] = field(default_factory=list)
    asset_breakdown: List[AssetShare] = field(default_factory=list)

    def export_data(self) -> ExportData:
        return ExportData(
            trades=list(self.entries),
            summary=self.summary,
            insights=self.insights,
            monthly=list(self.monthly),
            assets=list(self.assets),
            risk=self.risk,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = self.export_data().to_dict()
        payload.update(
            {
                "format": self.format,
                "risk_level": self.risk_level,
                "sol_price_usd": self.sol_price_usd,
                "buckets": {
                    "day": {k: b.to_dict() for k, b in self.daily_buckets.items()},
                    "month": {k: b.to_dict() for k, b in self.monthly_buckets.items()},
                    "asset": {k: b.to_dict() for k, b in self.asset_buckets.items()},
                },
                "pnl_series": [p.to_dict() for p in self.pnl_series],
                "chart": [c.to_dict() for c in self.chart],
                "asset_breakdown": [a.to_dict() for a in self.asset_breakdown],
                "positions": {
                    k: {"open_quantity": p.open_quantity, "average_cost": p.average_cost}
                    for k, p in sorted(self.positions.items())
                },
            }
        )
        return payload


def analyze_entries(
    entries: Sequence[LedgerEntry],
    *,
    fmt: str = "ledger",
    zero_fill: Optional[bool] = None,
    confidence: Optional[float] = None,
    sol_price_usd: Optional[float] = None,
    reset_boundary: Union[ResetBoundary, str] = ResetBoundary.NONE,
    round_trips: Optional[Sequence[RoundTripEntry]] = None,
    positions: Optional[Mapping[str, AssetPosition]] = None,
    heuristics: Optional[RiskHeuristics] = None,
) -> AnalysisResult:
    """Aggregate and score a ledger whose realized PnL is already filled in."""
    if confidence is None:
        confidence = config.VAR_CONFIDENCE
    if zero_fill is None:
        zero_fill = config.ZERO_FILL_DAYS
    price = config.SOL_PRICE_FALLBACK_USD if sol_price_usd is None else float(sol_price_usd)
    rules = heuristics or RiskHeuristics()

    frame = aggregator.entries_frame(entries)
    ordered = sorted(entries, key=lambda e: e.timestamp)
    asset_buckets = aggregator.bucket_by_asset(frame)
    monthly_buckets = aggregator.bucket_by_month(frame)
    daily_buckets = aggregator.bucket_by_day(frame)
    summary = aggregator.summarize(frame, asset_buckets)
    daily = aggregator.daily_pnl(frame, zero_fill=zero_fill)

    if round_trips:
        series = aggregator.round_trip_series(
            round_trips, quote_multiplier=price, reset_boundary=reset_boundary
        )
    else:
        series = aggregator.cumulative_pnl(frame, reset_boundary=reset_boundary, quote_multiplier=price)

    insights = stats_engine.generate_insights(
        ordered,
        summary,
        asset_buckets,
        monthly_buckets,
        confidence=confidence,
        zero_fill=zero_fill,
        heuristics=rules,
    )
    returns = daily.tolist()
    result = AnalysisResult(
        format=fmt,
        entries=ordered,
        summary=summary,
        daily_buckets=daily_buckets,
        monthly_buckets=monthly_buckets,
        asset_buckets=asset_buckets,
        pnl_series=series,
        daily_pnl=daily,
        insights=insights,
        monthly=stats_engine.monthly_performance(ordered),
        assets=stats_engine.asset_performance(ordered, asset_buckets, returns),
        risk=stats_engine.risk_metrics(ordered, asset_buckets, returns, confidence),
        risk_level=rules.risk_level(summary),
        sol_price_usd=price,
        positions=dict(positions or {}),
        round_trips=list(round_trips or []),
        chart=aggregator.chart_data(frame),
        asset_breakdown=aggregator.asset_breakdown(frame, asset_buckets),
    )
    logger.debug(
        "Analyzed %s journal: %d entries, %d days, total_pnl=%.6f",
        fmt,
        len(ordered),
        len(daily),
        summary.total_pnl,
    )
    return result


def analyze(
    text: str,
    *,
    replay_order: Optional[Union[ReplayOrder, str]] = None,
    zero_fill: Optional[bool] = None,
    confidence: Optional[float] = None,
    sol_price_usd: Optional[float] = None,
    reset_boundary: Union[ResetBoundary, str] = ResetBoundary.NONE,
    heuristics: Optional[RiskHeuristics] = None,
) -> AnalysisResult:
    """Run the whole pipeline on pasted journal JSON.

    Raises ``ParseError``, ``FormatError`` or ``ValidationError`` for bad
    input; never fails once the ledger has been built.
    """
    parsed = detect(text)
    entries = normalize(parsed)
    positions: Mapping[str, AssetPosition] = {}
    trips: List[RoundTripEntry] = []

    if isinstance(parsed, StandardTrades):
        replayed = replay(entries, replay_order)
        entries = replayed.entries
        positions = replayed.positions
    elif isinstance(parsed, RoundTrips):
        # realized PnL is reported per record; no position replay
        trips = parse_round_trips(parsed)

    return analyze_entries(
        entries,
        fmt=parsed.label,
        zero_fill=zero_fill,
        confidence=confidence,
        sol_price_usd=sol_price_usd,
        reset_boundary=reset_boundary,
        round_trips=trips,
        positions=positions,
        heuristics=heuristics,
    )
