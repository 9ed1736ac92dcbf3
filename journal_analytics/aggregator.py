"""Bucket and series builders over the canonical ledger.

Everything here works on a timestamp-sorted ``DataFrame`` view of the ledger;
callers never need to pre-sort.
"""

from __future__ import annotations

import enum
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

import config
from .models import (
    AssetShare,
    Bucket,
    ChartPoint,
    LedgerEntry,
    PnlPoint,
    RoundTripEntry,
    TradeSummary,
    ms_to_datetime,
)

__all__ = [
    "ResetBoundary",
    "entries_frame",
    "bucket_by_day",
    "bucket_by_month",
    "bucket_by_asset",
    "cumulative_pnl",
    "daily_pnl",
    "round_trip_series",
    "chart_data",
    "asset_breakdown",
    "summarize",
]

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ("timestamp", "asset", "side", "quantity", "price", "fee", "realized_pnl")


class ResetBoundary(str, enum.Enum):
    NONE = "none"
    DAY = "day"


def entries_frame(entries: Iterable[LedgerEntry]) -> pd.DataFrame:
    rows = [
        {
            "timestamp": e.timestamp,
            "asset": e.asset,
            "side": e.side,
            "quantity": e.quantity,
            "price": e.price,
            "fee": e.fee,
            "realized_pnl": e.realized_pnl,
        }
        for e in entries
    ]
    df = pd.DataFrame(rows, columns=list(FRAME_COLUMNS))
    df = df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)
    stamps = pd.to_datetime(df["timestamp"].astype("int64"), unit="ms", utc=True)
    df["day"] = stamps.dt.strftime("%Y-%m-%d")
    df["month"] = stamps.dt.strftime("%Y-%m")
    df["volume"] = df["quantity"].astype(float) * df["price"].astype(float)
    return df


def _frame(entries) -> pd.DataFrame:
    if isinstance(entries, pd.DataFrame):
        return entries
    return entries_frame(entries)


def _buckets(df: pd.DataFrame, key: str) -> Dict[str, Bucket]:
    buckets: Dict[str, Bucket] = {}
    if df.empty:
        return buckets
    for name, group in df.groupby(key, sort=True):
        pnl = group["realized_pnl"].astype(float)
        count = int(len(group))
        wins = int((pnl > 0).sum())
        buckets[str(name)] = Bucket(
            key=str(name),
            trade_count=count,
            total_volume=float(group["volume"].sum()),
            total_pnl=float(pnl.sum()),
            win_rate=(wins / count) * 100.0 if count else 0.0,
            total_fees=float(group["fee"].sum()),
            total_quantity=float(group["quantity"].sum()),
            avg_price=float(group["price"].mean()),
        )
    return buckets


def bucket_by_day(entries) -> Dict[str, Bucket]:
    return _buckets(_frame(entries), "day")


def bucket_by_month(entries) -> Dict[str, Bucket]:
    return _buckets(_frame(entries), "month")


def bucket_by_asset(entries) -> Dict[str, Bucket]:
    return _buckets(_frame(entries), "asset")


def cumulative_pnl(
    entries,
    reset_boundary: ResetBoundary = ResetBoundary.NONE,
    quote_multiplier: float = 1.0,
) -> List[PnlPoint]:
    """Running realized PnL over the timestamp-sorted ledger.

    ``ResetBoundary.DAY`` restarts the sum at every UTC calendar day and marks
    the first point of each day. ``quote_multiplier`` converts the running sum
    into the quote currency (e.g. SOL -> USD).
    """
    df = _frame(entries)
    if df.empty:
        return []
    boundary = ResetBoundary(reset_boundary)
    pnl = df["realized_pnl"].astype(float)
    if boundary is ResetBoundary.DAY:
        running = pnl.groupby(df["day"], sort=False).cumsum()
        day_start = df["day"].ne(df["day"].shift())
    else:
        running = pnl.cumsum()
        day_start = pd.Series(False, index=df.index)

    points: List[PnlPoint] = []
    for idx, row in df.iterrows():
        total = float(running.loc[idx])
        points.append(
            PnlPoint(
                timestamp=int(row["timestamp"]),
                date=row["day"],
                asset=str(row["asset"]),
                pnl=float(row["realized_pnl"]),
                cumulative_pnl=total,
                cumulative_pnl_quote=total * quote_multiplier,
                is_day_start=bool(day_start.loc[idx]),
            )
        )
    return points


def daily_pnl(entries, zero_fill: Optional[bool] = None) -> pd.Series:
    """Realized PnL per UTC day, ascending.

    Only days with at least one entry appear unless ``zero_fill`` inserts the
    gap days between the first and last day as 0.
    """
    if zero_fill is None:
        zero_fill = config.ZERO_FILL_DAYS
    df = _frame(entries)
    if df.empty:
        return pd.Series(dtype="float64", name="pnl")
    series = df.groupby("day", sort=True)["realized_pnl"].sum().astype(float)
    if zero_fill and len(series) > 1:
        full = pd.date_range(series.index[0], series.index[-1], freq="D").strftime("%Y-%m-%d")
        series = series.reindex(full, fill_value=0.0)
    series.index.name = "day"
    series.name = "pnl"
    return series


def round_trip_series(
    round_trips: Sequence[RoundTripEntry],
    quote_multiplier: float = 1.0,
    reset_boundary: ResetBoundary = ResetBoundary.NONE,
) -> List[PnlPoint]:
    """One realized-PnL event per round trip, cumulative in base and quote units.

    ``ResetBoundary.DAY`` restarts the sum at every UTC day, as in
    ``cumulative_pnl``.
    """
    ordered = sorted(round_trips, key=lambda rt: rt.timestamp)
    if not ordered:
        return []
    boundary = ResetBoundary(reset_boundary)
    days = pd.Series([ms_to_datetime(rt.timestamp).strftime("%Y-%m-%d") for rt in ordered])
    pnl = pd.Series(np.array([rt.pnl_base for rt in ordered], dtype=float))
    if boundary is ResetBoundary.DAY:
        running = pnl.groupby(days, sort=False).cumsum().to_numpy()
        day_start = days.ne(days.shift()).to_numpy()
    else:
        running = np.cumsum(pnl.to_numpy())
        day_start = np.zeros(len(ordered), dtype=bool)
    return [
        PnlPoint(
            timestamp=rt.timestamp,
            date=days.iloc[i],
            asset=rt.token_name,
            pnl=float(pnl.iloc[i]),
            cumulative_pnl=float(running[i]),
            cumulative_pnl_quote=float(running[i]) * quote_multiplier,
            is_day_start=bool(day_start[i]),
        )
        for i, rt in enumerate(ordered)
    ]


def chart_data(entries) -> List[ChartPoint]:
    """Per-day PnL, running total, volume and trade count for charting."""
    df = _frame(entries)
    if df.empty:
        return []
    daily = df.groupby("day", sort=True).agg(
        pnl=("realized_pnl", "sum"),
        volume=("volume", "sum"),
        trades=("realized_pnl", "size"),
    )
    daily["cumulative_pnl"] = daily["pnl"].cumsum()
    return [
        ChartPoint(
            date=str(day),
            pnl=float(row["pnl"]),
            cumulative_pnl=float(row["cumulative_pnl"]),
            volume=float(row["volume"]),
            trades=int(row["trades"]),
        )
        for day, row in daily.iterrows()
    ]


def asset_breakdown(entries, asset_buckets: Optional[Mapping[str, Bucket]] = None) -> List[AssetShare]:
    """Assets by traded value, largest first, with their share of total volume."""
    if asset_buckets is None:
        asset_buckets = bucket_by_asset(entries)
    total_value = sum(b.total_volume for b in asset_buckets.values())
    shares = [
        AssetShare(
            asset=b.key,
            value=b.total_volume,
            percentage=(b.total_volume / total_value) * 100.0 if total_value > 0 else 0.0,
            pnl=b.total_pnl,
            trades=b.trade_count,
        )
        for b in asset_buckets.values()
    ]
    # stable: equal values keep asset-name order
    return sorted(shares, key=lambda s: s.value, reverse=True)


def summarize(entries, asset_buckets: Optional[Mapping[str, Bucket]] = None) -> TradeSummary:
    df = _frame(entries)
    if df.empty:
        return TradeSummary()
    if asset_buckets is None:
        asset_buckets = bucket_by_asset(df)

    pnl = df["realized_pnl"].astype(float)
    wins = pnl[pnl > 0]
    losses = pnl[pnl < 0]
    total = int(len(df))

    best_asset = worst_asset = ""
    if asset_buckets:
        # first key wins on ties
        best_asset = max(asset_buckets.values(), key=lambda b: b.total_pnl).key
        worst_asset = min(asset_buckets.values(), key=lambda b: b.total_pnl).key

    summary = TradeSummary(
        total_trades=total,
        total_volume=float(df["volume"].sum()),
        total_fees=float(df["fee"].sum()),
        total_pnl=float(pnl.sum()),
        win_rate=(len(wins) / total) * 100.0,
        avg_win=float(wins.mean()) if len(wins) else 0.0,
        avg_loss=float(losses.mean()) if len(losses) else 0.0,
        max_win=float(wins.max()) if len(wins) else 0.0,
        max_loss=float(losses.min()) if len(losses) else 0.0,
        best_asset=best_asset,
        worst_asset=worst_asset,
    )
    logger.debug("Summarized %d entries: total_pnl=%.6f", total, summary.total_pnl)
    return summary
