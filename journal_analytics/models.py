from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

__all__ = [
    "BUY",
    "SELL",
    "LedgerEntry",
    "RoundTripEntry",
    "AssetPosition",
    "Bucket",
    "PnlPoint",
    "ChartPoint",
    "AssetShare",
    "TradeSummary",
    "AdvancedInsights",
    "MonthlyPerformance",
    "AssetPerformance",
    "RiskMetrics",
    "ExportData",
    "StandardTrades",
    "RoundTrips",
    "Unrecognized",
    "Parsed",
    "ms_to_datetime",
]

BUY = "buy"
SELL = "sell"

Side = Literal["buy", "sell"]


def ms_to_datetime(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)


@dataclass(frozen=True)
class LedgerEntry:
    timestamp: int
    asset: str
    side: Side
    quantity: float
    price: float
    fee: float = 0.0
    realized_pnl: float = 0.0

    @property
    def volume(self) -> float:
        return self.quantity * self.price

    @property
    def day(self) -> str:
        return ms_to_datetime(self.timestamp).strftime("%Y-%m-%d")

    @property
    def month(self) -> str:
        return ms_to_datetime(self.timestamp).strftime("%Y-%m")

    @property
    def iso_date(self) -> str:
        return ms_to_datetime(self.timestamp).isoformat().replace("+00:00", "Z")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "date": self.iso_date,
            "asset": self.asset,
            "side": self.side,
            "quantity": self.quantity,
            "price": self.price,
            "volume": self.volume,
            "fee": self.fee,
            "realized_pnl": self.realized_pnl,
        }


@dataclass(frozen=True)
class RoundTripEntry:
    """A closed trade reported as one record (platform export format)."""

    token_name: str
    pnl_base: float
    base_invested: float
    base_received: float
    timestamp: int


@dataclass(frozen=True)
class AssetPosition:
    asset: str
    open_quantity: float = 0.0
    average_cost: float = 0.0


@dataclass
class Bucket:
    key: str
    trade_count: int
    total_volume: float
    total_pnl: float
    win_rate: float
    total_fees: float = 0.0
    total_quantity: float = 0.0
    avg_price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PnlPoint:
    timestamp: int
    date: str
    asset: str
    pnl: float
    cumulative_pnl: float
    cumulative_pnl_quote: float
    is_day_start: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChartPoint:
    """One UTC day of the PnL chart and calendar heatmap."""

    date: str
    pnl: float
    cumulative_pnl: float
    volume: float
    trades: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AssetShare:
    asset: str
    value: float
    percentage: float
    pnl: float
    trades: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TradeSummary:
    total_trades: int = 0
    total_volume: float = 0.0
    total_fees: float = 0.0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    max_win: float = 0.0
    max_loss: float = 0.0
    best_asset: str = ""
    worst_asset: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AdvancedInsights:
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    volatility: float = 0.0
    win_streak: int = 0
    loss_streak: int = 0
    best_trading_day: str = ""
    worst_trading_day: str = ""
    average_trade_duration: float = 0.0
    risk_score: float = 0.0
    diversification_score: float = 0.0
    concentration_risk: float = 0.0
    trend_direction: str = "neutral"
    momentum_score: float = 0.0
    volatility_forecast: float = 0.0
    recommendations: List[str] = field(default_factory=list)
    risk_warnings: List[str] = field(default_factory=list)
    calmar_ratio: float = 0.0
    sortino_ratio: float = 0.0
    var95: float = 0.0
    expected_shortfall: float = 0.0

    @classmethod
    def empty(cls) -> AdvancedInsights:
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MonthlyPerformance:
    month: str
    trades: int
    pnl: float
    volume: float
    win_rate: float
    sharpe_ratio: float
    max_drawdown: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AssetPerformance:
    asset: str
    total_trades: int
    total_pnl: float
    win_rate: float
    avg_return: float
    volatility: float
    sharpe_ratio: float
    max_drawdown: float
    correlation: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RiskMetrics:
    portfolio: Dict[str, float] = field(
        default_factory=lambda: {
            "var95": 0.0,
            "expected_shortfall": 0.0,
            "max_drawdown": 0.0,
            "volatility": 0.0,
            "sharpe_ratio": 0.0,
        }
    )
    assets: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"portfolio": dict(self.portfolio), "assets": {k: dict(v) for k, v in self.assets.items()}}


@dataclass
class ExportData:
    trades: List[LedgerEntry]
    summary: TradeSummary
    insights: AdvancedInsights
    monthly: List[MonthlyPerformance]
    assets: List[AssetPerformance]
    risk: RiskMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trades": [t.to_dict() for t in self.trades],
            "summary": self.summary.to_dict(),
            "insights": self.insights.to_dict(),
            "monthly": [m.to_dict() for m in self.monthly],
            "assets": [a.to_dict() for a in self.assets],
            "risk": self.risk.to_dict(),
        }


# --- Detector output -------------------------------------------------------


@dataclass(frozen=True)
class StandardTrades:
    records: List[Any]
    label: str = "standard-trades"


@dataclass(frozen=True)
class RoundTrips:
    records: List[Any]
    label: str = "round-trip"


@dataclass(frozen=True)
class Unrecognized:
    records: List[Any]
    label: str = "unknown"
    first_keys: Optional[List[str]] = None


Parsed = Union[StandardTrades, RoundTrips, Unrecognized]
