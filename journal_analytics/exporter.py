from __future__ import annotations

import csv
import io
import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from tabulate import tabulate

import config
from .heuristics import RiskHeuristics
from .models import (
    AdvancedInsights,
    AssetPerformance,
    ExportData,
    LedgerEntry,
    MonthlyPerformance,
    RiskMetrics,
    TradeSummary,
)

__all__ = ["SECTIONS", "to_csv", "to_json", "render_report", "write_outputs"]

logger = logging.getLogger(__name__)

SECTIONS = ("trades", "summary", "insights", "monthly", "assets", "risk", "all")
_ALL_ORDER = ("summary", "insights", "monthly", "assets", "risk", "trades")


def _money(value: float) -> str:
    return f"{value:.2f}"


def _ratio(value: float) -> str:
    return f"{value:.4f}"


def _csv(rows: Sequence[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows([[str(cell) for cell in row] for row in rows])
    return buffer.getvalue().rstrip("\n")


def _trades_rows(trades: Sequence[LedgerEntry]) -> List[List[Any]]:
    rows: List[List[Any]] = [["Date", "Asset", "Side", "Quantity", "Price", "Total", "Fees", "PnL"]]
    for t in trades:
        rows.append([t.iso_date, t.asset, t.side, t.quantity, t.price, t.volume, t.fee, t.realized_pnl])
    return rows


def _summary_rows(summary: TradeSummary) -> List[List[Any]]:
    return [
        ["Metric", "Value"],
        ["Total Trades", summary.total_trades],
        ["Total Volume", summary.total_volume],
        ["Total Fees", summary.total_fees],
        ["Total PnL", summary.total_pnl],
        ["Win Rate (%)", _money(summary.win_rate)],
        ["Average Win", _money(summary.avg_win)],
        ["Average Loss", _money(summary.avg_loss)],
        ["Max Win", _money(summary.max_win)],
        ["Max Loss", _money(summary.max_loss)],
        ["Best Asset", summary.best_asset],
        ["Worst Asset", summary.worst_asset],
    ]


def _insights_rows(insights: AdvancedInsights) -> List[List[Any]]:
    rows: List[List[Any]] = [
        ["Advanced Metric", "Value"],
        ["Sharpe Ratio", _ratio(insights.sharpe_ratio)],
        ["Max Drawdown", _money(insights.max_drawdown)],
        ["Volatility", _ratio(insights.volatility)],
        ["Win Streak", insights.win_streak],
        ["Loss Streak", insights.loss_streak],
        ["Best Day", insights.best_trading_day],
        ["Worst Day", insights.worst_trading_day],
        ["Average Trade Duration (days)", _money(insights.average_trade_duration)],
        ["Risk Score", _money(insights.risk_score)],
        ["Diversification Score", _money(insights.diversification_score)],
        ["Concentration Risk", _money(insights.concentration_risk)],
        ["Trend Direction", insights.trend_direction],
        ["Momentum Score", _ratio(insights.momentum_score)],
        ["Volatility Forecast", _ratio(insights.volatility_forecast)],
        ["Calmar Ratio", _ratio(insights.calmar_ratio)],
        ["Sortino Ratio", _ratio(insights.sortino_ratio)],
        ["VaR 95%", _money(insights.var95)],
        ["Expected Shortfall", _money(insights.expected_shortfall)],
        ["", ""],
        ["Recommendations", ""],
    ]
    rows.extend([f"Recommendation {i}", rec] for i, rec in enumerate(insights.recommendations, 1))
    rows.extend([["", ""], ["Risk Warnings", ""]])
    rows.extend([f"Warning {i}", warning] for i, warning in enumerate(insights.risk_warnings, 1))
    return rows


def _monthly_rows(monthly: Sequence[MonthlyPerformance]) -> List[List[Any]]:
    rows: List[List[Any]] = [["Month", "Trades", "PnL", "Volume", "Win Rate (%)", "Sharpe Ratio", "Max Drawdown"]]
    for m in monthly:
        rows.append(
            [
                m.month,
                m.trades,
                _money(m.pnl),
                _money(m.volume),
                _money(m.win_rate),
                _ratio(m.sharpe_ratio),
                _money(m.max_drawdown),
            ]
        )
    return rows


def _assets_rows(assets: Sequence[AssetPerformance]) -> List[List[Any]]:
    rows: List[List[Any]] = [
        [
            "Asset",
            "Total Trades",
            "Total PnL",
            "Win Rate (%)",
            "Average Return",
            "Volatility",
            "Sharpe Ratio",
            "Max Drawdown",
            "Correlation",
        ]
    ]
    for a in assets:
        rows.append(
            [
                a.asset,
                a.total_trades,
                _money(a.total_pnl),
                _money(a.win_rate),
                _ratio(a.avg_return),
                _ratio(a.volatility),
                _ratio(a.sharpe_ratio),
                _money(a.max_drawdown),
                _ratio(a.correlation),
            ]
        )
    return rows


def _risk_rows(risk: RiskMetrics) -> List[List[Any]]:
    p = risk.portfolio
    rows: List[List[Any]] = [
        ["Risk Metric", "Value"],
        ["", ""],
        ["PORTFOLIO", ""],
        ["VaR 95%", _money(p["var95"])],
        ["Expected Shortfall", _money(p["expected_shortfall"])],
        ["Max Drawdown", _money(p["max_drawdown"])],
        ["Volatility", _ratio(p["volatility"])],
        ["Sharpe Ratio", _ratio(p["sharpe_ratio"])],
        ["", ""],
        ["ASSETS", ""],
        ["Asset", "VaR 95%", "Volatility", "Beta"],
    ]
    for asset, metrics in risk.assets.items():
        rows.append([asset, _money(metrics["var95"]), _ratio(metrics["volatility"]), _ratio(metrics["beta"])])
    return rows


def _section_rows(data: ExportData, section: str) -> List[List[Any]]:
    if section == "trades":
        return _trades_rows(data.trades)
    if section == "summary":
        return _summary_rows(data.summary)
    if section == "insights":
        return _insights_rows(data.insights)
    if section == "monthly":
        return _monthly_rows(data.monthly)
    if section == "assets":
        return _assets_rows(data.assets)
    if section == "risk":
        return _risk_rows(data.risk)
    raise ValueError(f"Unknown export section {section!r}; expected one of {', '.join(SECTIONS)}")


def to_csv(data: ExportData, section: str = "all") -> str:
    """Render one section (or every section, titled) as fully quoted CSV."""
    if section == "all":
        blocks = [f"=== {name.upper()} ===\n{_csv(_section_rows(data, name))}\n" for name in _ALL_ORDER]
        return "\n".join(blocks)
    return _csv(_section_rows(data, section))


def _clean_for_json(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _clean_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_clean_for_json(v) for v in obj]
    if isinstance(obj, (np.generic,)):
        return _clean_for_json(obj.item())
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    return obj


def to_json(data: ExportData, extra: Optional[Dict[str, Any]] = None) -> str:
    payload = data.to_dict()
    if extra:
        payload.update(extra)
    return json.dumps(_clean_for_json(payload), indent=2)


def _fmt(value: Any) -> str:
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return "n/a"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _bullets(items: Sequence[str], empty: str) -> List[str]:
    if not items:
        return [f"- {empty}"]
    return [f"- {item}" for item in items]


def render_report(
    data: ExportData,
    unit: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    heuristics: Optional[RiskHeuristics] = None,
) -> str:
    unit = unit or config.BASE_UNIT
    generated_at = generated_at or datetime.now(timezone.utc)
    rules = heuristics or RiskHeuristics()
    s = data.summary
    i = data.insights

    monthly_table = tabulate(
        [[m.month, m.trades, _fmt(m.pnl), _fmt(m.volume), f"{m.win_rate:.1f}%"] for m in data.monthly],
        headers=["month", "trades", "pnl", "volume", "win_rate"],
        tablefmt="github",
    )
    asset_table = tabulate(
        [[a.asset, a.total_trades, _fmt(a.total_pnl), f"{a.win_rate:.1f}%", f"{a.sharpe_ratio:.3f}"] for a in data.assets],
        headers=["asset", "trades", "pnl", "win_rate", "sharpe"],
        tablefmt="github",
    )

    diversification = (
        "Insufficient diversification"
        if i.diversification_score < rules.MIN_DIVERSIFICATION
        else "Good diversification"
    )
    concentration = (
        "Excessive concentration" if i.concentration_risk > rules.MAX_CONCENTRATION else "Acceptable concentration"
    )
    momentum = "Positive" if i.momentum_score > 0 else "Negative"

    md = [
        "# Trade Journal Analysis Report",
        "",
        "## Executive Summary",
        "",
        f"- **Total PnL**: {s.total_pnl:.2f} {unit}",
        f"- **Total Volume**: {s.total_volume:.2f} {unit}",
        f"- **Trades**: {s.total_trades}",
        f"- **Win Rate**: {s.win_rate:.1f}%",
        f"- **Sharpe Ratio**: {i.sharpe_ratio:.3f}",
        f"- **Maximum Drawdown**: {i.max_drawdown:.2f} {unit}",
        f"- **Risk Level**: {rules.risk_level(s)}",
        "",
        "## Performance",
        "",
        f"- **Average Win**: {s.avg_win:.2f} {unit}",
        f"- **Average Loss**: {s.avg_loss:.2f} {unit}",
        f"- **Best Trade**: {s.max_win:.2f} {unit}",
        f"- **Worst Trade**: {s.max_loss:.2f} {unit}",
        f"- **Best Asset**: {s.best_asset or 'n/a'}",
        f"- **Worst Asset**: {s.worst_asset or 'n/a'}",
        "",
        "### Sequences",
        "",
        f"- **Win Streak**: {i.win_streak} trades",
        f"- **Loss Streak**: {i.loss_streak} trades",
        "",
        "## Risk Analysis",
        "",
        f"### Risk Score: {i.risk_score:.1f}/100",
        rules.risk_label(i.risk_score),
        "",
        f"### Diversification: {i.diversification_score:.1f}/100",
        diversification,
        "",
        f"### Concentration: {i.concentration_risk:.1f}%",
        concentration,
        "",
        "## Trends",
        "",
        f"- **Direction**: {i.trend_direction.capitalize()}",
        f"- **Momentum**: {momentum}",
        f"- **Forecasted Volatility**: {i.volatility_forecast:.4f}",
        "",
        "## Recommendations",
        "",
        *_bullets(i.recommendations, "None."),
        "",
        "## Warnings",
        "",
        *_bullets(i.risk_warnings, "None."),
        "",
        "## Advanced Metrics",
        "",
        f"- **Calmar Ratio**: {i.calmar_ratio:.3f}",
        f"- **Sortino Ratio**: {i.sortino_ratio:.3f}",
        f"- **VaR 95%**: {i.var95:.2f} {unit}",
        f"- **Expected Shortfall**: {i.expected_shortfall:.2f} {unit}",
        "",
        "## Monthly Performance",
        monthly_table if data.monthly else "- No monthly data.",
        "",
        "## Assets",
        asset_table if data.assets else "- No asset data.",
        "",
        "---",
        f"*Report generated on {generated_at.strftime('%Y-%m-%d')}*",
    ]
    return "\n".join(md) + "\n"


def write_outputs(
    data: ExportData,
    out_dir: Path,
    *,
    unit: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)

    now = datetime.now(timezone.utc)
    timestamp = now.strftime("%Y%m%d-%H%M%S")
    json_path = out_dir / f"{timestamp}-journal.json"
    markdown_path = out_dir / f"{timestamp}-report.md"
    csv_path = out_dir / "latest.csv"

    json_text = to_json(data, extra)
    json_path.write_text(json_text + "\n", encoding="utf-8")
    latest_json = out_dir / "latest-journal.json"
    latest_json.write_text(json_text + "\n", encoding="utf-8")

    csv_path.write_text(to_csv(data, "trades") + "\n", encoding="utf-8")

    markdown = render_report(data, unit=unit, generated_at=now)
    markdown_path.write_text(markdown, encoding="utf-8")
    latest_markdown = out_dir / "latest-report.md"
    latest_markdown.write_text(markdown, encoding="utf-8")

    outputs = {
        "json": json_path,
        "latest_json": latest_json,
        "markdown": markdown_path,
        "latest_md": latest_markdown,
        "csv": csv_path,
    }
    for section in ("summary", "insights", "monthly", "assets", "risk"):
        path = out_dir / f"latest-{section}.csv"
        path.write_text(to_csv(data, section) + "\n", encoding="utf-8")
        outputs[f"{section}_csv"] = path

    logger.debug("Wrote %d output files to %s", len(outputs), out_dir)
    return outputs
