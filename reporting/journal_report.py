from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import config
from journal_analytics.aggregator import ResetBoundary
from journal_analytics.errors import JournalInputError
from journal_analytics.exporter import write_outputs
from journal_analytics.pipeline import analyze
from journal_analytics.positions import ReplayOrder
from journal_analytics.prices import SolPriceFeed

logger = logging.getLogger("reporting.journal_report")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze a pasted trade journal (JSON) and write reports.")
    parser.add_argument("--input", default="-", help="Path to the journal JSON file, or '-' for stdin")
    parser.add_argument("--out-dir", default=config.REPORTS_DIR, help="Directory to write reports into")
    parser.add_argument(
        "--replay-order",
        choices=[o.value for o in ReplayOrder],
        default=config.REPLAY_ORDER,
        help="Order used to replay positions for standard trade lists",
    )
    parser.add_argument(
        "--zero-fill",
        action=argparse.BooleanOptionalAction,
        default=config.ZERO_FILL_DAYS,
        help="Insert zero-PnL days between active days before computing daily statistics",
    )
    parser.add_argument(
        "--reset-boundary",
        choices=[b.value for b in ResetBoundary],
        default=ResetBoundary.NONE.value,
        help="Restart the cumulative PnL series at this boundary",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        default=config.VAR_CONFIDENCE,
        help="Confidence level for VaR / expected shortfall",
    )
    price = parser.add_mutually_exclusive_group()
    price.add_argument("--sol-price", type=float, help="SOL price in the quote currency")
    price.add_argument("--fetch-price", action="store_true", help="Fetch the current SOL price")
    parser.add_argument("--unit", default=config.BASE_UNIT, help="Unit label used in the Markdown report")
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL_STR,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="%(levelname)s %(message)s")

    if not 0.0 < args.confidence < 1.0:
        logger.error("--confidence must be in (0, 1), got %s", args.confidence)
        return 2

    try:
        text = _read_input(args.input)
    except OSError as exc:
        logger.error("Failed to read journal %s: %s", args.input, exc)
        return 2

    sol_price = args.sol_price
    if args.fetch_price:
        sol_price = SolPriceFeed().current_price()

    try:
        result = analyze(
            text,
            replay_order=args.replay_order,
            zero_fill=args.zero_fill,
            confidence=args.confidence,
            sol_price_usd=sol_price,
            reset_boundary=args.reset_boundary,
        )
    except JournalInputError as exc:
        logger.error("Journal rejected: %s", exc)
        return 2

    outputs = write_outputs(
        result.export_data(),
        Path(args.out_dir),
        unit=args.unit,
        extra={"format": result.format, "risk_level": result.risk_level, "sol_price_usd": result.sol_price_usd},
    )

    summary_line = (
        f"format={result.format} trades={result.summary.total_trades} "
        f"total_pnl={result.summary.total_pnl:.4f} "
        f"sharpe={result.insights.sharpe_ratio:.4f} "
        f"var95={result.insights.var95:.4f}"
    )
    print(summary_line)

    logger.info("Report written: %s", outputs["json"])
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
