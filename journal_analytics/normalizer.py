from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Any, List, Optional, Tuple

import pandas as pd

import config
from .errors import FormatError, ValidationError
from .models import (
    BUY,
    SELL,
    LedgerEntry,
    Parsed,
    RoundTripEntry,
    RoundTrips,
    StandardTrades,
    Unrecognized,
)

__all__ = ["normalize", "parse_round_trips", "parse_date_ms"]

logger = logging.getLogger(__name__)

ROUND_TRIP_SELL_OFFSET_MS = 1
ROUND_TRIP_LEG_PRICE = 1.0  # legs are valued in the base asset itself

# Latest instant the ledger frame can hold (nanosecond Timestamp bound).
MAX_TIMESTAMP_MS = pd.Timestamp.max.value // 1_000_000

_ISO_8601 = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}(?::?\d{2})?)?)?$",
    re.IGNORECASE,
)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_date_ms(value: Any) -> int:
    """ISO-8601 string to epoch milliseconds; naive timestamps are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date must be a non-empty ISO-8601 string")
    text = value.strip()
    # pandas also accepts relative words like "now"; only calendar text gets through
    if not _ISO_8601.match(text):
        raise ValueError(f"date {value!r} is not an ISO-8601 timestamp")
    ts = pd.Timestamp(text)
    if pd.isna(ts):
        raise ValueError(f"unparseable date {value!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    try:
        return int(ts.value // 1_000_000)
    except OverflowError as exc:
        raise ValueError(f"date {value!r} is out of range") from exc


def _standard_entry(index: int, record: Any) -> Tuple[Optional[LedgerEntry], List[str]]:
    where = f"Trade at index {index}"
    if not isinstance(record, dict):
        return None, [f"{where}: expected an object"]

    issues: List[str] = []
    missing = [key for key in ("date", "asset", "side", "quantity", "price") if key not in record]
    if missing:
        return None, [f"{where}: missing required field(s) {', '.join(missing)}"]

    timestamp = 0
    try:
        timestamp = parse_date_ms(record["date"])
    except ValueError as exc:
        issues.append(f"{where}: {exc}")

    asset = record["asset"]
    if not isinstance(asset, str) or not asset.strip():
        issues.append(f"{where}: asset must be a non-empty string")

    side = record["side"]
    if side not in (BUY, SELL):
        issues.append(f"{where}: side must be 'buy' or 'sell'")

    quantity = record["quantity"]
    if not _is_number(quantity) or quantity <= 0:
        issues.append(f"{where}: quantity must be a number > 0")

    price = record["price"]
    if not _is_number(price) or price <= 0:
        issues.append(f"{where}: price must be a number > 0")

    fees = record.get("fees", 0)
    if fees is None:
        fees = 0
    if not _is_number(fees) or fees < 0:
        issues.append(f"{where}: fees must be a number >= 0")

    if issues:
        return None, issues
    entry = LedgerEntry(
        timestamp=timestamp,
        asset=asset.strip(),
        side=side,
        quantity=float(quantity),
        price=float(price),
        fee=float(fees),
    )
    return entry, []


def _round_trip_entry(index: int, record: Any) -> Tuple[Optional[RoundTripEntry], List[str]]:
    where = f"Round trip at index {index}"
    if not isinstance(record, dict):
        return None, [f"{where}: expected an object"]

    missing = [
        key for key in ("pnlSol", "solInvested", "solReceived", "timestamp", "tokenName") if key not in record
    ]
    if missing:
        return None, [f"{where}: missing required field(s) {', '.join(missing)}"]

    issues: List[str] = []
    if not _is_number(record["pnlSol"]):
        issues.append(f"{where}: pnlSol must be a number")
    if not _is_number(record["solInvested"]) or record["solInvested"] <= 0:
        issues.append(f"{where}: solInvested must be a number > 0")
    if not _is_number(record["solReceived"]) or record["solReceived"] < 0:
        issues.append(f"{where}: solReceived must be a number >= 0")
    stamp = record["timestamp"]
    if not _is_number(stamp) or stamp <= 0:
        issues.append(f"{where}: timestamp must be a positive epoch-ms number")
    elif stamp >= MAX_TIMESTAMP_MS:
        issues.append(f"{where}: timestamp {stamp!r} is out of range")
    token = record["tokenName"]
    if not isinstance(token, str) or not token.strip():
        issues.append(f"{where}: tokenName must be a non-empty string")

    if issues:
        return None, issues
    return (
        RoundTripEntry(
            token_name=token.strip(),
            pnl_base=float(record["pnlSol"]),
            base_invested=float(record["solInvested"]),
            base_received=float(record["solReceived"]),
            timestamp=int(record["timestamp"]),
        ),
        [],
    )


def _collect(parsed: Parsed, builder) -> List[Any]:
    items: List[Any] = []
    errors: List[str] = []
    for index, record in enumerate(parsed.records):
        item, issues = builder(index, record)
        if issues:
            errors.extend(issues)
        else:
            items.append(item)
    if errors:
        logger.debug("Rejected %s payload: %d issue(s)", parsed.label, len(errors))
        raise ValidationError(errors, limit=config.MAX_REPORTED_ERRORS, label=parsed.label)
    return items


def parse_round_trips(parsed: RoundTrips) -> List[RoundTripEntry]:
    return _collect(parsed, _round_trip_entry)


def _round_trip_legs(trip: RoundTripEntry, leg_fee: float) -> List[LedgerEntry]:
    """Buy leg at ``t`` and sell leg at ``t + 1 ms`` carrying the reported PnL.

    A trip that received nothing back has no sell quantity, so its single buy
    leg carries the PnL instead of a zero-quantity sell.
    """
    buy = LedgerEntry(
        timestamp=trip.timestamp,
        asset=trip.token_name,
        side=BUY,
        quantity=trip.base_invested,
        price=ROUND_TRIP_LEG_PRICE,
        fee=leg_fee,
        realized_pnl=0.0,
    )
    if trip.base_received <= 0:
        return [replace(buy, realized_pnl=trip.pnl_base)]
    sell = LedgerEntry(
        timestamp=trip.timestamp + ROUND_TRIP_SELL_OFFSET_MS,
        asset=trip.token_name,
        side=SELL,
        quantity=trip.base_received,
        price=ROUND_TRIP_LEG_PRICE,
        fee=leg_fee,
        realized_pnl=trip.pnl_base,
    )
    return [buy, sell]


def normalize(parsed: Parsed, *, leg_fee: Optional[float] = None) -> List[LedgerEntry]:
    """Convert a detected payload into ledger entries, in input order.

    Standard trades come back with ``realized_pnl == 0``; the position tracker
    fills it in. Round trips expand into a buy leg and a sell leg carrying the
    reported PnL.
    """
    if isinstance(parsed, Unrecognized):
        keys = ", ".join(parsed.first_keys or []) or "none"
        raise FormatError(
            "Unrecognized journal format (first record keys: "
            f"{keys}). Use the standard trade list or the round-trip export."
        )
    if isinstance(parsed, StandardTrades):
        return _collect(parsed, _standard_entry)
    if isinstance(parsed, RoundTrips):
        fee = config.ROUND_TRIP_LEG_FEE if leg_fee is None else float(leg_fee)
        entries: List[LedgerEntry] = []
        for trip in parse_round_trips(parsed):
            entries.extend(_round_trip_legs(trip, fee))
        return entries
    raise FormatError(f"Unsupported parsed payload: {type(parsed).__name__}")
