"""Classify pasted journal JSON into one of the supported shapes.

Only the first record decides the shape; the normalizer then validates every
record against it, so a mixed array fails validation instead of being
silently misread.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, List, Sequence, Tuple

from .errors import ParseError
from .models import Parsed, RoundTrips, StandardTrades, Unrecognized

__all__ = [
    "STANDARD_KEYS",
    "ROUND_TRIP_KEYS",
    "load_records",
    "detect",
    "detect_records",
    "classify",
]

logger = logging.getLogger(__name__)

STANDARD_KEYS = ("date", "asset", "side", "quantity", "price")
ROUND_TRIP_KEYS = ("pnlSol", "solInvested", "timestamp", "tokenName")


def load_records(text: str) -> List[Any]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array of trades, got {type(data).__name__}")
    if not data:
        raise ParseError("Expected a non-empty JSON array of trades")
    return data


def _has_keys(record: Any, keys: Sequence[str]) -> bool:
    return isinstance(record, dict) and all(key in record for key in keys)


_SCHEMAS: Tuple[Tuple[Sequence[str], Callable[[List[Any]], Parsed]], ...] = (
    (STANDARD_KEYS, StandardTrades),
    (ROUND_TRIP_KEYS, RoundTrips),
)


def detect_records(records: List[Any]) -> Parsed:
    first = records[0] if records else None
    for keys, variant in _SCHEMAS:
        if _has_keys(first, keys):
            parsed = variant(records)
            logger.debug("Detected %s journal with %d record(s)", parsed.label, len(records))
            return parsed
    first_keys = sorted(first.keys()) if isinstance(first, dict) else None
    return Unrecognized(records, first_keys=first_keys)


def detect(text: str) -> Parsed:
    return detect_records(load_records(text))


def classify(text: str) -> str:
    return detect(text).label
