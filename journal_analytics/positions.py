"""Weighted-average-cost position replay for standard trade lists.

The replay is a fold over the ledger: each step takes an immutable snapshot of
the per-asset positions and returns a new one, so a single asset's state
machine can be exercised in isolation through ``apply_trade``.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, replace
from functools import reduce
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import config
from .models import BUY, AssetPosition, LedgerEntry

__all__ = ["ReplayOrder", "Replay", "apply_trade", "replay"]

logger = logging.getLogger(__name__)


class ReplayOrder(str, enum.Enum):
    TIMESTAMP = "timestamp"
    INPUT = "input"


@dataclass(frozen=True)
class Replay:
    entries: List[LedgerEntry]
    positions: Mapping[str, AssetPosition]

    @property
    def total_realized_pnl(self) -> float:
        return sum(entry.realized_pnl for entry in self.entries)


def apply_trade(position: AssetPosition, entry: LedgerEntry) -> Tuple[AssetPosition, float]:
    """Return the position after ``entry`` and the PnL realized by it."""
    held = position.open_quantity
    if entry.side == BUY:
        new_qty = held + entry.quantity
        if held == 0:
            avg_cost = entry.price
        else:
            avg_cost = (held * position.average_cost + entry.quantity * entry.price) / new_qty
        return replace(position, open_quantity=new_qty, average_cost=avg_cost), 0.0

    if held >= entry.quantity:
        pnl = (entry.price - position.average_cost) * entry.quantity - entry.fee
        return replace(position, open_quantity=held - entry.quantity), pnl

    # No short modelling: only the held quantity is closed, the excess is dropped.
    pnl = (entry.price - position.average_cost) * held - entry.fee
    logger.warning(
        "OVERSELL %s",
        json.dumps(
            {
                "asset": entry.asset,
                "timestamp": entry.timestamp,
                "held": held,
                "sold": entry.quantity,
                "dropped": entry.quantity - held,
            },
            sort_keys=True,
        ),
    )
    return replace(position, open_quantity=0.0, average_cost=0.0), pnl


_State = Tuple[Mapping[str, AssetPosition], List[LedgerEntry]]


def _step(state: _State, entry: LedgerEntry) -> _State:
    book, done = state
    current = book.get(entry.asset) or AssetPosition(entry.asset)
    updated, pnl = apply_trade(current, entry)
    done.append(replace(entry, realized_pnl=pnl))
    return MappingProxyType({**book, entry.asset: updated}), done


def _resolve_order(order: Optional[Union[ReplayOrder, str]]) -> ReplayOrder:
    if order is None:
        order = config.REPLAY_ORDER
    return ReplayOrder(order)


def replay(
    entries: Sequence[LedgerEntry],
    order: Optional[Union[ReplayOrder, str]] = None,
) -> Replay:
    """Run the position state machine over ``entries``.

    With ``ReplayOrder.TIMESTAMP`` (default) entries are stably sorted by
    timestamp first; ``ReplayOrder.INPUT`` keeps the pasted order.
    """
    resolved = _resolve_order(order)
    ordered = list(entries)
    if resolved is ReplayOrder.TIMESTAMP:
        ordered.sort(key=lambda e: e.timestamp)
    initial: _State = (MappingProxyType({}), [])
    book, done = reduce(_step, ordered, initial)
    logger.debug("Replayed %d entries (%s order) across %d assets", len(done), resolved.value, len(book))
    return Replay(entries=done, positions=book)
