from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from journal_analytics.models import LedgerEntry


@dataclass
class FakeResponse:
    payload: Any = None
    status_code: int = 200

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self) -> Any:
        return self.payload


@dataclass
class FakeSession:
    response: Optional[FakeResponse] = None
    error: Optional[Exception] = None
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def get(self, url: str, timeout: Optional[float] = None) -> FakeResponse:
        self.calls.append({"url": url, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response or FakeResponse()


@dataclass
class StubExchange:
    last: Optional[float] = None
    error: Optional[Exception] = None
    symbols: List[str] = field(default_factory=list)

    def fetch_ticker(self, symbol: str) -> Dict[str, Any]:
        self.symbols.append(symbol)
        if self.error is not None:
            raise self.error
        return {"symbol": symbol, "last": self.last}


def entry(ts: int, asset: str, side: str, qty: float, price: float, fee: float = 0.0, pnl: float = 0.0) -> LedgerEntry:
    return LedgerEntry(timestamp=ts, asset=asset, side=side, quantity=qty, price=price, fee=fee, realized_pnl=pnl)
