"""SOL/USD quote source used to express base-unit PnL in the quote currency.

The REST endpoint is tried first, then an exchange ticker through ccxt. Callers
that only need a number use ``current_price()``, which never raises.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Optional

import ccxt  # type: ignore
import requests

import config

__all__ = ["PriceFeedError", "SolPriceFeed", "PricePoller"]

logger = logging.getLogger(__name__)


class PriceFeedError(RuntimeError):
    """Raised when no price source returned a usable quote."""


def _valid_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


class SolPriceFeed:
    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        exchange: Optional[Any] = None,
        url: Optional[str] = None,
        symbol: Optional[str] = None,
        quote: Optional[str] = None,
        timeout: Optional[float] = None,
        fallback: Optional[float] = None,
    ) -> None:
        self.session = session or requests.Session()
        self._exchange = exchange
        self.url = url or config.PRICE_FEED_URL
        self.symbol = symbol or config.PRICE_SYMBOL
        self.quote = (quote or config.QUOTE_CURRENCY).upper()
        self.timeout = config.PRICE_TIMEOUT_SEC if timeout is None else float(timeout)
        self.fallback = config.SOL_PRICE_FALLBACK_USD if fallback is None else float(fallback)
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def exchange(self) -> Any:
        if self._exchange is None:
            factory = getattr(ccxt, config.PRICE_EXCHANGE_ID)
            self._exchange = factory({"enableRateLimit": True})
        return self._exchange

    @property
    def last_price(self) -> Optional[float]:
        with self._lock:
            return self._last

    def _from_rest(self) -> float:
        resp = self.session.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        payload = resp.json()
        price = _valid_price(payload.get(self.quote)) if isinstance(payload, dict) else None
        if price is None:
            raise PriceFeedError(f"No {self.quote} quote in response from {self.url}")
        return price

    def _from_exchange(self) -> float:
        ticker = self.exchange.fetch_ticker(self.symbol)
        price = _valid_price((ticker or {}).get("last"))
        if price is None:
            raise PriceFeedError(f"No last price in {self.symbol} ticker")
        return price

    def fetch(self) -> float:
        """Fetch a fresh quote, raising ``PriceFeedError`` when every source fails."""
        errors = []
        for name, source in (("rest", self._from_rest), ("exchange", self._from_exchange)):
            try:
                price = source()
            except (requests.RequestException, ccxt.BaseError, PriceFeedError, ValueError, AttributeError) as exc:
                logger.warning("Price source %s failed: %s", name, exc)
                errors.append(f"{name}: {exc}")
                continue
            with self._lock:
                self._last = price
            logger.debug("SOL price %.4f from %s", price, name)
            return price
        raise PriceFeedError("All price sources failed (" + "; ".join(errors) + ")")

    def current_price(self) -> float:
        try:
            return self.fetch()
        except PriceFeedError:
            last = self.last_price
            if last is not None:
                return last
            logger.warning("Using fallback SOL price %.4f", self.fallback)
            return self.fallback


class PricePoller:
    """Refreshes ``feed`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, feed: SolPriceFeed, interval: Optional[float] = None) -> None:
        self.feed = feed
        self.interval = float(config.PRICE_POLL_SEC if interval is None else interval)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def price(self) -> float:
        last = self.feed.last_price
        return self.feed.fallback if last is None else last

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()

        def _worker() -> None:
            while not self._stop.is_set():
                try:
                    self.feed.fetch()
                except PriceFeedError as exc:
                    logger.warning("Price poll failed: %s", exc)
                self._stop.wait(self.interval)

        thread = threading.Thread(target=_worker, name="sol-price-poller", daemon=True)
        thread.start()
        self._thread = thread

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
