"""
FX cache — exchange rates per base currency with a 12-hour TTL.

Rates come from an injected fetcher (by default an HTTP call to the
Frankfurter API).  One fetch per base currency per TTL window; when a
fetch fails the previous rates (or none) stay in use and the base is not
tried again until the shorter retry window has passed.  FxCache.get_rate is the
rate_lookup the price normalizer expects.

Public API:
    fetch_rates(base, timeout) → dict[str, float]
    FxCache(fetcher, ttl_seconds, retry_seconds, clock)
    StaticRates(rates, base)
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import requests

from config.settings import (
    BASE_CURRENCY, FX_API_URL, FX_CACHE_TTL_SECONDS,
    FX_RETRY_SECONDS, FX_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

RateFetcher = Callable[[str], dict[str, float]]


def fetch_rates(base: str, timeout: float = FX_TIMEOUT_SECONDS) -> dict[str, float]:
    """
    Fetch the latest rates for *base* from the exchange-rate API.

    Returns:
        currency → rate, where 1 *base* = rate × currency.

    Raises:
        requests.RequestException: On network or HTTP errors.
        ValueError: If the response carries no rates.
    """
    response = requests.get(FX_API_URL, params={"from": base}, timeout=timeout)
    response.raise_for_status()
    rates = response.json().get("rates")
    if not isinstance(rates, dict):
        raise ValueError(f"No rates in exchange-rate response for {base}")
    return {currency.upper(): float(rate) for currency, rate in rates.items()}


@dataclass
class _CacheEntry:
    rates: dict[str, float]
    fetched_at: float
    failed: bool = False


class FxCache:
    """
    TTL-cached rate store keyed by base currency.

    Args:
        fetcher: Callable base → {currency: rate}.
        ttl_seconds: How long fetched rates are reused.
        retry_seconds: How long a failed fetch is remembered before retrying.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        fetcher: RateFetcher = fetch_rates,
        ttl_seconds: float = FX_CACHE_TTL_SECONDS,
        retry_seconds: float = FX_RETRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.ttl_seconds = ttl_seconds
        self.retry_seconds = retry_seconds
        self.clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def load_rates(self, base: str) -> dict[str, float]:
        """
        Return rates for *base*, fetching on a miss or after expiry.

        A failed refresh keeps the stale rates; a failed first fetch
        returns an empty dict.  Either way the failure is cached for
        retry_seconds so an outage costs one fetch per window.  Errors
        are logged, never raised.
        """
        base = base.upper()
        now = self.clock()
        entry = self._entries.get(base)
        if entry is not None:
            lifetime = self.retry_seconds if entry.failed else self.ttl_seconds
            if now - entry.fetched_at < lifetime:
                return entry.rates

        try:
            rates = self.fetcher(base)
        except Exception as exc:
            stale = entry.rates if entry is not None else {}
            if stale:
                logger.warning(f"Refreshing {base} rates failed ({exc}) — using stale rates")
            else:
                logger.error(f"Loading {base} rates failed: {exc}")
            self._entries[base] = _CacheEntry(rates=stale, fetched_at=now, failed=True)
            return stale

        self._entries[base] = _CacheEntry(rates=dict(rates), fetched_at=now)
        logger.info(f"Loaded {len(rates)} exchange rates for {base}")
        return self._entries[base].rates

    def get_rate(self, from_currency: str, to_currency: str) -> float | None:
        """Rate converting 1 *from_currency* into *to_currency*, or None."""
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return 1.0
        rate = self.load_rates(from_currency).get(to_currency)
        if rate is None:
            logger.debug(f"No rate {from_currency} → {to_currency}")
        return rate

    def convert_amount(self, amount: float, from_currency: str, to_currency: str) -> float:
        """Convert *amount*; returned unchanged when no rate is available."""
        rate = self.get_rate(from_currency, to_currency)
        if not rate:
            return amount
        return amount * rate

    def cached_bases(self) -> list[str]:
        """Bases that currently hold rates; remembered failures are left out."""
        return sorted(base for base, entry in self._entries.items() if entry.rates)

    def clear(self) -> None:
        self._entries.clear()


class StaticRates:
    """
    Fixed rates for offline use.

    Args:
        rates: currency → how many *base* units one unit of it is worth,
               e.g. {"USD": 1.5} with base "AUD".
        base: The currency the rates are expressed in.
    """

    def __init__(self, rates: dict[str, float], base: str = BASE_CURRENCY) -> None:
        self.base = base.upper()
        self.rates = {currency.upper(): float(rate) for currency, rate in rates.items()}
        self.rates[self.base] = 1.0

    def get_rate(self, from_currency: str, to_currency: str) -> float | None:
        from_rate = self.rates.get(from_currency.upper())
        to_rate = self.rates.get(to_currency.upper())
        if from_rate is None or to_rate is None or to_rate == 0:
            return None
        return from_rate / to_rate
