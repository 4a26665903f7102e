# Overview: Exchange rate cache and currency conversion.

"""
Currency Conversion

ExchangeRateCache holds one rate table (rates, fetched_at, base) and expires
it after a TTL. CurrencyConverter reads through the cache to a rate fetcher;
when the provider is unreachable it serves a fixed fallback table, which is
never cached so the next call tries the provider again.

One converter is built per app in create_app() and kept in
app.extensions["currency_converter"]; tests inject their own clock and
fetcher.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable

import httpx
from flask import current_app

from ..errors import RateUnavailableError, UpstreamFailureError
from ..money import round_money, to_decimal

logger = logging.getLogger(__name__)

FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.85,
    "GBP": 0.73,
    "JPY": 110.0,
    "CAD": 1.25,
    "AUD": 1.35,
    "INR": 83.0,
    "CNY": 7.1,
}
FALLBACK_BASE = "USD"


@dataclass(frozen=True)
class RateTable:
    base: str
    rates: dict[str, float]
    date: str
    source: str = "provider"

    def to_dict(self) -> dict:
        return {"base": self.base, "rates": dict(self.rates), "date": self.date, "source": self.source}


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    converted_amount: Decimal
    rate: Decimal
    from_currency: str
    to_currency: str

    def to_dict(self) -> dict:
        return {
            "amount": float(self.amount),
            "converted_amount": float(self.converted_amount),
            "rate": float(self.rate),
            "from": self.from_currency,
            "to": self.to_currency,
        }


class ExchangeRateCache:
    """Single-entry cache: (table, fetched_at, base) with a TTL."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._table: RateTable | None = None
        self._fetched_at: float | None = None

    def get(self, base: str) -> RateTable | None:
        with self._lock:
            if self._table is None or self._fetched_at is None:
                return None
            if self._table.base != base:
                return None
            if self._clock() - self._fetched_at >= self.ttl_seconds:
                return None
            return self._table

    def put(self, table: RateTable) -> None:
        with self._lock:
            self._table = table
            self._fetched_at = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._table = None
            self._fetched_at = None


class HttpRateFetcher:
    """GET {api_url}/{base} -> {"base": ..., "rates": {...}, "date": ...}"""

    def __init__(self, api_url: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def __call__(self, base: str) -> RateTable:
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(f"{self.api_url}/{base}")
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(f"Rate provider request failed: {exc.__class__.__name__}")

        if not response.is_success:
            raise UpstreamFailureError(f"Rate provider error: {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamFailureError("Rate provider response is not valid JSON")

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise UpstreamFailureError("Rate provider response has no rates")

        parsed = {}
        for code, value in rates.items():
            try:
                rate = to_decimal(value)
            except ValueError:
                raise UpstreamFailureError(f"Rate provider returned a non-numeric rate for {code}")
            if rate <= 0:
                raise UpstreamFailureError(f"Rate provider returned a non-positive rate for {code}")
            parsed[str(code).upper()] = float(rate)

        return RateTable(
            base=str(payload.get("base") or base).upper(),
            rates=parsed,
            date=str(payload.get("date") or date.today().isoformat()),
        )


def fallback_table(base: str) -> RateTable:
    """
    Fixed rates dated today. Re-based when base is a non-USD code in the
    table; an unknown base gets the USD table unchanged.
    """
    rates = dict(FALLBACK_RATES)
    table_base = FALLBACK_BASE
    if base != FALLBACK_BASE and base in FALLBACK_RATES:
        divisor = Decimal(str(FALLBACK_RATES[base]))
        rates = {
            code: float(Decimal(str(value)) / divisor)
            for code, value in FALLBACK_RATES.items()
        }
        rates[base] = 1.0
        table_base = base
    return RateTable(base=table_base, rates=rates, date=date.today().isoformat(), source="fallback")


class CurrencyConverter:
    def __init__(self, cache: ExchangeRateCache, fetcher: Callable[[str], RateTable]):
        self.cache = cache
        self.fetcher = fetcher

    def get_rates(self, base: str = "USD") -> RateTable:
        base = base.upper()
        cached = self.cache.get(base)
        if cached is not None:
            return cached

        try:
            table = self.fetcher(base)
        except UpstreamFailureError as exc:
            logger.warning("Exchange rate provider unavailable for %s, using fallback rates: %s", base, exc.message)
            return fallback_table(base)

        self.cache.put(table)
        return table

    def convert(self, amount, from_currency: str, to_currency: str) -> ConversionResult:
        """
        Convert amount, rounding to 2 decimals half-up.

        Raises:
            ValueError: amount is not a number
            RateUnavailableError: to_currency is not in the rate table for from_currency
        """
        value = to_decimal(amount)
        source = from_currency.upper()
        target = to_currency.upper()

        if source == target:
            return ConversionResult(value, round_money(value), Decimal(1), source, target)

        table = self.get_rates(source)
        raw_rate = table.rates.get(target)
        if raw_rate is None:
            raise RateUnavailableError(
                f"Exchange rate not available for {target}",
                {"from": source, "to": target},
            )

        rate = Decimal(str(raw_rate))
        return ConversionResult(value, round_money(value * rate), rate, source, target)


def build_converter(config, transport: httpx.BaseTransport | None = None) -> CurrencyConverter:
    cache = ExchangeRateCache(ttl_seconds=float(config.get("EXCHANGE_RATE_CACHE_SECONDS", 3600)))
    fetcher = HttpRateFetcher(
        config.get("EXCHANGE_RATE_API_URL", "https://api.exchangerate-api.com/v4/latest"),
        timeout=float(config.get("EXCHANGE_RATE_TIMEOUT_SECONDS", 10)),
        transport=transport,
    )
    return CurrencyConverter(cache, fetcher)


def get_converter() -> CurrencyConverter:
    return current_app.extensions["currency_converter"]
