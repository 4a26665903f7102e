# Overview: HTTP client for supplier product lookups and the tolerant payload decoder.

"""
Supplier API client.

Contract: GET {api_base_url}/products/{sku} -> JSON object. Supplier payloads
are untrusted and partial; decode_supplier_payload() maps the known field
variants onto SupplierProductData and only rejects payloads that are
structurally unusable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from ..errors import UpstreamFailureError
from ..money import to_cents

CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


@dataclass(frozen=True)
class SupplierProductData:
    sku: str
    price_cents: int
    stock: int
    currency: str
    available: bool


def _first_present(payload: dict, *keys):
    # Zero and empty values fall through to the next variant
    for key in keys:
        value = payload.get(key)
        if value:
            return value
    return 0


def decode_supplier_payload(payload, sku: str) -> SupplierProductData:
    """
    Normalize a supplier response.

    price: "price" or "costPrice" (default 0)
    stock: "stock" or "quantity" (default 0)
    currency: default "USD"
    available: anything but an explicit false counts as available
    """
    if not isinstance(payload, dict):
        raise UpstreamFailureError("Supplier response is not a JSON object", {"sku": sku})

    raw_price = _first_present(payload, "price", "costPrice")
    raw_stock = _first_present(payload, "stock", "quantity")

    if isinstance(raw_price, bool):
        raise UpstreamFailureError("Supplier price is not numeric", {"sku": sku})
    try:
        price_cents = to_cents(raw_price)
    except (ArithmeticError, ValueError, TypeError):
        raise UpstreamFailureError("Supplier price is not numeric", {"sku": sku})

    if isinstance(raw_stock, bool):
        raise UpstreamFailureError("Supplier stock is not numeric", {"sku": sku})
    try:
        stock = int(float(raw_stock))
    except (ArithmeticError, ValueError, TypeError):
        raise UpstreamFailureError("Supplier stock is not numeric", {"sku": sku})

    currency = payload.get("currency") or "USD"
    if not isinstance(currency, str) or not CURRENCY_RE.match(currency.strip().upper()):
        raise UpstreamFailureError("Supplier currency is not an ISO code", {"sku": sku})

    return SupplierProductData(
        sku=str(payload.get("sku") or sku),
        price_cents=price_cents,
        stock=stock,
        currency=currency.strip().upper(),
        available=payload.get("available") is not False,
    )


class SupplierClient:
    """
    Thin httpx wrapper. Safe to share across worker threads.

    Every failure mode (timeout, connection error, non-2xx, non-JSON body)
    surfaces as UpstreamFailureError.
    """

    def __init__(self, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_config(cls, config, transport: httpx.BaseTransport | None = None) -> "SupplierClient":
        return cls(timeout=float(config.get("SUPPLIER_API_TIMEOUT_SECONDS", 10)), transport=transport)

    def product_url(self, api_base_url: str, sku: str) -> str:
        return f"{api_base_url.rstrip('/')}/products/{quote(sku, safe='')}"

    def fetch_product(self, api_base_url: str, sku: str) -> SupplierProductData:
        url = self.product_url(api_base_url, sku)
        try:
            response = self._client.get(url)
        except httpx.TimeoutException:
            raise UpstreamFailureError(f"Supplier API timed out after {self.timeout:g}s", {"sku": sku})
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(f"Supplier API request failed: {exc.__class__.__name__}", {"sku": sku})

        if not response.is_success:
            raise UpstreamFailureError(
                f"Supplier API error: {response.status_code}",
                {"sku": sku, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError:
            raise UpstreamFailureError("Supplier response is not valid JSON", {"sku": sku})

        return decode_supplier_payload(payload, sku)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SupplierClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
