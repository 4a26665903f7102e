# Overview: Service-layer operations for supplier price sync (single product and bulk).

"""
Supplier Sync Engine

Reconciles a product's cost price and currency with what its supplier's API
reports. Stock quantity is informational only: sync never writes stock_qty.

FAILURE MODEL:
- sync_product() raises NotFoundError / NotConfiguredError for bad input, but
  upstream failures come back as a failed SyncResult.
- sync_all() never raises for individual products. It returns exactly one
  SyncResult per eligible product, in product id order.

CONCURRENCY: sync_all() fans the HTTP lookups out on a bounded thread pool
(SUPPLIER_SYNC_MAX_WORKERS); database writes then happen sequentially in
input order, one transaction per product. No retries: one attempt per cycle.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotConfiguredError, NotFoundError, UpstreamFailureError
from ..extensions import db
from ..models import Product, Supplier
from ..models.inventory import PRICE_SOURCE_SUPPLIER_SYNC
from ..time_utils import utcnow
from ..validation import MAX_PRICE_CENTS
from .concurrency import run_with_retry
from .price_history_service import record_if_changed
from .supplier_client import SupplierClient, SupplierProductData

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    product_id: int
    success: bool
    product_name: str | None = None
    sku: str | None = None
    old_price_cents: int | None = None
    new_price_cents: int | None = None
    supplier_stock: int | None = None
    currency: str | None = None
    available: bool | None = None
    price_changed: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class _SyncTarget:
    product_id: int
    product_name: str
    sku: str
    api_base_url: str


def _failure(target: _SyncTarget, error: str) -> SyncResult:
    return SyncResult(
        product_id=target.product_id,
        product_name=target.product_name,
        sku=target.sku,
        success=False,
        error=error,
    )


def _fetch(client: SupplierClient, target: _SyncTarget) -> SupplierProductData | UpstreamFailureError:
    # Runs on worker threads: HTTP only, no database access
    try:
        return client.fetch_product(target.api_base_url, target.sku)
    except UpstreamFailureError as exc:
        return exc
    except Exception as exc:
        logger.exception("Unexpected error fetching supplier data for %s", target.sku)
        return UpstreamFailureError(f"Unexpected supplier error: {exc.__class__.__name__}")


def _apply(target: _SyncTarget, data: SupplierProductData) -> SyncResult:
    """Write the supplier's price/currency to the product in its own transaction."""
    if data.price_cents <= 0:
        return _failure(target, "Supplier reported a non-positive price")
    if data.price_cents > MAX_PRICE_CENTS:
        return _failure(target, "Supplier reported a price above the maximum")

    def _op() -> SyncResult:
        product = db.session.get(Product, target.product_id)
        if product is None:
            return _failure(target, "Product not found")

        old_price = product.cost_price_cents
        product.cost_price_cents = data.price_cents
        product.currency = data.currency
        product.last_synced_at = utcnow()
        entry = record_if_changed(product.id, old_price, data.price_cents, PRICE_SOURCE_SUPPLIER_SYNC)
        db.session.commit()

        return SyncResult(
            product_id=target.product_id,
            product_name=target.product_name,
            sku=target.sku,
            success=True,
            old_price_cents=old_price,
            new_price_cents=data.price_cents,
            supplier_stock=data.stock,
            currency=data.currency,
            available=data.available,
            price_changed=entry is not None,
        )

    return run_with_retry(_op)


def _complete(target: _SyncTarget, fetched: SupplierProductData | UpstreamFailureError) -> SyncResult:
    if isinstance(fetched, UpstreamFailureError):
        logger.warning("Supplier sync failed for %s (product %s): %s", target.sku, target.product_id, fetched.message)
        return _failure(target, fetched.message)

    try:
        return _apply(target, fetched)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error while syncing product %s", target.product_id)
        return _failure(target, f"Database error: {exc.__class__.__name__}")
    except Exception as exc:
        db.session.rollback()
        logger.exception("Unexpected error while syncing product %s", target.product_id)
        return _failure(target, f"Sync error: {exc.__class__.__name__}")


def _client_from_app() -> SupplierClient:
    return SupplierClient.from_config(current_app.config)


def sync_product(product_id: int, *, client: SupplierClient | None = None) -> SyncResult:
    """
    Sync one product against its supplier's API.

    Raises:
        NotFoundError: Product missing
        NotConfiguredError: Product has no supplier, or the supplier has no api_base_url
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", {"product_id": product_id})
    if product.supplier is None or not product.supplier.api_base_url:
        raise NotConfiguredError(
            "Product supplier has no API endpoint configured",
            {"product_id": product_id},
        )

    target = _SyncTarget(product.id, product.name, product.sku, product.supplier.api_base_url)

    if client is not None:
        return _complete(target, _fetch(client, target))
    with _client_from_app() as own_client:
        return _complete(target, _fetch(own_client, target))


def _has_api_endpoint():
    return Supplier.api_base_url.isnot(None) & (Supplier.api_base_url != "")


def list_sync_targets() -> list[_SyncTarget]:
    """Products whose supplier has an API endpoint, by product id."""
    rows = (
        db.session.query(Product.id, Product.name, Product.sku, Supplier.api_base_url)
        .join(Supplier, Product.supplier_id == Supplier.id)
        .filter(_has_api_endpoint())
        .order_by(Product.id.asc())
        .all()
    )
    return [_SyncTarget(*row) for row in rows]


def sync_all(*, client: SupplierClient | None = None, max_workers: int | None = None) -> list[SyncResult]:
    """
    Sync every eligible product. One result per product, in product id order.

    A failure on one product never blocks or rolls back another.
    """
    targets = list_sync_targets()
    if not targets:
        return []

    if max_workers is None:
        max_workers = int(current_app.config.get("SUPPLIER_SYNC_MAX_WORKERS", 4))
    max_workers = max(1, min(max_workers, len(targets)))

    own_client = client is None
    if own_client:
        client = _client_from_app()

    try:
        if max_workers == 1:
            fetched = [_fetch(client, t) for t in targets]
        else:
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="supplier-sync") as pool:
                # map() yields in input order
                fetched = list(pool.map(lambda t: _fetch(client, t), targets))
    finally:
        if own_client:
            client.close()

    results = [_complete(target, outcome) for target, outcome in zip(targets, fetched)]

    succeeded = sum(1 for r in results if r.success)
    logger.info("Supplier sync finished: %d/%d products succeeded", succeeded, len(results))
    return results


def sync_status() -> dict:
    """Counts for the dashboard: products eligible for sync and their last outcome."""
    total = db.session.query(Product).count()
    synced = len(list_sync_targets())
    never_synced = (
        db.session.query(Product)
        .join(Supplier, Product.supplier_id == Supplier.id)
        .filter(_has_api_endpoint(), Product.last_synced_at.is_(None))
        .count()
    )
    return {"total": total, "synced": synced, "never_synced": never_synced}
