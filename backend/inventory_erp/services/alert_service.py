# Overview: Service-layer operations for low-stock detection and alert dispatch.

"""
Low-Stock Alert Engine

Low stock is strictly stock_qty < min_stock_level. Every call notifies every
currently-low product; there is no suppression window, so a product that stays
low is alerted on every scheduled run.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from flask import current_app

from ..errors import NotificationError
from ..extensions import db
from ..models import Product
from .notification_service import EmailNotifier, LowStockNotice

logger = logging.getLogger(__name__)

NO_SUPPLIER = "No supplier"
NOT_AVAILABLE = "N/A"


@dataclass
class AlertResult:
    product_id: int
    sku: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def low_stock_query():
    return db.session.query(Product).filter(Product.stock_qty < Product.min_stock_level)


def find_low_stock_products(limit: int | None = None) -> list[Product]:
    query = low_stock_query().order_by(Product.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def build_notice(product: Product) -> LowStockNotice:
    supplier = product.supplier
    return LowStockNotice(
        product_id=product.id,
        product_name=product.name,
        sku=product.sku,
        current_stock=product.stock_qty,
        min_stock_level=product.min_stock_level,
        supplier_name=supplier.name if supplier else NO_SUPPLIER,
        supplier_email=supplier.email if supplier and supplier.email else NOT_AVAILABLE,
    )


def check_and_alert(*, notifier=None) -> list[AlertResult]:
    """
    Send one notification per low-stock product, in product id order.

    Delivery failures are logged and recorded on that product's result;
    they never stop the remaining notifications.
    """
    if notifier is None:
        notifier = EmailNotifier.from_config(current_app.config)

    results: list[AlertResult] = []
    for product in find_low_stock_products():
        notice = build_notice(product)
        try:
            notifier.send(notice)
        except NotificationError as exc:
            logger.warning("Low stock alert failed for %s: %s", product.sku, exc.message)
            results.append(AlertResult(product.id, product.sku, False, exc.message))
            continue
        results.append(AlertResult(product.id, product.sku, True))

    logger.info(
        "Low stock check finished: %d products, %d alerts delivered",
        len(results), sum(1 for r in results if r.success),
    )
    return results
