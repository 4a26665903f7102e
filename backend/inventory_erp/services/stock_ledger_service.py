# Overview: Service-layer operations for stock quantity; the only writer of Product.stock_qty.

"""
Stock Ledger

Every change to Product.stock_qty goes through apply_movement(), which writes
the new quantity and the matching StockLog row in the same transaction.

CONCURRENCY: the quantity change is a single conditional UPDATE
(stock_qty = stock_qty + delta WHERE stock_qty + delta >= 0), so two writers
racing on the same product can never push it below zero, whatever the
isolation level of the store.

AUDIT: replaying a product's StockLog from zero must reproduce stock_qty.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Product, StockLog
from ..models.inventory import STOCK_ADJUSTMENT, STOCK_IN, STOCK_OUT
from ..validation import ValidationError

logger = logging.getLogger(__name__)


def apply_movement(
    product_id: int,
    delta: int,
    reason: str,
    *,
    movement_type: str | None = None,
    commit: bool = True,
) -> int:
    """
    Apply a signed quantity change to a product and append its StockLog row.

    Args:
        product_id: Product to move
        delta: Signed quantity (positive = in, negative = out), never zero
        reason: Free-text reason stored on the log row
        movement_type: Pass STOCK_ADJUSTMENT for manual corrections; otherwise
            the type is derived from the sign of delta
        commit: Commit when done. Pass False to keep the movement inside the
            caller's transaction.

    Returns:
        The committed stock quantity after the movement.

    Raises:
        ValidationError: delta is zero or movement_type is unknown
        NotFoundError: product does not exist
        InsufficientStockError: the movement would make stock negative
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise ValidationError("delta must be a non-zero integer")
    if movement_type not in (None, STOCK_ADJUSTMENT):
        raise ValidationError(f"Unsupported movement_type: {movement_type}")
    if not reason or not reason.strip():
        raise ValidationError("reason is required")

    log_type = movement_type or (STOCK_IN if delta > 0 else STOCK_OUT)

    # Pending ORM changes on the product must hit the database before the
    # guarded update bumps its version.
    db.session.flush()

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_qty + delta >= 0)
        .values(stock_qty=Product.stock_qty + delta, version_id=Product.version_id + 1)
    )
    result = db.session.execute(stmt, execution_options={"synchronize_session": False})

    if result.rowcount == 0:
        current = db.session.execute(
            select(Product.stock_qty).where(Product.id == product_id)
        ).scalar_one_or_none()
        if current is None:
            raise NotFoundError("Product not found", {"product_id": product_id})
        raise InsufficientStockError(available=current, requested=-delta)

    new_qty = db.session.execute(
        select(Product.stock_qty).where(Product.id == product_id)
    ).scalar_one()

    cached = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if cached is not None:
        db.session.expire(cached, ["stock_qty", "version_id", "updated_at"])

    db.session.add(StockLog(
        product_id=product_id,
        type=log_type,
        quantity=abs(delta),
        reason=reason.strip(),
        balance_after=new_qty,
    ))

    if commit:
        db.session.commit()

    logger.debug("Stock movement product=%s delta=%+d balance=%s", product_id, delta, new_qty)
    return new_qty


def list_stock_logs(product_id: int, limit: int = 20) -> list[StockLog]:
    """Newest first."""
    return (
        db.session.query(StockLog)
        .filter(StockLog.product_id == product_id)
        .order_by(StockLog.created_at.desc(), StockLog.id.desc())
        .limit(limit)
        .all()
    )


def replay_stock_log(product_id: int) -> int:
    """
    Rebuild a product's quantity from its StockLog, starting at zero.

    IN adds and OUT subtracts. ADJUSTMENT rows carry no sign, so their
    direction comes from balance_after relative to the running total.
    """
    logs = (
        db.session.query(StockLog)
        .filter(StockLog.product_id == product_id)
        .order_by(StockLog.id.asc())
        .all()
    )

    total = 0
    for log in logs:
        if log.type == STOCK_IN:
            total += log.quantity
        elif log.type == STOCK_OUT:
            total -= log.quantity
        elif log.balance_after >= total:
            total += log.quantity
        else:
            total -= log.quantity
    return total


def reconcile(product_id: int) -> dict:
    """Compare a product's stored quantity with its replayed StockLog."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", {"product_id": product_id})

    replayed = replay_stock_log(product_id)
    return {
        "product_id": product.id,
        "sku": product.sku,
        "stock_qty": product.stock_qty,
        "replayed_qty": replayed,
        "consistent": replayed == product.stock_qty,
    }
