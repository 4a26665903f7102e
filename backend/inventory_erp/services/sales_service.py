# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Service

A sale is one atomic unit: the Sale row, the stock decrement and the OUT
StockLog row commit together or not at all.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import Product, Sale, User
from ..validation import ValidationError
from .concurrency import run_with_retry
from .stock_ledger_service import apply_movement

logger = logging.getLogger(__name__)

SALE_REASON = "Product sold"


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def create_sale(
    product_id: int,
    user_id: int,
    quantity: int,
    unit_price_cents: int | None = None,
) -> Sale:
    """
    Record a sale and decrement stock.

    Args:
        product_id: Product sold
        user_id: Acting user
        quantity: Units sold (> 0)
        unit_price_cents: Price per unit; defaults to the product's sell price

    Returns:
        The committed Sale (total_cents = quantity * unit_price_cents)

    Raises:
        ValidationError: Bad quantity or price
        NotFoundError: Product or user missing
        InsufficientStockError: Not enough stock, nothing is written
    """
    _positive_int(product_id, "product_id")
    _positive_int(quantity, "quantity")
    if unit_price_cents is not None:
        _positive_int(unit_price_cents, "unit_price_cents")

    def _op() -> Sale:
        product = db.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Product not found", {"product_id": product_id})
        if db.session.get(User, user_id) is None:
            raise NotFoundError("User not found", {"user_id": user_id})

        # Descriptive pre-check; the guarded update in apply_movement is what
        # actually holds the line under concurrent sales.
        if product.stock_qty < quantity:
            raise InsufficientStockError(available=product.stock_qty, requested=quantity)

        price = unit_price_cents if unit_price_cents is not None else product.price_cents

        try:
            apply_movement(product.id, -quantity, SALE_REASON, commit=False)
            sale = Sale(
                product_id=product.id,
                user_id=user_id,
                quantity=quantity,
                unit_price_cents=price,
                total_cents=quantity * price,
            )
            db.session.add(sale)
            db.session.commit()
        except InsufficientStockError:
            db.session.rollback()
            raise

        logger.info(
            "Sale %s recorded: product=%s qty=%s total_cents=%s",
            sale.id, product_id, quantity, sale.total_cents,
        )
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found", {"sale_id": sale_id})
    return sale


def list_sales(
    *,
    product_id: int | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    page: int = 1,
    per_page: int = 50,
) -> dict:
    """Newest first, paginated."""
    query = db.session.query(Sale)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    if from_date is not None:
        query = query.filter(Sale.created_at >= from_date)
    if to_date is not None:
        query = query.filter(Sale.created_at <= to_date)

    total = query.count()
    sales = (
        query.order_by(Sale.created_at.desc(), Sale.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "pages": (total + per_page - 1) // per_page,
        },
    }
