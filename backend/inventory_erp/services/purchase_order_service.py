# Overview: Service-layer operations for purchase orders; status lifecycle and stock receipt.

"""
Purchase Order Service

LIFECYCLE:
    PENDING  -> APPROVED | CANCELLED
    APPROVED -> RECEIVED
Any other transition (including RECEIVED -> RECEIVED) is rejected.

The status write is a compare-and-set UPDATE on the expected current status,
so only one of two racing "receive" requests can win. The receiving request
posts +quantity for each item, in item order, inside the same transaction.
"""

from __future__ import annotations

import logging
import secrets
import time

from sqlalchemy import update

from ..errors import InvalidTransitionError, NotFoundError
from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..models.purchasing import (
    PO_APPROVED,
    PO_CANCELLED,
    PO_PENDING,
    PO_RECEIVED,
    PO_STATUSES,
)
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .stock_ledger_service import apply_movement

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PO_PENDING: frozenset({PO_APPROVED, PO_CANCELLED}),
    PO_APPROVED: frozenset({PO_RECEIVED}),
    PO_RECEIVED: frozenset(),
    PO_CANCELLED: frozenset(),
}

DELETABLE_STATUSES = frozenset({PO_PENDING, PO_CANCELLED})

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    """PO-<base36 epoch millis>-<4 random base36 chars>, upper-cased."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"PO-{stamp}-{suffix}".upper()


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def get_purchase_order(order_id: int) -> PurchaseOrder:
    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError("Purchase order not found", {"purchase_order_id": order_id})
    return order


def create_purchase_order(
    *,
    supplier_id: int,
    items: list[dict],
    created_by_user_id: int | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a PENDING purchase order.

    items: [{"product_id": int, "quantity": int, "unit_price_cents": int}, ...]
    total_amount_cents is the sum of quantity * unit_price_cents over items.
    """
    if db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError("Supplier not found", {"supplier_id": supplier_id})
    if not items:
        raise ValidationError("At least one item is required")

    order = PurchaseOrder(
        order_number=generate_order_number(),
        supplier_id=supplier_id,
        created_by_user_id=created_by_user_id,
        status=PO_PENDING,
        notes=notes,
    )

    total = 0
    for position, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        unit_price = raw.get("unit_price_cents")

        for field, value in (("product_id", product_id), ("quantity", quantity), ("unit_price_cents", unit_price)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValidationError(f"items[{position}].{field} must be a positive integer")

        if db.session.get(Product, product_id) is None:
            raise NotFoundError("Product not found", {"product_id": product_id})

        line_total = quantity * unit_price
        total += line_total
        order.items.append(PurchaseOrderItem(
            product_id=product_id,
            position=position,
            quantity=quantity,
            unit_price_cents=unit_price,
            total_price_cents=line_total,
        ))

    order.total_amount_cents = total
    db.session.add(order)
    db.session.commit()

    logger.info("Purchase order %s created with %d items", order.order_number, len(order.items))
    return order


def transition_status(order_id: int, target: str) -> PurchaseOrder:
    """
    Move a purchase order to a new status.

    Raises:
        ValidationError: Unknown target status
        NotFoundError: Order missing
        InvalidTransitionError: Transition not allowed from the current status,
            or another request changed the status first
    """
    if target not in PO_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")

    order = get_purchase_order(order_id)
    current = order.status
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)

    values = {"status": target, "updated_at": utcnow()}
    if target == PO_RECEIVED:
        values["received_at"] = utcnow()

    # Compare-and-set: a concurrent transition leaves rowcount at 0
    result = db.session.execute(
        update(PurchaseOrder)
        .where(PurchaseOrder.id == order_id, PurchaseOrder.status == current)
        .values(**values),
        execution_options={"synchronize_session": False},
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise InvalidTransitionError(order.status, target)

    try:
        if target == PO_RECEIVED:
            for item in order.items:
                apply_movement(
                    item.product_id,
                    item.quantity,
                    f"Purchase Order {order.order_number} received",
                    commit=False,
                )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.expire(order)
    logger.info("Purchase order %s: %s -> %s", order.order_number, current, target)
    return order


def delete_purchase_order(order_id: int) -> None:
    """Only PENDING or CANCELLED orders can be deleted; received stock stays posted."""
    order = get_purchase_order(order_id)
    if order.status not in DELETABLE_STATUSES:
        raise ConflictError(
            f"Cannot delete {order.status} purchase order. Only PENDING or CANCELLED orders can be deleted."
        )

    order_number = order.order_number
    # Items go with the order (delete-orphan cascade)
    db.session.delete(order)
    db.session.commit()
    logger.info("Purchase order %s deleted", order_number)


def list_purchase_orders(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[PurchaseOrder], int]:
    query = db.session.query(PurchaseOrder)
    if status:
        if status not in PO_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PO_STATUSES)}")
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)

    total = query.count()
    orders = (
        query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return orders, total
