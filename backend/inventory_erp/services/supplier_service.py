# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers own products only by back-reference: deleting a supplier detaches
its products (supplier_id -> NULL) but is refused while purchase orders
still point at it.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, update

from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, PurchaseOrder, Supplier
from ..validation import ConflictError, ModelValidationPolicy

logger = logging.getLogger(__name__)

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "api_base_url"},
    required_on_create={"name", "email", "phone"},
)


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found", {"supplier_id": supplier_id})
    return supplier


def _counts(supplier_ids: list[int]) -> tuple[dict[int, int], dict[int, int]]:
    if not supplier_ids:
        return {}, {}
    product_counts = dict(
        db.session.query(Product.supplier_id, func.count(Product.id))
        .filter(Product.supplier_id.in_(supplier_ids))
        .group_by(Product.supplier_id)
        .all()
    )
    order_counts = dict(
        db.session.query(PurchaseOrder.supplier_id, func.count(PurchaseOrder.id))
        .filter(PurchaseOrder.supplier_id.in_(supplier_ids))
        .group_by(PurchaseOrder.supplier_id)
        .all()
    )
    return product_counts, order_counts


def list_suppliers(*, search: str | None = None, limit: int = 100, offset: int = 0) -> tuple[list[dict], int]:
    """Suppliers by name, each with product and purchase order counts."""
    query = db.session.query(Supplier)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Supplier.name).like(pattern),
            func.lower(Supplier.email).like(pattern),
        ))

    total = query.count()
    suppliers = query.order_by(Supplier.name.asc(), Supplier.id.asc()).offset(offset).limit(limit).all()

    product_counts, order_counts = _counts([s.id for s in suppliers])
    items = []
    for s in suppliers:
        data = s.to_dict()
        data["product_count"] = product_counts.get(s.id, 0)
        data["purchase_order_count"] = order_counts.get(s.id, 0)
        items.append(data)
    return items, total


def get_supplier_detail(supplier_id: int) -> dict:
    supplier = get_supplier(supplier_id)
    data = supplier.to_dict()
    data["products"] = [
        p.to_dict() for p in
        db.session.query(Product).filter(Product.supplier_id == supplier_id).order_by(Product.name.asc()).all()
    ]
    data["purchase_orders"] = [
        o.to_dict(include_items=False) for o in
        db.session.query(PurchaseOrder)
        .filter(PurchaseOrder.supplier_id == supplier_id)
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .limit(10)
        .all()
    ]
    return data


def create_supplier(*, patch: dict) -> Supplier:
    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.commit()
    logger.info("Supplier %s created (id=%s)", supplier.name, supplier.id)
    return supplier


def update_supplier(*, supplier_id: int, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    for k, v in patch.items():
        setattr(supplier, k, v)
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> None:
    """
    Raises:
        NotFoundError: Supplier missing
        ConflictError: Purchase orders reference the supplier
    """
    supplier = get_supplier(supplier_id)

    order_count = db.session.query(PurchaseOrder).filter(PurchaseOrder.supplier_id == supplier_id).count()
    if order_count:
        raise ConflictError(
            "Cannot delete supplier with purchase orders",
            {"purchase_order_count": order_count},
        )

    db.session.execute(
        update(Product)
        .where(Product.supplier_id == supplier_id)
        .values(supplier_id=None, version_id=Product.version_id + 1),
        execution_options={"synchronize_session": "fetch"},
    )
    db.session.delete(supplier)
    db.session.commit()
