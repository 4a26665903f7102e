# backend/inventory_erp/services/products_service.py
"""
Products Service

Creates, edits and deletes products while keeping the audit trail intact:
- initial stock is posted through the stock ledger (IN)
- manual stock edits become ADJUSTMENT movements
- cost price edits are recorded as MANUAL price history
- deletion removes dependents first, in a fixed order, in one transaction
"""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select

from ..errors import NotFoundError
from ..extensions import db
from ..models import PriceHistory, Product, PurchaseOrder, PurchaseOrderItem, Sale, StockLog, Supplier
from ..models.inventory import PRICE_SOURCE_MANUAL, STOCK_ADJUSTMENT
from ..validation import ConflictError, ModelValidationPolicy
from .price_history_service import list_price_history, record_if_changed
from .stock_ledger_service import apply_movement, list_stock_logs

logger = logging.getLogger(__name__)

INITIAL_STOCK_REASON = "Initial stock on product creation"
MANUAL_ADJUSTMENT_REASON = "Manual stock adjustment"

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku", "barcode", "name", "description", "category",
        "price_cents", "cost_price_cents", "currency",
        "stock_qty", "min_stock_level", "supplier_id",
    },
    required_on_create={"sku", "name", "category", "price_cents", "cost_price_cents"},
)

# stock_qty and cost_price_cents are audited and handled separately
PRODUCT_MUTABLE_FIELDS = {
    "sku", "barcode", "name", "description", "category",
    "price_cents", "currency", "min_stock_level", "supplier_id",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_sku(sku: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("A product with this SKU already exists")


def _ensure_supplier(supplier_id: int | None) -> None:
    if supplier_id is not None and db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError("Supplier not found", {"supplier_id": supplier_id})


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", {"product_id": product_id})
    return product


def get_product_detail(product_id: int) -> dict:
    """Product plus its 20 latest price history and stock log rows."""
    product = get_product(product_id)
    data = product.to_dict()
    data["supplier"] = product.supplier.to_dict() if product.supplier else None
    data["price_history"] = [h.to_dict() for h in list_price_history(product_id, limit=20)]
    data["stock_logs"] = [log.to_dict() for log in list_stock_logs(product_id, limit=20)]
    return data


def list_products(
    *,
    search: str | None = None,
    category: str | None = None,
    supplier_id: int | None = None,
    low_stock: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing with optional filters and pagination.

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if search:
        pattern = f"%{search.strip().lower()}%"
        base_query = base_query.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(Product.sku).like(pattern),
        ))
    if category:
        base_query = base_query.filter(Product.category == category)
    if supplier_id is not None:
        base_query = base_query.filter(Product.supplier_id == supplier_id)
    if low_stock:
        base_query = base_query.filter(Product.stock_qty < Product.min_stock_level)

    base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    Initial stock is posted as an IN movement so the stock log replays to
    the starting quantity.

    Raises:
        ConflictError: SKU already exists
        NotFoundError: supplier_id does not exist
    """
    _ensure_unique_sku(patch["sku"])
    _ensure_supplier(patch.get("supplier_id"))

    initial_stock = patch.get("stock_qty") or 0

    p = Product(stock_qty=0, cost_price_cents=patch["cost_price_cents"])
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.flush()

    if initial_stock > 0:
        apply_movement(p.id, initial_stock, INITIAL_STOCK_REASON, commit=False)

    db.session.commit()
    logger.info("Product %s created (id=%s, stock=%s)", p.sku, p.id, initial_stock)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Apply a validated patch.

    A cost price change adds a MANUAL price history row. A stock_qty change
    becomes an ADJUSTMENT movement for the difference. Everything commits
    together.
    """
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_unique_sku(patch["sku"], exclude_id=p.id)
    if "supplier_id" in patch:
        _ensure_supplier(patch["supplier_id"])

    try:
        apply_product_patch(p, patch)

        if "cost_price_cents" in patch:
            old_cost = p.cost_price_cents
            p.cost_price_cents = patch["cost_price_cents"]
            record_if_changed(p.id, old_cost, patch["cost_price_cents"], PRICE_SOURCE_MANUAL)

        if "stock_qty" in patch:
            delta = patch["stock_qty"] - p.stock_qty
            if delta:
                apply_movement(
                    p.id,
                    delta,
                    MANUAL_ADJUSTMENT_REASON,
                    movement_type=STOCK_ADJUSTMENT,
                    commit=False,
                )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return p


def delete_product(product_id: int) -> None:
    """
    Hard-delete a product and its dependents.

    Order: price history, stock logs, sales, purchase order items, then the
    product. Purchase orders that lose items get their totals recomputed.
    """
    p = get_product(product_id)
    sku = p.sku

    affected_orders = [
        row[0] for row in db.session.execute(
            select(PurchaseOrderItem.purchase_order_id)
            .where(PurchaseOrderItem.product_id == product_id)
            .distinct()
        )
    ]

    try:
        for model in (PriceHistory, StockLog, Sale, PurchaseOrderItem):
            db.session.execute(
                delete(model).where(model.product_id == product_id),
                execution_options={"synchronize_session": "fetch"},
            )

        for order_id in affected_orders:
            total = db.session.execute(
                select(func.coalesce(func.sum(PurchaseOrderItem.total_price_cents), 0))
                .where(PurchaseOrderItem.purchase_order_id == order_id)
            ).scalar_one()
            order = db.session.get(PurchaseOrder, order_id)
            order.total_amount_cents = total

        db.session.execute(
            delete(Product).where(Product.id == product_id),
            execution_options={"synchronize_session": "fetch"},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("Product %s deleted with dependents (orders touched: %d)", sku, len(affected_orders))
