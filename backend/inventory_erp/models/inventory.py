from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

STOCK_IN = "IN"
STOCK_OUT = "OUT"
STOCK_ADJUSTMENT = "ADJUSTMENT"

PRICE_SOURCE_MANUAL = "MANUAL"
PRICE_SOURCE_SUPPLIER_SYNC = "SUPPLIER_SYNC"
PRICE_SOURCES = (PRICE_SOURCE_MANUAL, PRICE_SOURCE_SUPPLIER_SYNC)


class Supplier(db.Model):
    """
    Supplier master data.

    A supplier with api_base_url set is eligible for price sync:
    GET {api_base_url}/products/{sku}.
    Products reference suppliers weakly; deleting a supplier detaches them.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=False)
    api_base_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def sync_enabled(self) -> bool:
        return bool(self.api_base_url)

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "api_base_url": self.api_base_url,
            "sync_enabled": self.sync_enabled,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data.

    stock_qty is only ever written through the stock ledger, which pairs every
    change with a StockLog row. cost_price_cents changes are paired with a
    PriceHistory row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_qty >= 0", name="ck_products_stock_qty_nonnegative"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_nonnegative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    barcode = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=False)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")

    stock_qty = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    last_synced_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock_qty < self.min_stock_level

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} stock_qty={self.stock_qty}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "currency": self.currency,
            "stock_qty": self.stock_qty,
            "min_stock_level": self.min_stock_level,
            "is_low_stock": self.is_low_stock,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "last_synced_at": to_utc_z(self.last_synced_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLog(db.Model):
    """
    Append-only stock movement record.

    quantity is always the positive magnitude of the movement. balance_after is
    the product quantity right after the movement; it gives ADJUSTMENT rows a
    direction when the log is replayed.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_logs_quantity_positive"),
        db.CheckConstraint("type IN ('IN', 'OUT', 'ADJUSTMENT')", name="ck_stock_logs_type"),
        db.Index("ix_stock_logs_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    balance_after = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_logs", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "type": self.type,
            "quantity": self.quantity,
            "reason": self.reason,
            "balance_after": self.balance_after,
            "created_at": to_utc_z(self.created_at),
        }


class PriceHistory(db.Model):
    """Append-only record of cost price changes."""
    __tablename__ = "price_history"
    __table_args__ = (
        db.CheckConstraint("source IN ('MANUAL', 'SUPPLIER_SYNC')", name="ck_price_history_source"),
        db.Index("ix_price_history_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    old_price_cents = db.Column(db.Integer, nullable=False)
    new_price_cents = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("price_history", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "old_price_cents": self.old_price_cents,
            "new_price_cents": self.new_price_cents,
            "source": self.source,
            "created_at": to_utc_z(self.created_at),
        }
