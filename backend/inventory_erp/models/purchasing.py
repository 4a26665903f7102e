from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PO_PENDING = "PENDING"
PO_APPROVED = "APPROVED"
PO_RECEIVED = "RECEIVED"
PO_CANCELLED = "CANCELLED"
PO_STATUSES = (PO_PENDING, PO_APPROVED, PO_RECEIVED, PO_CANCELLED)


class PurchaseOrder(db.Model):
    """
    Purchase order header.

    LIFECYCLE: PENDING -> APPROVED -> RECEIVED, or PENDING -> CANCELLED.
    Only RECEIVED posts stock.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'RECEIVED', 'CANCELLED')",
            name="ck_purchase_orders_status",
        ),
        db.Index("ix_purchase_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=PO_PENDING)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    created_by = db.relationship("User")
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "created_by_user_id": self.created_by_user_id,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "received_at": to_utc_z(self.received_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Line order within the purchase order (receipt applies items in this order)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_sku": self.product.sku if self.product else None,
            "position": self.position,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
        }
