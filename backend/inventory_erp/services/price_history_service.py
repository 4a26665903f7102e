# Overview: Service-layer operations for cost price history.

from __future__ import annotations

from ..extensions import db
from ..models import PriceHistory
from ..models.inventory import PRICE_SOURCES
from ..validation import ValidationError


def record_if_changed(
    product_id: int,
    old_price_cents: int,
    new_price_cents: int,
    source: str,
) -> PriceHistory | None:
    """
    Append a PriceHistory row when the cost price actually changed.

    Equal prices are a silent no-op (repeated syncs that find the same price
    must not add rows). Never commits; the row rides on the caller's
    transaction.
    """
    if source not in PRICE_SOURCES:
        raise ValidationError(f"source must be one of: {', '.join(PRICE_SOURCES)}")

    if old_price_cents == new_price_cents:
        return None

    entry = PriceHistory(
        product_id=product_id,
        old_price_cents=old_price_cents,
        new_price_cents=new_price_cents,
        source=source,
    )
    db.session.add(entry)
    return entry


def list_price_history(product_id: int, limit: int = 20) -> list[PriceHistory]:
    return (
        db.session.query(PriceHistory)
        .filter(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc())
        .limit(limit)
        .all()
    )
