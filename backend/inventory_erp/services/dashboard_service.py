# Overview: Service-layer aggregation for the dashboard.

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, Supplier
from ..time_utils import utcnow
from .alert_service import low_stock_query
from .sync_service import sync_status


def _month_keys(now, months: int) -> list[str]:
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def monthly_sales(months: int = 12) -> list[dict]:
    """Sales count and revenue per calendar month, oldest first, zero-filled."""
    now = utcnow()
    keys = _month_keys(now, months)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start = (start - timedelta(days=31 * (months - 1))).replace(day=1)

    period_expr = func.strftime("%Y-%m", Sale.created_at)
    rows = (
        db.session.query(
            period_expr.label("period"),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
        )
        .filter(Sale.created_at >= start)
        .group_by(period_expr)
        .all()
    )
    by_period = {period: (count, revenue) for period, count, revenue in rows}
    return [
        {
            "month": key,
            "sales_count": by_period.get(key, (0, 0))[0],
            "revenue_cents": int(by_period.get(key, (0, 0))[1]),
        }
        for key in keys
    ]


def category_distribution() -> list[dict]:
    rows = (
        db.session.query(
            Product.category,
            func.count(Product.id),
            func.coalesce(func.sum(Product.price_cents * Product.stock_qty), 0),
        )
        .group_by(Product.category)
        .order_by(Product.category.asc())
        .all()
    )
    return [
        {"category": category, "product_count": count, "stock_value_cents": int(value)}
        for category, count, value in rows
    ]


def get_dashboard() -> dict:
    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    total_suppliers = db.session.query(func.count(Supplier.id)).scalar() or 0
    total_stock_value = db.session.query(
        func.coalesce(func.sum(Product.price_cents * Product.stock_qty), 0)
    ).scalar()
    total_sales, total_revenue = db.session.query(
        func.count(Sale.id), func.coalesce(func.sum(Sale.total_cents), 0)
    ).one()

    low_stock = low_stock_query()
    low_stock_products = (
        low_stock.order_by(Product.stock_qty.asc(), Product.id.asc()).limit(10).all()
    )
    recent_sales = (
        db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(5).all()
    )

    return {
        "total_products": total_products,
        "total_suppliers": total_suppliers,
        "total_stock_value_cents": int(total_stock_value),
        "low_stock_count": low_stock.count(),
        "total_sales": total_sales,
        "total_revenue_cents": int(total_revenue),
        "recent_sales": [s.to_dict() for s in recent_sales],
        "low_stock_products": [p.to_dict() for p in low_stock_products],
        "monthly_sales": monthly_sales(12),
        "category_distribution": category_distribution(),
        "sync_status": sync_status(),
    }
