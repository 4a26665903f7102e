# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import sales_service
from ..time_utils import parse_iso_datetime

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    Query parameters: product_id, from, to (ISO-8601), page, per_page (max 100).
    """
    try:
        from_date = parse_iso_datetime(request.args.get("from"))
        to_date = parse_iso_datetime(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "from/to must be ISO-8601 datetimes"}), 400

    page = max(request.args.get("page", 1, type=int), 1)
    per_page = min(max(request.args.get("per_page", 50, type=int), 1), 100)

    return jsonify(sales_service.list_sales(
        product_id=request.args.get("product_id", type=int),
        from_date=from_date,
        to_date=to_date,
        page=page,
        per_page=per_page,
    ))


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record a sale for the authenticated user.

    Request body:
    {
        "product_id": 1,          // required
        "quantity": 2,            // required, > 0
        "unit_price_cents": 1999  // optional, defaults to the product price
    }

    Errors: 404 unknown product, 409 insufficient stock (with "available").
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")
    quantity = data.get("quantity")

    if product_id is None or quantity is None:
        return jsonify({"error": "product_id and quantity required"}), 400

    sale = sales_service.create_sale(
        product_id=product_id,
        user_id=g.current_user.id,
        quantity=quantity,
        unit_price_cents=data.get("unit_price_cents"),
    )
    return jsonify({"sale": sale.to_dict()}), 201


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    return jsonify({"sale": sales_service.get_sale(sale_id).to_dict()})
