# Overview: Flask API routes for purchase orders; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_role
from ..services import purchase_order_service

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """
    Query parameters: status, supplier_id, limit (max 500), offset.
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)

    orders, total = purchase_order_service.list_purchase_orders(
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [o.to_dict(include_items=False) for o in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    """
    Request body:
    {
        "supplier_id": 1,
        "items": [{"product_id": 1, "quantity": 10, "unit_price_cents": 450}],
        "notes": "optional"
    }
    """
    data = request.get_json(silent=True) or {}
    supplier_id = data.get("supplier_id")
    if supplier_id is None:
        return jsonify({"error": "supplier_id required"}), 400

    order = purchase_order_service.create_purchase_order(
        supplier_id=supplier_id,
        items=data.get("items") or [],
        created_by_user_id=g.current_user.id,
        notes=data.get("notes"),
    )
    return jsonify(order.to_dict()), 201


@purchase_orders_bp.get("/<int:order_id>")
@require_auth
def get_purchase_order_route(order_id: int):
    return jsonify(purchase_order_service.get_purchase_order(order_id).to_dict())


@purchase_orders_bp.patch("/<int:order_id>")
@require_auth
@require_role("ADMIN")
def update_purchase_order_status_route(order_id: int):
    """
    Request body: {"status": "APPROVED" | "RECEIVED" | "CANCELLED"}

    RECEIVED posts every item's quantity to stock. A second RECEIVED is
    rejected with 409.
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status required"}), 400

    order = purchase_order_service.transition_status(order_id, str(status).upper())
    return jsonify(order.to_dict())


@purchase_orders_bp.delete("/<int:order_id>")
@require_auth
@require_role("ADMIN")
def delete_purchase_order_route(order_id: int):
    purchase_order_service.delete_purchase_order(order_id)
    return jsonify({"message": "Purchase order deleted"}), 200
