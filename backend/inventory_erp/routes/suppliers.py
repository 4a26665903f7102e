# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Supplier
from ..services import supplier_service
from ..services.supplier_service import SUPPLIER_POLICY
from ..validation import enforce_rules_supplier, validate_payload

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    """
    Query parameters:
    - search: name or email substring
    - limit (default 100, max 500), offset

    Returns:
        {items: Supplier[], count: int, limit: int, offset: int}
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    offset = max(request.args.get("offset", 0, type=int), 0)

    items, total = supplier_service.list_suppliers(
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    )
    return jsonify({"items": items, "count": total, "limit": limit, "offset": offset})


@suppliers_bp.post("")
@require_auth
@require_role("ADMIN")
def create_supplier_route():
    patch = validate_payload(
        model=Supplier,
        payload=request.get_json(silent=True),
        policy=SUPPLIER_POLICY,
        partial=False,
    )
    enforce_rules_supplier(patch)
    supplier = supplier_service.create_supplier(patch=patch)
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    return jsonify(supplier_service.get_supplier_detail(supplier_id))


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role("ADMIN")
def update_supplier_route(supplier_id: int):
    patch = validate_payload(
        model=Supplier,
        payload=request.get_json(silent=True),
        policy=SUPPLIER_POLICY,
        partial=True,
    )
    enforce_rules_supplier(patch)
    supplier = supplier_service.update_supplier(supplier_id=supplier_id, patch=patch)
    return jsonify(supplier.to_dict())


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role("ADMIN")
def delete_supplier_route(supplier_id: int):
    supplier_service.delete_supplier(supplier_id)
    return jsonify({"message": "Supplier deleted"}), 200
