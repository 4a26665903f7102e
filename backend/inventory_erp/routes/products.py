# Overview: Flask API routes for products; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..models import Product
from ..services import products_service, stock_ledger_service
from ..services.products_service import PRODUCT_POLICY
from ..validation import enforce_rules_product, validate_payload

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query parameters: search, category, supplier_id, low_stock=true,
    page, per_page (pagination only when page is given).
    """
    result = products_service.list_products(
        search=request.args.get("search"),
        category=request.args.get("category"),
        supplier_id=request.args.get("supplier_id", type=int),
        low_stock=request.args.get("low_stock", "false").lower() == "true",
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result)


@products_bp.post("")
@require_auth
@require_role("ADMIN")
def create_product_route():
    patch = validate_payload(
        model=Product,
        payload=request.get_json(silent=True),
        policy=PRODUCT_POLICY,
        partial=False,
    )
    enforce_rules_product(patch)
    product = products_service.create_product(patch=patch)
    return jsonify(product.to_dict()), 201


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    return jsonify(products_service.get_product_detail(product_id))


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def update_product_route(product_id: int):
    patch = validate_payload(
        model=Product,
        payload=request.get_json(silent=True),
        policy=PRODUCT_POLICY,
        partial=True,
    )
    enforce_rules_product(patch)
    product = products_service.update_product(product_id=product_id, patch=patch)
    return jsonify(product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("ADMIN")
def delete_product_route(product_id: int):
    products_service.delete_product(product_id)
    current_app.logger.info("Product %s deleted", product_id)
    return jsonify({"message": "Product deleted"}), 200


@products_bp.get("/<int:product_id>/reconcile")
@require_auth
def reconcile_product_route(product_id: int):
    """Replays the stock log and compares it with the stored quantity."""
    return jsonify(stock_ledger_service.reconcile(product_id))
