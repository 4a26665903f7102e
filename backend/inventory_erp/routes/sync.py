# Overview: Flask API route for admin-triggered supplier sync.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..services import sync_service

sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


@sync_bp.post("")
@require_auth
@require_role("ADMIN")
def sync_route():
    """
    Body {"product_id": 3} syncs one product; an empty body syncs every
    product whose supplier has an API endpoint.

    Per-product upstream failures are reported in the results, not as HTTP
    errors. A product without a configured supplier API is a 400.
    """
    data = request.get_json(silent=True) or {}
    product_id = data.get("product_id")

    if product_id is not None:
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            return jsonify({"error": "product_id must be an integer"}), 400
        result = sync_service.sync_product(product_id)
        return jsonify({"result": result.to_dict()})

    results = sync_service.sync_all()
    return jsonify({
        "results": [r.to_dict() for r in results],
        "total": len(results),
        "succeeded": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
    })
