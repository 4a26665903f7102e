# Overview: Public currency conversion endpoints.

from flask import Blueprint, jsonify, request

from ..services.currency_service import get_converter

currency_bp = Blueprint("currency", __name__, url_prefix="/api/currency")


@currency_bp.get("")
def convert_route():
    """GET /api/currency?from=USD&to=EUR&amount=100"""
    source = request.args.get("from")
    target = request.args.get("to")
    amount = request.args.get("amount")

    if not all([source, target, amount]):
        return jsonify({"error": "from, to and amount required"}), 400

    try:
        result = get_converter().convert(amount, source, target)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(result.to_dict())


@currency_bp.get("/rates")
def rates_route():
    base = request.args.get("base", "USD")
    return jsonify(get_converter().get_rates(base).to_dict())
