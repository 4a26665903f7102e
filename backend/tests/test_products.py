"""
Product API tests: validation, audited edits and cascading delete.
"""

import pytest

from inventory_erp.extensions import db
from inventory_erp.models import PriceHistory, Product, PurchaseOrder, Sale, StockLog
from inventory_erp.services.purchase_order_service import create_purchase_order
from inventory_erp.services.sales_service import create_sale
from inventory_erp.services.stock_ledger_service import replay_stock_log


def _payload(**overrides):
    body = {
        "sku": "LAMP-01",
        "name": "Desk Lamp",
        "category": "Lighting",
        "price_cents": 3999,
        "cost_price_cents": 2100,
        "stock_qty": 12,
        "min_stock_level": 4,
    }
    body.update(overrides)
    return body


class TestCreateProduct:
    def test_create_posts_initial_stock(self, client, admin_headers, supplier):
        response = client.post("/api/products", json=_payload(supplier_id=supplier.id, currency="eur"), headers=admin_headers)

        assert response.status_code == 201
        product = response.get_json()
        assert product["stock_qty"] == 12
        assert product["currency"] == "EUR"
        assert product["supplier_name"] == "Acme Parts"

        logs = StockLog.query.filter_by(product_id=product["id"]).all()
        assert [(log.type, log.quantity, log.reason) for log in logs] == [
            ("IN", 12, "Initial stock on product creation"),
        ]

    def test_zero_initial_stock_has_no_log(self, client, admin_headers):
        response = client.post("/api/products", json=_payload(stock_qty=0), headers=admin_headers)
        assert response.status_code == 201
        assert StockLog.query.count() == 0

    def test_duplicate_sku_conflicts(self, client, admin_headers):
        client.post("/api/products", json=_payload(), headers=admin_headers)
        response = client.post("/api/products", json=_payload(name="Other"), headers=admin_headers)
        assert response.status_code == 409
        assert response.get_json() == {"error": "A product with this SKU already exists"}

    @pytest.mark.parametrize("overrides", [
        {"price_cents": 0},
        {"cost_price_cents": -1},
        {"price_cents": 12.5},
        {"stock_qty": -2},
        {"min_stock_level": -1},
        {"currency": "EURO"},
        {"name": ""},
        {"version_id": 9},
    ])
    def test_invalid_payloads(self, client, admin_headers, overrides):
        response = client.post("/api/products", json=_payload(**overrides), headers=admin_headers)
        assert response.status_code == 400
        assert Product.query.count() == 0

    def test_unknown_supplier(self, client, admin_headers):
        response = client.post("/api/products", json=_payload(supplier_id=42), headers=admin_headers)
        assert response.status_code == 404

    def test_staff_forbidden(self, client, staff_headers):
        response = client.post("/api/products", json=_payload(), headers=staff_headers)
        assert response.status_code == 403


class TestUpdateProduct:
    def test_cost_change_records_manual_history(self, client, admin_headers, make_product):
        product = make_product(cost_price_cents=500)

        response = client.put(f"/api/products/{product.id}", json={"cost_price_cents": 550}, headers=admin_headers)

        assert response.status_code == 200
        history = PriceHistory.query.filter_by(product_id=product.id).all()
        assert [(h.old_price_cents, h.new_price_cents, h.source) for h in history] == [(500, 550, "MANUAL")]

    def test_unchanged_cost_records_nothing(self, client, admin_headers, make_product):
        product = make_product(cost_price_cents=500)
        client.put(f"/api/products/{product.id}", json={"cost_price_cents": 500}, headers=admin_headers)
        assert PriceHistory.query.count() == 0

    def test_stock_edit_becomes_adjustment(self, client, admin_headers, make_product):
        product = make_product(stock_qty=10)

        response = client.put(
            f"/api/products/{product.id}",
            json={"stock_qty": 7, "name": "Renamed"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.get_json()["stock_qty"] == 7
        assert response.get_json()["name"] == "Renamed"
        adjustment = StockLog.query.filter_by(product_id=product.id, type="ADJUSTMENT").one()
        assert adjustment.quantity == 3
        assert adjustment.reason == "Manual stock adjustment"
        assert replay_stock_log(product.id) == 7

    def test_sku_collision(self, client, admin_headers, make_product):
        first = make_product()
        second = make_product()
        response = client.put(f"/api/products/{second.id}", json={"sku": first.sku}, headers=admin_headers)
        assert response.status_code == 409

    def test_missing_product(self, client, admin_headers):
        response = client.put("/api/products/999", json={"name": "x"}, headers=admin_headers)
        assert response.status_code == 404


class TestReadProducts:
    def test_detail_includes_audit_trail(self, client, staff_headers, make_product):
        product = make_product(stock_qty=3)

        body = client.get(f"/api/products/{product.id}", headers=staff_headers).get_json()

        assert body["sku"] == product.sku
        assert body["supplier"] is None
        assert len(body["stock_logs"]) == 1
        assert body["price_history"] == []

    def test_filters(self, client, staff_headers, make_product):
        make_product(name="Blue Pen", category="Stationery", stock_qty=50)
        make_product(name="Red Pen", category="Stationery", stock_qty=1)
        make_product(name="Stapler", category="Office", stock_qty=1)

        search = client.get("/api/products?search=pen", headers=staff_headers).get_json()
        assert [p["name"] for p in search["items"]] == ["Blue Pen", "Red Pen"]

        low = client.get("/api/products?low_stock=true&category=Stationery", headers=staff_headers).get_json()
        assert [p["name"] for p in low["items"]] == ["Red Pen"]

    def test_pagination(self, client, staff_headers, make_product):
        for _ in range(3):
            make_product()

        body = client.get("/api/products?page=2&per_page=2", headers=staff_headers).get_json()

        assert body["count"] == 1
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["has_prev"] is True
        assert body["pagination"]["has_next"] is False


class TestDeleteProduct:
    def test_delete_removes_dependents(self, client, admin_headers, admin_user, supplier, make_product):
        doomed = make_product(stock_qty=10, cost_price_cents=100)
        kept = make_product(stock_qty=10)
        create_sale(doomed.id, admin_user.id, 2)
        order = create_purchase_order(
            supplier_id=supplier.id,
            items=[
                {"product_id": doomed.id, "quantity": 1, "unit_price_cents": 100},
                {"product_id": kept.id, "quantity": 2, "unit_price_cents": 300},
            ],
        )
        client.put(f"/api/products/{doomed.id}", json={"cost_price_cents": 120}, headers=admin_headers)

        response = client.delete(f"/api/products/{doomed.id}", headers=admin_headers)

        assert response.status_code == 200
        assert db.session.get(Product, doomed.id) is None
        assert StockLog.query.filter_by(product_id=doomed.id).count() == 0
        assert PriceHistory.query.filter_by(product_id=doomed.id).count() == 0
        assert Sale.query.filter_by(product_id=doomed.id).count() == 0

        order = db.session.get(PurchaseOrder, order.id)
        assert [item.product_id for item in order.items] == [kept.id]
        assert order.total_amount_cents == 600
        assert db.session.get(Product, kept.id).stock_qty == 10

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/api/products/5", headers=admin_headers).status_code == 404
