import pytest

from inventory_erp.extensions import db
from inventory_erp.models import Product, Supplier
from inventory_erp.services.purchase_order_service import create_purchase_order


class TestSupplierRoutes:
    def test_create_normalizes_api_url(self, client, admin_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Globex", "email": "buy@globex.test", "phone": "555-0111", "api_base_url": "https://globex.test/v1/"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["api_base_url"] == "https://globex.test/v1"
        assert body["sync_enabled"] is True

    def test_blank_api_url_disables_sync(self, client, admin_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Initech", "email": "buy@initech.test", "phone": "555", "api_base_url": ""},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["sync_enabled"] is False

    @pytest.mark.parametrize("payload", [
        {"name": "X", "email": "not-an-email", "phone": "1"},
        {"name": "X", "email": "x@x.test", "phone": "1", "api_base_url": "ftp://x.test"},
        {"email": "x@x.test", "phone": "1"},
    ])
    def test_invalid_payloads(self, client, admin_headers, payload):
        resp = client.post("/api/suppliers", json=payload, headers=admin_headers)
        assert resp.status_code == 400

    def test_list_with_counts(self, client, staff_headers, supplier, offline_supplier, make_product):
        make_product(supplier_id=supplier.id)
        make_product(supplier_id=supplier.id)

        body = client.get("/api/suppliers", headers=staff_headers).get_json()

        assert body["count"] == 2
        counts = {s["name"]: s["product_count"] for s in body["items"]}
        assert counts == {"Acme Parts": 2, "Corner Wholesale": 0}

    def test_search(self, client, staff_headers, supplier, offline_supplier):
        body = client.get("/api/suppliers?search=corner", headers=staff_headers).get_json()
        assert [s["name"] for s in body["items"]] == ["Corner Wholesale"]

    def test_detail(self, client, staff_headers, supplier, make_product):
        make_product(supplier_id=supplier.id, name="Gear")
        body = client.get(f"/api/suppliers/{supplier.id}", headers=staff_headers).get_json()
        assert [p["name"] for p in body["products"]] == ["Gear"]
        assert body["purchase_orders"] == []

    def test_update(self, client, admin_headers, supplier):
        resp = client.put(f"/api/suppliers/{supplier.id}", json={"phone": "555-9999"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["phone"] == "555-9999"


class TestDeleteSupplier:
    def test_detaches_products(self, client, admin_headers, supplier, make_product):
        product = make_product(supplier_id=supplier.id)

        resp = client.delete(f"/api/suppliers/{supplier.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert db.session.get(Supplier, supplier.id) is None
        assert db.session.get(Product, product.id).supplier_id is None

    def test_refused_with_purchase_orders(self, client, admin_headers, supplier, make_product):
        product = make_product(supplier_id=supplier.id)
        create_purchase_order(
            supplier_id=supplier.id,
            items=[{"product_id": product.id, "quantity": 1, "unit_price_cents": 100}],
        )

        resp = client.delete(f"/api/suppliers/{supplier.id}", headers=admin_headers)

        assert resp.status_code == 409
        assert resp.get_json()["purchase_order_count"] == 1
        assert db.session.get(Supplier, supplier.id) is not None
