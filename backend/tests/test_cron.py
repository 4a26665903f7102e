import pytest

from conftest import RecordingNotifier, auth_headers, supplier_transport
from inventory_erp.models import Product
from inventory_erp.services import jobs_service, sync_service
from inventory_erp.services.supplier_client import SupplierClient


def test_scheduled_job_runs_sync_then_alerts(db_session, supplier, make_product):
    product = make_product(supplier_id=supplier.id, stock_qty=1, cost_price_cents=100)
    client = SupplierClient(transport=supplier_transport({product.sku: {"price": 2, "stock": 0}}))
    notifier = RecordingNotifier()

    summary = jobs_service.run_scheduled_job(client=client, notifier=notifier)

    assert [r["success"] for r in summary["sync_results"]] == [True]
    assert [r["sku"] for r in summary["alert_results"]] == [product.sku]
    assert summary["timestamp"].endswith("Z")
    # Supplier stock is informational only
    assert db_session.get(Product, product.id).stock_qty == 1


class TestCronRoute:
    @pytest.mark.parametrize("headers", [
        {},
        auth_headers("wrong-secret"),
        {"Authorization": "test-cron-secret"},
    ])
    def test_rejects_bad_secret(self, client, db_session, headers):
        assert client.get("/api/cron", headers=headers).status_code == 401

    def test_refuses_when_secret_unset(self, app, client, db_session):
        app.config["CRON_SECRET"] = None
        resp = client.get("/api/cron", headers=auth_headers("test-cron-secret"))
        assert resp.status_code == 401

    def test_runs_with_secret(self, app, client, supplier, make_product, monkeypatch):
        product = make_product(supplier_id=supplier.id, stock_qty=0)
        transport = supplier_transport({product.sku: 500})
        monkeypatch.setattr(
            sync_service,
            "_client_from_app",
            lambda: SupplierClient.from_config(app.config, transport=transport),
        )
        app.config["RESEND_API_KEY"] = None

        resp = client.post("/api/cron", headers=auth_headers("test-cron-secret"))

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["sync_results"][0]["success"] is False
        assert body["alert_results"][0]["success"] is False
        assert set(body) == {"sync_results", "alert_results", "timestamp"}
