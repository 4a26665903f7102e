import json

import httpx
import pytest

from conftest import RecordingNotifier
from inventory_erp.errors import NotificationError
from inventory_erp.services.alert_service import build_notice, check_and_alert, find_low_stock_products
from inventory_erp.services.notification_service import EmailNotifier, LowStockNotice


def _notice(**overrides):
    values = dict(
        product_id=1,
        product_name="Widget <XL>",
        sku="W-1",
        current_stock=2,
        min_stock_level=5,
        supplier_name="Acme Parts",
        supplier_email="sales@acme.test",
    )
    values.update(overrides)
    return LowStockNotice(**values)


class TestLowStockDetection:
    def test_threshold_is_strict(self, make_product):
        below = make_product(stock_qty=2, min_stock_level=3)
        make_product(stock_qty=3, min_stock_level=3)
        make_product(stock_qty=8, min_stock_level=3)

        assert [p.id for p in find_low_stock_products()] == [below.id]

    def test_zero_minimum_never_alerts(self, make_product):
        make_product(stock_qty=0, min_stock_level=0)
        assert find_low_stock_products() == []

    def test_notice_without_supplier(self, make_product):
        product = make_product(stock_qty=1, min_stock_level=3)
        notice = build_notice(product)
        assert notice.supplier_name == "No supplier"
        assert notice.supplier_email == "N/A"

    def test_notice_with_supplier(self, supplier, make_product):
        product = make_product(stock_qty=1, min_stock_level=3, supplier_id=supplier.id)
        notice = build_notice(product)
        assert notice.supplier_name == "Acme Parts"
        assert notice.supplier_email == "sales@acme.test"
        assert notice.subject == f"Low Stock Alert: {product.name} ({product.sku})"


class TestCheckAndAlert:
    def test_every_low_product_is_notified(self, make_product):
        first = make_product(stock_qty=0)
        second = make_product(stock_qty=1)
        make_product(stock_qty=50)
        notifier = RecordingNotifier()

        results = check_and_alert(notifier=notifier)

        assert [r.product_id for r in results] == [first.id, second.id]
        assert all(r.success for r in results)
        assert [n.sku for n in notifier.sent] == [first.sku, second.sku]

    def test_repeat_runs_alert_again(self, make_product):
        make_product(stock_qty=0)
        notifier = RecordingNotifier()

        check_and_alert(notifier=notifier)
        check_and_alert(notifier=notifier)

        assert len(notifier.sent) == 2

    def test_delivery_failure_is_isolated(self, make_product):
        first = make_product(stock_qty=0)
        second = make_product(stock_qty=0)
        third = make_product(stock_qty=0)
        notifier = RecordingNotifier(fail_skus={second.sku})

        results = check_and_alert(notifier=notifier)

        assert [r.success for r in results] == [True, False, True]
        assert results[1].error == "mailbox unavailable"
        assert [n.sku for n in notifier.sent] == [first.sku, third.sku]

    def test_unconfigured_notifier_fails_each_product(self, app, make_product):
        make_product(stock_qty=0)
        make_product(stock_qty=0)
        app.config["RESEND_API_KEY"] = None

        results = check_and_alert()

        assert len(results) == 2
        assert not any(r.success for r in results)


class TestEmailNotifier:
    def test_posts_resend_payload(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_1"})

        notifier = EmailNotifier(
            api_url="https://mail.test/emails",
            api_key="re_key",
            sender="alerts@inventory.test",
            recipient="buyer@inventory.test",
            transport=httpx.MockTransport(handler),
        )
        notifier.send(_notice())

        assert captured["auth"] == "Bearer re_key"
        assert captured["body"]["to"] == ["buyer@inventory.test"]
        assert captured["body"]["subject"] == "Low Stock Alert: Widget <XL> (W-1)"
        assert "Widget &lt;XL&gt;" in captured["body"]["html"]
        assert "Acme Parts" in captured["body"]["html"]

    def test_error_status_raises(self):
        notifier = EmailNotifier(
            api_url="https://mail.test/emails",
            api_key="re_key",
            sender="a@inventory.test",
            recipient="b@inventory.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(422)),
        )
        with pytest.raises(NotificationError):
            notifier.send(_notice())

    def test_missing_configuration_raises(self):
        notifier = EmailNotifier(api_url="https://mail.test/emails", api_key=None, sender=None, recipient=None)
        assert notifier.configured is False
        with pytest.raises(NotificationError):
            notifier.send(_notice())
