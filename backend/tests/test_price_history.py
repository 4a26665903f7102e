import pytest

from inventory_erp.extensions import db
from inventory_erp.models import PriceHistory
from inventory_erp.services.price_history_service import list_price_history, record_if_changed
from inventory_erp.validation import ValidationError


def test_equal_prices_add_no_row(make_product):
    product = make_product(cost_price_cents=500)

    assert record_if_changed(product.id, 500, 500, "MANUAL") is None
    db.session.commit()

    assert PriceHistory.query.filter_by(product_id=product.id).count() == 0


def test_changed_price_adds_one_row(make_product):
    product = make_product(cost_price_cents=500)

    entry = record_if_changed(product.id, 500, 650, "SUPPLIER_SYNC")
    db.session.commit()

    history = list_price_history(product.id)
    assert [h.id for h in history] == [entry.id]
    assert history[0].old_price_cents == 500
    assert history[0].new_price_cents == 650
    assert history[0].source == "SUPPLIER_SYNC"


def test_unknown_source_rejected(make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        record_if_changed(product.id, 100, 200, "IMPORT")


def test_history_is_newest_first(make_product):
    product = make_product(cost_price_cents=100)
    record_if_changed(product.id, 100, 200, "MANUAL")
    db.session.commit()
    record_if_changed(product.id, 200, 300, "MANUAL")
    db.session.commit()

    assert [h.new_price_cents for h in list_price_history(product.id)] == [300, 200]
