from inventory_erp.extensions import db
from inventory_erp.models import Product, User


def test_system_init_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--admin-password", "change-me"])
    second = runner.invoke(args=["system", "init", "--admin-password", "change-me"])

    assert first.exit_code == 0, first.output
    assert "PASS Created admin" in first.output
    assert "PASS Using existing admin" in second.output
    assert db.session.query(User).filter_by(role="ADMIN").count() == 1


def test_users_create_admin(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--name", "Ops", "--email", "ops@inventory.test",
        "--password", "hunter22", "--role", "ADMIN",
    ])

    assert result.exit_code == 0, result.output
    assert db.session.query(User).filter_by(email="ops@inventory.test").one().role == "ADMIN"


def test_users_create_reports_validation_error(app):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--name", "Ops", "--email", "ops@inventory.test", "--password", "123",
    ])
    assert result.exit_code != 0
    assert "at least 6 characters" in result.output


def test_stock_reconcile_flags_drift(app, make_product):
    healthy = make_product(stock_qty=3)
    drifted = make_product(stock_qty=3)
    db.session.execute(
        Product.__table__.update().where(Product.id == drifted.id).values(stock_qty=9)
    )
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["stock", "reconcile"])

    assert result.exit_code == 1
    assert f"PASS {healthy.sku}: 3" in result.output
    assert f"FAIL {drifted.sku}: stored 9, replayed 3" in result.output


def test_low_stock_alerts_command(app, make_product):
    make_product(stock_qty=0)
    app.config["RESEND_API_KEY"] = None

    result = app.test_cli_runner().invoke(args=["jobs", "low-stock-alerts"])

    assert result.exit_code == 0
    assert "1 low-stock products" in result.output
