"""
Pytest fixtures for the inventory backend tests.

Provides an in-memory SQLite app per test, users with session tokens,
supplier/product factories, and httpx.MockTransport helpers for the
supplier, exchange-rate and e-mail collaborators.
"""

import bcrypt
import httpx
import pytest

from inventory_erp import create_app
from inventory_erp.extensions import db
from inventory_erp.models import Supplier, User
from inventory_erp.services import session_service
from inventory_erp.services.products_service import create_product

TEST_PASSWORD = "password123"
# Low bcrypt cost keeps fixture setup fast; verification works the same
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")

SUPPLIER_API = "https://supplier.test/api"

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "LOG_LEVEL": "WARNING",
    "CRON_SECRET": "test-cron-secret",
    "RESEND_API_KEY": "re_test_key",
    "ALERT_EMAIL_FROM": "alerts@inventory.test",
    "ALERT_EMAIL_TO": "buyer@inventory.test",
    "SUPPLIER_SYNC_MAX_WORKERS": 2,
}


@pytest.fixture(scope='function')
def app():
    """Create application for testing (fresh in-memory database per test)."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


def make_user(email: str, role: str, name: str | None = None) -> User:
    user = User(
        name=name or email.split("@")[0].title(),
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user("admin@inventory.test", "ADMIN")


@pytest.fixture(scope='function')
def staff_user(db_session):
    return make_user("staff@inventory.test", "STAFF")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    _, token = session_service.create_session(staff_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def supplier(db_session):
    """Supplier with an API endpoint (sync enabled)."""
    s = Supplier(name="Acme Parts", email="sales@acme.test", phone="555-0100", api_base_url=SUPPLIER_API)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def offline_supplier(db_session):
    """Supplier without an API endpoint."""
    s = Supplier(name="Corner Wholesale", email="orders@corner.test", phone="555-0199")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory creating products through the service so initial stock is logged."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        patch = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": f"Product {counter['n']}",
            "category": "General",
            "price_cents": 1000,
            "cost_price_cents": 600,
            "stock_qty": 0,
            "min_stock_level": 3,
        }
        patch.update(overrides)
        return create_product(patch=patch)

    return _make


def supplier_transport(responses: dict) -> httpx.MockTransport:
    """
    MockTransport answering GET .../products/<sku>.

    responses maps sku -> dict (200 JSON body), int (bare status code), or an
    exception instance to raise. Unknown SKUs get 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        sku = request.url.path.rsplit("/", 1)[-1]
        outcome = responses.get(sku)
        if outcome is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        return httpx.Response(200, json=outcome)

    return httpx.MockTransport(handler)


class RecordingNotifier:
    """Notifier double: records notices, fails for SKUs listed in fail_skus."""

    def __init__(self, fail_skus=()):
        self.fail_skus = set(fail_skus)
        self.sent = []

    def send(self, notice):
        from inventory_erp.errors import NotificationError

        if notice.sku in self.fail_skus:
            raise NotificationError("mailbox unavailable")
        self.sent.append(notice)
