"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Staff role denied admin operations (403)
- Admin role can perform privileged operations
- Public endpoints stay open
"""

import pytest

from conftest import auth_headers
from inventory_erp.models import SessionToken
from inventory_erp.services import session_service
from inventory_erp.time_utils import utcnow


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/1"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/purchase-orders"),
            ("PATCH", "/api/purchase-orders/1"),
            ("POST", "/api/sync"),
            ("GET", "/api/dashboard"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# STAFF DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestStaffDeniedAdminOperations:
    """Staff can sell and read, but not manage catalog or purchasing."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/products"),
            ("PUT", "/api/products/1"),
            ("DELETE", "/api/products/1"),
            ("POST", "/api/suppliers"),
            ("PUT", "/api/suppliers/1"),
            ("DELETE", "/api/suppliers/1"),
            ("PATCH", "/api/purchase-orders/1"),
            ("DELETE", "/api/purchase-orders/1"),
            ("POST", "/api/sync"),
        ],
    )
    def test_forbidden(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_role"] == ["ADMIN"]

    def test_can_read_dashboard(self, client, staff_headers):
        assert client.get("/api/dashboard", headers=staff_headers).status_code == 200


# =============================================================================
# ADMIN ACCESS
# =============================================================================


class TestAdminAccess:
    def test_can_create_supplier(self, client, admin_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "New Co", "email": "hi@new.test", "phone": "555"},
            headers=admin_headers,
        )
        assert resp.status_code == 201


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================


class TestSessions:
    def test_logout_revokes_token(self, client, staff_headers):
        assert client.post("/api/auth/logout", headers=staff_headers).status_code == 200
        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401

    def test_expired_token(self, client, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        session.expires_at = utcnow().replace(year=2000)
        db_session.commit()

        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_idle_token_is_revoked(self, client, db_session, staff_user):
        session, token = session_service.create_session(staff_user.id)
        session.last_used_at = utcnow().replace(year=2000)
        db_session.commit()

        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
        assert db_session.get(SessionToken, session.id).revoked_reason == "Idle timeout"

    def test_deactivated_user(self, client, db_session, staff_user, staff_headers):
        staff_user.is_active = False
        db_session.commit()

        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401


# =============================================================================
# PUBLIC ENDPOINTS
# =============================================================================


class TestPublicEndpoints:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()
