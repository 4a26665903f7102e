import pytest

from conftest import TEST_PASSWORD
from inventory_erp.models import User
from inventory_erp.services.auth_service import (
    PasswordValidationError,
    authenticate,
    create_user,
    hash_password,
    verify_password,
)
from inventory_erp.validation import ConflictError, ValidationError


class TestAuthService:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_verifies(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_short_password(self):
        with pytest.raises(PasswordValidationError):
            hash_password("12345")

    def test_create_user_normalizes_email(self, db_session):
        user = create_user("Ann", "  Ann@Example.TEST ", "hunter22")
        assert user.email == "ann@example.test"
        assert user.role == "STAFF"

    def test_duplicate_email(self, db_session):
        create_user("Ann", "ann@example.test", "hunter22")
        with pytest.raises(ConflictError):
            create_user("Ann Two", "ANN@example.test", "hunter22")

    @pytest.mark.parametrize("name,email,role", [
        ("", "a@b.test", "STAFF"),
        ("A", "not-an-email", "STAFF"),
        ("A", "a@b.test", "OWNER"),
    ])
    def test_invalid_user_fields(self, db_session, name, email, role):
        with pytest.raises(ValidationError):
            create_user(name, email, "hunter22", role=role)

    def test_authenticate_stamps_last_login(self, staff_user):
        user = authenticate("STAFF@inventory.test", TEST_PASSWORD)
        assert user.id == staff_user.id
        assert user.last_login_at is not None

    def test_inactive_user_cannot_authenticate(self, db_session, staff_user):
        staff_user.is_active = False
        db_session.commit()
        assert authenticate(staff_user.email, TEST_PASSWORD) is None


class TestAuthRoutes:
    def test_register_creates_staff(self, client, db_session):
        resp = client.post("/api/auth/register", json={
            "name": "New Clerk", "email": "clerk@inventory.test", "password": "hunter22", "role": "ADMIN",
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "STAFF"
        assert db_session.query(User).filter_by(email="clerk@inventory.test").one().role == "STAFF"

    def test_register_short_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={"name": "X", "email": "x@inventory.test", "password": "123"})
        assert resp.status_code == 400

    def test_register_missing_fields(self, client, db_session):
        assert client.post("/api/auth/register", json={"email": "x@inventory.test"}).status_code == 400

    def test_login_and_me(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": admin_user.email, "password": TEST_PASSWORD})
        assert resp.status_code == 200
        token = resp.get_json()["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.get_json()["user"]["role"] == "ADMIN"

    def test_login_wrong_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": admin_user.email, "password": "nope-nope"})
        assert resp.status_code == 401
