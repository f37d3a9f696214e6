"""
Authentication and role-guard tests.

Covers registration, login by email or phone, token handling and the
role dependencies shared by every router.
"""

from datetime import timedelta

import jwt

from app.core.security import create_access_token, decode_access_token, hash_password, verify_password
from app.models import Role
from tests.conftest import DEFAULT_PASSWORD


# =============================================================================
# PASSWORDS & TOKENS
# =============================================================================

def test_password_hash_roundtrip():
    hashed = hash_password("hunter22")
    assert hashed != "hunter22"
    assert verify_password("hunter22", hashed)
    assert not verify_password("hunter23", hashed)


def test_verify_password_malformed_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_access_token_carries_user_id():
    token = create_access_token("user-123")
    assert decode_access_token(token)["user_id"] == "user-123"


def test_expired_token_rejected(client):
    token = create_access_token("user-123", expires_delta=timedelta(seconds=-5))
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Token expired"}


def test_foreign_token_rejected(client):
    token = jwt.encode({"user_id": "x"}, "some-other-secret", algorithm="HS256")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid token"


# =============================================================================
# REGISTER
# =============================================================================

def test_register_customer(client):
    """Self-registration always yields a CUSTOMER and returns a usable token."""
    response = client.post(
        "/api/auth/register",
        json={"email": "Ama@Example.com", "password": "secret123", "first_name": "Ama"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "ama@example.com"
    assert body["user"]["role"] == "CUSTOMER"
    assert "password" not in body["user"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


def test_register_duplicate_contact(client, make_user):
    make_user(email="taken@example.com")

    response = client.post(
        "/api/auth/register",
        json={"email": "taken@example.com", "password": "secret123"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "User already exists"


def test_register_requires_email_or_phone(client):
    response = client.post("/api/auth/register", json={"password": "secret123"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"


def test_register_rejects_short_password(client):
    response = client.post("/api/auth/register", json={"email": "a@example.com", "password": "123"})

    assert response.status_code == 422
    assert any(d["field"] == "password" for d in response.json()["details"])


# =============================================================================
# LOGIN
# =============================================================================

def test_login_with_email(client, make_user):
    user = make_user(Role.CASHIER, email="cashier@example.com")

    response = client.post(
        "/api/auth/login",
        json={"email": "cashier@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id
    assert response.json()["user"]["role"] == "CASHIER"


def test_login_with_phone(client, make_user):
    user = make_user(phone="0241234567")

    response = client.post("/api/auth/login", json={"phone": "024 123 4567", "password": DEFAULT_PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == user.id


def test_login_wrong_password(client, make_user):
    make_user(email="ama@example.com")

    response = client.post("/api/auth/login", json={"email": "ama@example.com", "password": "wrong-one"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid credentials"}


def test_login_inactive_user(client, make_user):
    make_user(email="gone@example.com", is_active=False)

    response = client.post(
        "/api/auth/login",
        json={"email": "gone@example.com", "password": DEFAULT_PASSWORD},
    )

    assert response.status_code == 401


# =============================================================================
# GUARDS & PROFILE
# =============================================================================

def test_missing_token(client):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["error"] == "No token provided"


def test_deactivated_user_token_rejected(client, make_user, auth):
    user = make_user(is_active=False)

    response = client.get("/api/auth/me", headers=auth(user))

    assert response.status_code == 401
    assert response.json()["error"] == "User not found or inactive"


def test_role_guard(client, customer, auth):
    response = client.get("/api/admin/dashboard", headers=auth(customer))

    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient permissions"


def test_update_profile(client, customer, auth):
    response = client.put(
        "/api/auth/profile",
        json={"first_name": "Akosua", "phone": "+233 20 123 4567"},
        headers=auth(customer),
    )

    assert response.status_code == 200
    assert response.json()["first_name"] == "Akosua"
    assert response.json()["phone"] == "+233201234567"


def test_update_profile_email_in_use(client, customer, make_user, auth):
    make_user(email="other@example.com")

    response = client.put("/api/auth/profile", json={"email": "other@example.com"}, headers=auth(customer))

    assert response.status_code == 400
    assert response.json()["error"] == "Email already in use"


def test_change_password(client, customer, auth):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new-pass"},
        headers=auth(customer),
    )
    assert response.status_code == 200

    login = client.post("/api/auth/login", json={"email": customer.email, "password": "brand-new-pass"})
    assert login.status_code == 200


def test_change_password_wrong_current(client, customer, auth):
    response = client.post(
        "/api/auth/change-password",
        json={"current_password": "not-it", "new_password": "brand-new-pass"},
        headers=auth(customer),
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Current password is incorrect"
