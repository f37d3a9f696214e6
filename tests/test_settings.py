"""System settings visibility and updates."""

import pytest

from app.models import Role


def test_defaults_created_on_first_read(client):
    response = client.get("/api/settings")

    assert response.status_code == 200
    body = response.json()
    assert body["tax_rate"] == 0.05
    assert body["currency"] == "GHS"
    assert body["auto_confirm_orders"] is False
    assert body["require_payment_before_prep"] is False
    assert "paystack_secret_key" not in body


def test_secrets_visible_to_admin_only(client, admin, cashier, auth):
    client.put(
        "/api/settings",
        json={"paystack_secret_key": "sk_test_live_looking", "paystack_public_key": "pk_test_1"},
        headers=auth(admin),
    )

    public = client.get("/api/settings").json()
    staff = client.get("/api/settings", headers=auth(cashier)).json()
    owner = client.get("/api/settings", headers=auth(admin)).json()

    assert "paystack_secret_key" not in public
    assert "paystack_secret_key" not in staff
    assert public["paystack_public_key"] == "pk_test_1"
    assert owner["paystack_secret_key"] == "sk_test_live_looking"


def test_update_tax_rate_applies_to_new_orders(client, admin, cashier, auth, place_order):
    response = client.put("/api/settings", json={"tax_rate": 0.1, "restaurant_name": "Osu Grill"}, headers=auth(admin))

    assert response.status_code == 200
    assert response.json()["restaurant_name"] == "Osu Grill"

    order = place_order(cashier)
    assert order["tax"] == 1.0
    assert order["total"] == 11.0


@pytest.mark.parametrize("tax_rate", [-0.1, 1.5])
def test_tax_rate_bounds(client, admin, auth, tax_rate):
    response = client.put("/api/settings", json={"tax_rate": tax_rate}, headers=auth(admin))

    assert response.status_code == 422


def test_settings_update_is_admin_only(client, make_user, auth):
    receptionist = make_user(Role.RECEPTIONIST)

    response = client.put("/api/settings", json={"tax_rate": 0.2}, headers=auth(receptionist))

    assert response.status_code == 403


def test_settings_update_audited_without_secret_values(client, admin, auth):
    client.put("/api/settings", json={"paystack_secret_key": "sk_test_hidden"}, headers=auth(admin))

    logs = client.get(
        "/api/admin/audit-logs", params={"action": "UPDATE_SYSTEM_SETTINGS"}, headers=auth(admin)
    ).json()["logs"]

    assert len(logs) == 1
    assert logs[0]["details"]["secrets_changed"] == ["paystack_secret_key"]
    assert "sk_test_hidden" not in str(logs[0]["details"])
