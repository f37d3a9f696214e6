"""
Order pricing, numbering, creation rules and kitchen status updates.
"""

from datetime import datetime

import pytest

from app.core.exceptions import ValidationError
from app.models import Order, OrderType, Role
from app.services.orders import calculate_totals, generate_order_number, line_prices, load_order


# =============================================================================
# PRICING
# =============================================================================

def test_line_price_uses_base_price():
    assert line_prices(25.0, 2) == (25.0, 50.0)


def test_line_price_variant_replaces_base_and_addons_add():
    unit, total = line_prices(25.0, 3, variant_price=30.0, addon_prices=[10.0, 5.0])

    assert unit == 45.0
    assert total == 135.0


def test_totals_with_tax_and_discount():
    totals = calculate_totals([50.0, 15.0], tax_rate=0.05, discount=5.0)

    assert totals.subtotal == 65.0
    assert totals.tax == 3.25
    assert totals.discount == 5.0
    assert totals.total == 63.25


def test_discount_above_subtotal_rejected():
    with pytest.raises(ValidationError, match="Discount cannot exceed subtotal"):
        calculate_totals([10.0], tax_rate=0.05, discount=10.01)


# =============================================================================
# NUMBERING
# =============================================================================

def _stored_order(number: str) -> Order:
    return Order(
        order_number=number,
        order_type=OrderType.TAKEAWAY,
        subtotal=1.0,
        tax=0.0,
        total=1.0,
    )


def test_first_number_of_the_day(run_db):
    number = run_db(generate_order_number, datetime(2025, 1, 14, 9, 30))

    assert number == "DF-20250114-00001"


def test_number_continues_sequence(run_db):
    async def seed(db):
        db.add_all([
            _stored_order("DF-20250114-00007"),
            _stored_order("DF-20250114-00003"),
            _stored_order("DF-20250113-00042"),
        ])
        await db.commit()

    run_db(seed)

    assert run_db(generate_order_number, datetime(2025, 1, 14, 18, 0)) == "DF-20250114-00008"
    assert run_db(generate_order_number, datetime(2025, 1, 15, 8, 0)) == "DF-20250115-00001"


def test_unparsable_number_falls_back_to_timestamp(run_db):
    async def seed(db):
        db.add(_stored_order("DF-20250114-zz"))
        await db.commit()

    run_db(seed)
    now = datetime(2025, 1, 14, 12, 0)

    assert run_db(generate_order_number, now) == f"DF-{int(now.timestamp() * 1000)}"


def test_orders_created_in_sequence(cashier, place_order):
    first = place_order(cashier)
    second = place_order(cashier)

    assert first["order_number"].startswith("DF-")
    assert int(second["order_number"][-5:]) == int(first["order_number"][-5:]) + 1


# =============================================================================
# CREATE
# =============================================================================

def test_create_order_prices_from_menu(client, menu, cashier, auth):
    """Large jollof with chicken x2 plus a coke; 5% default tax."""
    response = client.post(
        "/api/orders",
        json={
            "order_type": "TAKEAWAY",
            "items": [
                {
                    "menu_item_id": menu["jollof"],
                    "variant_id": menu["large"],
                    "addon_ids": [menu["chicken"], "unknown-addon"],
                    "quantity": 2,
                    "notes": "extra pepper",
                },
                {"menu_item_id": menu["coke"], "quantity": 1},
            ],
        },
        headers=auth(cashier),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Order created successfully"
    order = body["order"]
    assert order["subtotal"] == 85.0
    assert order["tax"] == 4.25
    assert order["total"] == 89.25
    assert order["status"] == "PENDING"
    assert order["payment_status"] == "PENDING"
    assert order["created_by_id"] == cashier.id
    assert order["customer_id"] is None

    jollof_line = next(line for line in order["items"] if line["menu_item_id"] == menu["jollof"])
    assert jollof_line["unit_price"] == 40.0
    assert jollof_line["total_price"] == 80.0
    assert [a["addon_id"] for a in jollof_line["addons"]] == [menu["chicken"]]


def test_customer_online_order(client, menu, customer, auth):
    response = client.post(
        "/api/orders",
        json={
            "order_type": "ONLINE",
            "delivery_address": "12 Oxford St, Osu",
            "contact_phone": "0241234567",
            "items": [{"menu_item_id": menu["coke"], "quantity": 1}],
        },
        headers=auth(customer),
    )

    assert response.status_code == 201
    order = response.json()["order"]
    assert order["customer_id"] == customer.id
    assert order["created_by_id"] is None
    assert order["delivery_address"] == "12 Oxford St, Osu"


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"order_type": "ONLINE", "contact_phone": "0241234567"}, "Delivery address is required for online orders"),
        ({"order_type": "ONLINE", "delivery_address": "Osu"}, "Contact phone is required for online orders"),
        ({"order_type": "DINE_IN", "table_number": "  "}, "Table number is required for dine-in orders"),
    ],
)
def test_order_type_requirements(client, menu, customer, auth, payload, error):
    payload["items"] = [{"menu_item_id": menu["coke"], "quantity": 1}]

    response = client.post("/api/orders", json=payload, headers=auth(customer))

    assert response.status_code == 400
    assert response.json()["error"] == error


def test_unavailable_item_rejected(client, menu, cashier, auth):
    response = client.post(
        "/api/orders",
        json={"order_type": "TAKEAWAY", "items": [{"menu_item_id": menu["sold_out"], "quantity": 1}]},
        headers=auth(cashier),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Fufu is not available"


def test_variant_of_another_item_rejected(client, menu, cashier, auth):
    response = client.post(
        "/api/orders",
        json={
            "order_type": "TAKEAWAY",
            "items": [{"menu_item_id": menu["coke"], "variant_id": menu["large"], "quantity": 1}],
        },
        headers=auth(cashier),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid variant for Coke"


def test_empty_order_rejected(client, menu, cashier, auth):
    response = client.post("/api/orders", json={"order_type": "TAKEAWAY", "items": []}, headers=auth(cashier))

    assert response.status_code == 422


def test_order_blocked_when_day_closed(client, menu, cashier, auth):
    assert client.post("/api/day-session/close", headers=auth(cashier)).status_code == 200

    response = client.post(
        "/api/orders",
        json={"order_type": "TAKEAWAY", "items": [{"menu_item_id": menu["coke"], "quantity": 1}]},
        headers=auth(cashier),
    )

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Day is closed. Cannot create new orders.",
        "day_closed": True,
    }


# =============================================================================
# READ
# =============================================================================

def test_customer_sees_only_own_orders(client, make_user, auth, place_order):
    alice = make_user(Role.CUSTOMER)
    bob = make_user(Role.CUSTOMER)
    alice_order = place_order(alice)
    place_order(bob)

    listing = client.get("/api/orders", headers=auth(alice)).json()
    assert [o["id"] for o in listing["orders"]] == [alice_order["id"]]
    assert listing["total"] == 1

    response = client.get(f"/api/orders/{alice_order['id']}", headers=auth(bob))
    assert response.status_code == 404


def test_staff_list_filters_by_status(client, cashier, admin, auth, place_order):
    place_order(cashier)
    place_order(cashier, order_type="TAKEAWAY", table_number=None)

    everything = client.get("/api/orders", headers=auth(admin)).json()
    takeaway = client.get("/api/orders", params={"order_type": "TAKEAWAY"}, headers=auth(admin)).json()
    ready = client.get("/api/orders", params={"status": "READY"}, headers=auth(admin)).json()

    assert everything["total"] == 2
    assert takeaway["total"] == 1
    assert ready["total"] == 0


# =============================================================================
# STATUS
# =============================================================================

def test_kitchen_status_side_effects(client, cashier, kitchen, auth, place_order):
    order = place_order(cashier)

    preparing = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "PREPARING"}, headers=auth(kitchen)
    ).json()["order"]
    assert preparing["prepared_by_id"] == kitchen.id
    assert preparing["ready_at"] is None

    ready = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "READY"}, headers=auth(kitchen)
    ).json()["order"]
    assert ready["ready_at"] is not None

    completed = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "COMPLETED"}, headers=auth(kitchen)
    ).json()["order"]
    assert completed["status"] == "COMPLETED"
    assert completed["completed_at"] is not None
    assert completed["ready_at"] == ready["ready_at"]


def test_completing_directly_fills_ready_and_preparer(client, admin, cashier, auth, place_order):
    order = place_order(cashier)

    completed = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "COMPLETED"}, headers=auth(admin)
    ).json()["order"]

    assert completed["ready_at"] is not None
    assert completed["prepared_by_id"] == admin.id


def test_admin_preparing_does_not_claim_order(client, admin, cashier, auth, place_order):
    order = place_order(cashier)

    preparing = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "PREPARING"}, headers=auth(admin)
    ).json()["order"]

    assert preparing["prepared_by_id"] is None


def test_status_update_requires_kitchen_or_admin(client, cashier, auth, place_order):
    order = place_order(cashier)

    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "READY"}, headers=auth(cashier))

    assert response.status_code == 403


def test_status_update_unknown_order(client, kitchen, auth):
    response = client.put("/api/orders/missing/status", json={"status": "READY"}, headers=auth(kitchen))

    assert response.status_code == 404


def test_load_order_reads_lines(run_db, cashier, place_order):
    order = place_order(cashier)

    loaded = run_db(load_order, order["id"])

    assert loaded.order_number == order["order_number"]
    assert loaded.items[0].quantity == 2
    assert loaded.items[0].menu_item.name == "Coke"
