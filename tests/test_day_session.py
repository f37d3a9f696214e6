"""Business-day open/close cycle and the day summary."""

from kombu.exceptions import OperationalError

from app.models import Role


def _pay(client, order, cashier, auth, method="CASH"):
    response = client.post(
        "/api/payments/pos",
        json={"order_id": order["id"], "payment_method": method, "amount": order["total"]},
        headers=auth(cashier),
    )
    assert response.status_code == 200


def test_status_opens_today(client, customer, auth):
    response = client.get("/api/day-session/status", headers=auth(customer))

    assert response.status_code == 200
    session = response.json()
    assert session["is_closed"] is False
    assert len(session["date"]) == 10


def test_summary_counts_paid_revenue_by_method(client, cashier, auth, place_order):
    cash_order = place_order(cashier)
    card_order = place_order(cashier, order_type="TAKEAWAY", table_number=None)
    place_order(cashier)
    _pay(client, cash_order, cashier, auth, "CASH")
    _pay(client, card_order, cashier, auth, "CARD")

    summary = client.get("/api/day-session/summary", headers=auth(cashier)).json()

    assert summary["total_orders"] == 3
    assert summary["paid_orders"] == 2
    assert summary["unpaid_orders"] == 1
    assert summary["total_cash"] == 10.5
    assert summary["total_card"] == 10.5
    assert summary["total_revenue"] == 21.0
    assert summary["orders_by_type"]["DINE_IN"] == 2
    assert summary["orders_by_status"]["CONFIRMED"] == 2
    assert summary["orders_by_status"]["PENDING"] == 1


def test_summary_is_staff_only(client, customer, auth):
    assert client.get("/api/day-session/summary", headers=auth(customer)).status_code == 403


def test_close_day_freezes_totals_and_queues_export(client, cashier, auth, place_order, export_task):
    order = place_order(cashier)
    _pay(client, order, cashier, auth, "MOMO")

    response = client.post("/api/day-session/close", json={"notes": "Quiet evening"}, headers=auth(cashier))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Day closed successfully"
    session = body["day_session"]
    assert session["is_closed"] is True
    assert session["closed_by_id"] == cashier.id
    assert session["total_orders"] == 1
    assert session["total_momo"] == 10.5
    assert session["notes"] == "Quiet evening"

    export_task.delay.assert_called_once()
    session_data, rows = export_task.delay.call_args.args
    assert session_data["date"] == session["date"]
    assert [row["order_number"] for row in rows] == [order["order_number"]]


def test_close_day_survives_broker_outage(client, cashier, auth, export_task):
    export_task.delay.side_effect = OperationalError("Error 111 connecting to redis:6379")

    response = client.post("/api/day-session/close", headers=auth(cashier))

    assert response.status_code == 200
    assert response.json()["day_session"]["is_closed"] is True


def test_close_twice_rejected(client, cashier, auth):
    client.post("/api/day-session/close", headers=auth(cashier))

    response = client.post("/api/day-session/close", headers=auth(cashier))

    assert response.status_code == 400
    assert response.json()["error"] == "Day is already closed"


def test_customer_cannot_close_day(client, customer, auth):
    assert client.post("/api/day-session/close", headers=auth(customer)).status_code == 403


def test_reopen_requires_admin_and_closed_day(client, cashier, admin, auth):
    still_open = client.post("/api/day-session/open", headers=auth(admin))
    assert still_open.status_code == 400
    assert still_open.json()["error"] == "Day is already open"

    client.post("/api/day-session/close", headers=auth(cashier))
    assert client.post("/api/day-session/open", headers=auth(cashier)).status_code == 403

    reopened = client.post("/api/day-session/open", headers=auth(admin))
    assert reopened.status_code == 200
    assert reopened.json()["day_session"]["is_closed"] is False
    assert reopened.json()["day_session"]["closed_at"] is None


def test_orders_resume_after_reopen(client, menu, cashier, admin, auth, place_order):
    client.post("/api/day-session/close", headers=auth(cashier))
    client.post("/api/day-session/open", headers=auth(admin))

    order = place_order(cashier)

    assert order["status"] == "PENDING"


def test_history(client, admin, make_user, auth):
    client.get("/api/day-session/status", headers=auth(admin))

    response = client.get("/api/day-session/history", params={"limit": 1}, headers=auth(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["has_more"] is False
    assert len(body["day_sessions"]) == 1

    kitchen = make_user(Role.KITCHEN_STAFF)
    assert client.get("/api/day-session/history", headers=auth(kitchen)).status_code == 403
