"""
Realtime relay tests.

Sockets are opened through the TestClient; REST calls made while a
socket is open push events to it synchronously.
"""

from app.core.security import create_access_token
from app.realtime import ConnectionManager, manager, role_room, user_room
from tests.conftest import auth_headers


def _connect(client, user=None):
    url = "/ws"
    if user is not None:
        url += f"?token={create_access_token(user.id)}"
    return client.websocket_connect(url)


def test_room_names():
    assert role_room("ADMIN") == "role:ADMIN"
    assert user_room("abc") == "user:abc"


def test_ping_pong(client):
    with _connect(client) as ws:
        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong", "data": {}}


def test_join_kitchen_acknowledged(client):
    with _connect(client) as ws:
        ws.send_json({"event": "join:kitchen"})
        assert ws.receive_json() == {"event": "joined", "data": {"room": "kitchen"}}


def test_authenticated_socket_joins_role_and_user_rooms(client, admin):
    with _connect(client, admin) as ws:
        ws.send_json({"event": "ping"})
        ws.receive_json()

        rooms = set().union(*(manager.rooms_of(socket) for socket in list(manager._connections)))

    assert role_room("ADMIN") in rooms
    assert user_room(admin.id) in rooms


def test_invalid_token_connects_anonymously(client):
    with client.websocket_connect("/ws?token=garbage") as ws:
        ws.send_json({"event": "ping"})
        assert ws.receive_json()["event"] == "pong"


def test_kitchen_room_receives_new_orders(client, cashier, place_order):
    with _connect(client) as ws:
        ws.send_json({"event": "join:kitchen"})
        ws.receive_json()

        order = place_order(cashier)

        message = ws.receive_json()
        assert message["event"] == "order:new"
        assert message["data"]["id"] == order["id"]
        assert message["data"]["items"][0]["name"] == "Coke"


def test_status_update_broadcast_to_everyone(client, cashier, kitchen, place_order):
    order = place_order(cashier)

    with _connect(client) as ws:
        client.put(
            f"/api/orders/{order['id']}/status",
            json={"status": "READY"},
            headers=auth_headers(kitchen),
        )

        message = ws.receive_json()
        assert message["event"] == "order:status-updated"
        assert message["data"]["order_id"] == order["id"]
        assert message["data"]["status"] == "READY"


def test_customer_notified_of_test_mode_payment(client, customer, place_order):
    order = place_order(
        customer,
        order_type="ONLINE",
        delivery_address="Osu",
        contact_phone="0241234567",
    )

    with _connect(client, customer) as ws:
        client.post("/api/payments/initialize", json={"order_id": order["id"]}, headers=auth_headers(customer))

        message = ws.receive_json()
        assert message["event"] == "order:paid"
        assert message["data"]["payment_status"] == "PAID"


def test_day_closed_broadcast(client, cashier):
    with _connect(client) as ws:
        client.post("/api/day-session/close", headers=auth_headers(cashier))

        message = ws.receive_json()
        assert message["event"] == "day:closed"
        assert message["data"]["closed_by"]["id"] == cashier.id


def test_emit_targets_rooms_once(client):
    """A socket in two target rooms receives the event a single time."""

    class FakeSocket:
        def __init__(self):
            self.sent = []

        async def send_json(self, message):
            self.sent.append(message)

    relay = ConnectionManager()
    both, kitchen_only, outsider = FakeSocket(), FakeSocket(), FakeSocket()
    relay._connections = {both: {"kitchen", "pos"}, kitchen_only: {"kitchen"}, outsider: set()}

    delivered = client.portal.call(relay.emit, "order:new", {"id": "1"}, "kitchen", "pos")

    assert delivered == 2
    assert len(both.sent) == 1
    assert len(kitchen_only.sent) == 1
    assert outsider.sent == []


def test_emit_drops_dead_sockets(client):
    class DeadSocket:
        async def send_json(self, message):
            raise RuntimeError("closed")

    relay = ConnectionManager()
    relay._connections = {DeadSocket(): set()}

    assert client.portal.call(relay.emit, "ping", {}) == 0
    assert relay.connection_count == 0


def test_chat_events_reach_admins_and_the_customer(client, admin, customer):
    """Admins hear about new chats; replies and status changes reach both sides."""
    with _connect(client, admin) as admin_ws, _connect(client, customer) as customer_ws:
        created = client.post(
            "/api/chat",
            json={"message": "Is the jollof spicy?"},
            headers=auth_headers(customer),
        ).json()["chat"]

        opened = admin_ws.receive_json()
        assert opened["event"] == "chat:new"
        assert opened["data"]["id"] == created["id"]

        client.post(
            f"/api/chat/{created['id']}/messages",
            json={"message": "Medium, we can make it mild"},
            headers=auth_headers(admin),
        )

        for ws in (admin_ws, customer_ws):
            message = ws.receive_json()
            assert message["event"] == "chat:message"
            assert message["data"]["chat_id"] == created["id"]
            assert message["data"]["message"]["message"] == "Medium, we can make it mild"

        client.put(
            f"/api/chat/{created['id']}/status",
            json={"status": "RESOLVED"},
            headers=auth_headers(admin),
        )

        for ws in (admin_ws, customer_ws):
            assert ws.receive_json() == {
                "event": "chat:status-updated",
                "data": {"chat_id": created["id"], "status": "RESOLVED"},
            }
