"""Support chat between customers (or guests) and the restaurant."""

from app.models import Role


def _open_chat(client, auth, user, message="Is the jollof spicy?"):
    return client.post("/api/chat", json={"message": message}, headers=auth(user))


def test_guest_opens_chat(client):
    response = client.post(
        "/api/chat",
        json={"customer_name": "Walk-in", "customer_email": "guest@example.com", "message": "Hello"},
    )

    assert response.status_code == 201
    chat = response.json()["chat"]
    assert chat["customer_id"] is None
    assert chat["customer_name"] == "Walk-in"
    assert chat["messages"][0]["sender_role"] == "CUSTOMER"


def test_customer_gets_existing_active_chat(client, customer, auth):
    first = _open_chat(client, auth, customer)
    second = _open_chat(client, auth, customer, message="Anyone there?")

    assert first.status_code == 201
    assert first.json()["message"] == "Chat created"
    assert first.json()["chat"]["customer_name"] == "Abena Mensah"
    assert second.status_code == 200
    assert second.json()["message"] == "Active chat found"
    assert second.json()["chat"]["id"] == first.json()["chat"]["id"]


def test_conversation_and_unread_counts(client, customer, admin, auth):
    chat_id = _open_chat(client, auth, customer).json()["chat"]["id"]

    reply = client.post(f"/api/chat/{chat_id}/messages", json={"message": "Mildly"}, headers=auth(admin))
    assert reply.status_code == 201
    assert reply.json()["message"]["sender_role"] == "ADMIN"
    assert reply.json()["message"]["sender_name"] == "Ama Admin"

    assert client.get("/api/chat/unread/count", headers=auth(customer)).json() == {"count": 1}
    assert client.get("/api/chat/unread/count", headers=auth(admin)).json() == {"count": 1}

    conversation = client.get(f"/api/chat/{chat_id}", headers=auth(customer)).json()
    assert len(conversation["messages"]) == 2
    assert client.get("/api/chat/unread/count", headers=auth(customer)).json() == {"count": 0}
    assert client.get("/api/chat/unread/count", headers=auth(admin)).json() == {"count": 1}


def test_staff_reply_on_restaurant_side(client, customer, make_user, auth):
    chat_id = _open_chat(client, auth, customer).json()["chat"]["id"]
    cashier = make_user(Role.CASHIER)

    reply = client.post(f"/api/chat/{chat_id}/messages", json={"message": "On it"}, headers=auth(cashier))

    assert reply.json()["message"]["sender_role"] == "ADMIN"


def test_chat_list_scoped_to_customer(client, customer, make_user, admin, auth):
    _open_chat(client, auth, customer)
    other = make_user(Role.CUSTOMER)
    _open_chat(client, auth, other)

    mine = client.get("/api/chat", headers=auth(customer)).json()["chats"]
    everything = client.get("/api/chat", headers=auth(admin)).json()["chats"]

    assert len(mine) == 1
    assert mine[0]["last_message"]["message"] == "Is the jollof spicy?"
    assert len(everything) == 2
    assert all(chat["unread_count"] == 1 for chat in everything)


def test_customers_cannot_touch_other_chats(client, customer, make_user, auth):
    chat_id = _open_chat(client, auth, customer).json()["chat"]["id"]
    intruder = make_user(Role.CUSTOMER)

    read = client.get(f"/api/chat/{chat_id}", headers=auth(intruder))
    write = client.post(f"/api/chat/{chat_id}/messages", json={"message": "hi"}, headers=auth(intruder))

    assert read.status_code == 404
    assert write.status_code == 403
    assert write.json()["error"] == "Access denied"


def test_guest_chat_claimed_on_first_signed_in_message(client, customer, auth):
    chat_id = client.post("/api/chat", json={"message": "Hi"}).json()["chat"]["id"]

    response = client.post(f"/api/chat/{chat_id}/messages", json={"message": "It's me"}, headers=auth(customer))

    assert response.status_code == 201
    assert response.json()["chat"]["customer_id"] == customer.id


def test_blank_message_rejected(client, customer, auth):
    chat_id = _open_chat(client, auth, customer).json()["chat"]["id"]

    response = client.post(f"/api/chat/{chat_id}/messages", json={"message": "   "}, headers=auth(customer))

    assert response.status_code == 422


def test_close_chat_admin_only(client, customer, admin, auth):
    chat_id = _open_chat(client, auth, customer).json()["chat"]["id"]

    denied = client.put(f"/api/chat/{chat_id}/status", json={"status": "CLOSED"}, headers=auth(customer))
    closed = client.put(f"/api/chat/{chat_id}/status", json={"status": "CLOSED"}, headers=auth(admin))

    assert denied.status_code == 403
    assert denied.json()["error"] == "Admin access required"
    assert closed.status_code == 200
    assert closed.json()["status"] == "CLOSED"

    reopened = _open_chat(client, auth, customer)
    assert reopened.status_code == 201
    assert reopened.json()["chat"]["id"] != chat_id
