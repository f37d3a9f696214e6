"""Menu browsing and admin management."""

from sqlalchemy import text


def test_public_categories_hide_unavailable_items(client, menu):
    response = client.get("/api/menu/categories")

    assert response.status_code == 200
    categories = response.json()
    assert len(categories) == 1
    names = {item["name"] for item in categories[0]["items"]}
    assert names == {"Jollof Rice", "Coke"}


def test_inactive_category_hidden(client, menu, admin, auth):
    client.put(f"/api/menu/categories/{menu['category_id']}", json={"is_active": False}, headers=auth(admin))

    assert client.get("/api/menu/categories").json() == []


def test_list_items_filters(client, menu):
    everything = client.get("/api/menu/items").json()
    available = client.get("/api/menu/items", params={"available": "true"}).json()

    assert len(everything) == 3
    assert {item["name"] for item in available} == {"Jollof Rice", "Coke"}


def test_get_item_with_options(client, menu):
    response = client.get(f"/api/menu/items/{menu['jollof']}")

    assert response.status_code == 200
    item = response.json()
    assert {v["name"]: v["price"] for v in item["variants"]} == {"Small": 20.0, "Large": 30.0}
    assert {a["name"] for a in item["addons"]} == {"Chicken", "Plantain"}


def test_get_unknown_item(client):
    response = client.get("/api/menu/items/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "Menu item not found"


# =============================================================================
# ADMIN
# =============================================================================

def test_create_category_and_item(client, admin, auth):
    category = client.post(
        "/api/menu/categories",
        json={"name": "Soups", "display_order": 2},
        headers=auth(admin),
    )
    assert category.status_code == 201

    item = client.post(
        "/api/menu/items",
        json={
            "category_id": category.json()["id"],
            "name": "Light Soup",
            "base_price": 40.0,
            "variants": [{"name": "Bowl", "price": 40.0}, {"name": "Pot", "price": 120.0}],
            "addons": [{"name": "Goat meat", "price": 15.0}],
        },
        headers=auth(admin),
    )

    assert item.status_code == 201
    body = item.json()
    assert body["name"] == "Light Soup"
    assert len(body["variants"]) == 2
    assert body["addons"][0]["name"] == "Goat meat"


def test_create_item_unknown_category(client, admin, auth):
    response = client.post(
        "/api/menu/items",
        json={"category_id": "nope", "name": "Ghost", "base_price": 1.0},
        headers=auth(admin),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Category not found"


def test_menu_writes_are_admin_only(client, cashier, auth):
    response = client.post("/api/menu/categories", json={"name": "Secret"}, headers=auth(cashier))

    assert response.status_code == 403


def test_update_item_replaces_variants(client, menu, admin, auth):
    response = client.put(
        f"/api/menu/items/{menu['jollof']}",
        json={"base_price": 27.5, "variants": [{"name": "Family", "price": 90.0}]},
        headers=auth(admin),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["base_price"] == 27.5
    assert [v["name"] for v in body["variants"]] == ["Family"]
    assert len(body["addons"]) == 2


def _order_jollof(place_order, cashier, menu) -> dict:
    return place_order(
        cashier,
        items=[{
            "menu_item_id": menu["jollof"],
            "variant_id": menu["small"],
            "addon_ids": [menu["chicken"]],
            "quantity": 1,
        }],
    )


def test_foreign_keys_enforced(run_db):
    async def pragma(db):
        return (await db.execute(text("PRAGMA foreign_keys"))).scalar()

    assert run_db(pragma) == 1


def test_replace_variants_of_ordered_item(client, menu, admin, cashier, auth, place_order):
    """Ordered lines keep their price when the variant they used is removed."""
    order = _order_jollof(place_order, cashier, menu)

    response = client.put(
        f"/api/menu/items/{menu['jollof']}",
        json={"variants": [{"name": "Family", "price": 90.0}]},
        headers=auth(admin),
    )

    assert response.status_code == 200
    assert [v["name"] for v in response.json()["variants"]] == ["Family"]

    stored = client.get(f"/api/orders/{order['id']}", headers=auth(cashier)).json()
    line = stored["items"][0]
    assert line["variant_id"] is None
    assert line["unit_price"] == 30.0
    assert stored["total"] == order["total"]


def test_replace_addons_of_ordered_item(client, menu, admin, cashier, auth, place_order):
    order = _order_jollof(place_order, cashier, menu)

    response = client.put(
        f"/api/menu/items/{menu['jollof']}",
        json={"addons": [{"name": "Fish", "price": 12.0}]},
        headers=auth(admin),
    )

    assert response.status_code == 200
    assert [a["name"] for a in response.json()["addons"]] == ["Fish"]

    stored = client.get(f"/api/orders/{order['id']}", headers=auth(cashier)).json()
    assert stored["items"][0]["addons"] == []
    assert stored["total"] == order["total"]


def test_delete_category_with_items_refused(client, menu, admin, auth):
    response = client.delete(f"/api/menu/categories/{menu['category_id']}", headers=auth(admin))

    assert response.status_code == 400
    assert "Cannot delete category with 3 menu item(s)" in response.json()["error"]


def test_delete_empty_category(client, admin, auth):
    category = client.post("/api/menu/categories", json={"name": "Empty"}, headers=auth(admin)).json()

    response = client.delete(f"/api/menu/categories/{category['id']}", headers=auth(admin))

    assert response.status_code == 200
    assert response.json()["message"] == "Category deleted successfully"


def test_delete_unused_item(client, menu, admin, auth):
    response = client.delete(f"/api/menu/items/{menu['coke']}", headers=auth(admin))

    assert response.status_code == 200
    assert response.json()["message"] == "Menu item deleted successfully"
    assert client.get(f"/api/menu/items/{menu['coke']}").status_code == 404


def test_delete_ordered_item_marks_unavailable(client, menu, admin, cashier, auth, place_order):
    """Items referenced by past orders stay in the database, switched off."""
    place_order(cashier)

    response = client.delete(f"/api/menu/items/{menu['coke']}", headers=auth(admin))

    assert response.status_code == 200
    assert response.json()["message"] == "Menu item is referenced by orders and was marked unavailable"
    item = client.get(f"/api/menu/items/{menu['coke']}").json()
    assert item["is_available"] is False
