"""
Tests for the unified trash API.
"""


def _trashed_wish(client, name="Headphones"):
    created = client.post("/api/v1/entities/wishlist_item", json={
        "name": name, "price": "199.99", "where_to_buy": "Store", "need_rate": "can_wait",
    }).json()["data"]
    client.delete(f"/api/v1/entities/wishlist_item/{created['id']}")
    return created


def test_list_trash(client):
    wish = _trashed_wish(client)

    body = client.get("/api/v1/trash").json()

    assert body["data"]["total"] == 1
    assert body["data"]["counts"]["wishlist_items"] == 1
    assert body["data"]["counts"]["banks"] == 0
    item = body["data"]["items"][0]
    assert (item["entity_type"], item["id"], item["name"]) == ("wishlist_item", wish["id"], "Headphones")
    assert item["details"] == "€199.99"


def test_restore_and_delete_by_tag(client):
    first = _trashed_wish(client, "First")
    second = _trashed_wish(client, "Second")

    assert client.post(f"/api/v1/trash/wishlist_item/{first['id']}/restore").json() == {"success": True}
    assert client.delete(f"/api/v1/trash/wishlist_item/{second['id']}").json()["success"] is True

    assert client.get("/api/v1/trash").json()["data"]["total"] == 0
    live = client.get("/api/v1/entities/wishlist_item").json()["data"]["wishlist_items"]
    assert [w["name"] for w in live] == ["First"]


def test_unknown_tag_is_400(client):
    response = client.post("/api/v1/trash/spaceship/1/restore")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown entity type"}


def test_empty_trash(client):
    _trashed_wish(client, "A")
    _trashed_wish(client, "B")

    body = client.delete("/api/v1/trash").json()

    assert body == {
        "success": True,
        "data": {"deleted": {"wishlist_item": 2}, "total": 2, "errors": {}},
    }
