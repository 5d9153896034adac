"""
Tests for the entity CRUD API and its error mapping.
"""
BANK = {"name": "paypal", "display_name": "PayPal", "balance": "42.10"}


def _create_bank(client, **overrides):
    response = client.post("/api/v1/entities/bank", json={**BANK, **overrides})
    assert response.status_code == 201
    return response.json()["data"]


def test_create_and_list(client):
    bank = _create_bank(client)
    assert bank["balance"] == "42.10"
    assert "account_id" in bank

    response = client.get("/api/v1/entities/bank")
    assert response.status_code == 200
    assert [b["id"] for b in response.json()["data"]["banks"]] == [bank["id"]]


def test_validation_error_is_422_with_field_errors(client):
    response = client.post("/api/v1/entities/bank", json={"name": "paypal", "display_name": ""})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert "display_name" in body["field_errors"]


def test_unknown_kind_is_404(client):
    response = client.get("/api/v1/entities/spaceship")
    assert response.status_code == 404
    assert response.json()["error"] == "Unknown entity type"


def test_missing_row_is_404(client):
    response = client.get("/api/v1/entities/bank/999")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Bank not found"}


def test_patch_returns_changes(client):
    bank = _create_bank(client)

    response = client.patch(f"/api/v1/entities/bank/{bank['id']}", json={"balance": "50"})

    assert response.status_code == 200
    balance, stamp = response.json()["changes"]
    assert balance == {"field": "balance", "old": "42.10", "new": "50"}
    assert stamp["field"] == "last_balance_update"
    assert stamp["old"] and stamp["new"] != stamp["old"]


def test_trash_lifecycle_status_codes(client):
    bank = _create_bank(client)
    url = f"/api/v1/entities/bank/{bank['id']}"

    assert client.delete(f"{url}/permanent").status_code == 409

    deleted = client.delete(url)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["deleted_at"]

    assert client.get(url).status_code == 404
    assert client.delete(url).status_code == 409
    assert client.patch(url, json={"balance": "1"}).status_code == 409

    restored = client.post(f"{url}/restore")
    assert restored.status_code == 200
    assert restored.json()["data"]["deleted_at"] is None
    assert client.post(f"{url}/restore").status_code == 409

    client.delete(url)
    purged = client.delete(f"{url}/permanent")
    assert purged.json() == {"success": True, "data": {"deleted": 1}}
    assert client.post(f"{url}/restore").status_code == 404


def test_audit_history_endpoint(client):
    bank = _create_bank(client)
    client.patch(f"/api/v1/entities/bank/{bank['id']}", json={"balance": "1"})

    response = client.get(f"/api/v1/audit/bank/{bank['id']}")

    assert response.status_code == 200
    assert [e["action"] for e in response.json()["data"]["entries"]] == ["create", "update"]


def test_requires_login(client):
    client.post("/api/v1/auth/logout")
    response = client.get("/api/v1/entities/bank")
    assert response.status_code == 401


def test_audit_filters(client):
    bank = _create_bank(client)
    client.patch(f"/api/v1/entities/bank/{bank['id']}", json={"balance": "1"})
    client.delete(f"/api/v1/entities/bank/{bank['id']}")

    everything = client.get("/api/v1/audit").json()["data"]
    assert [e["action"] for e in everything["entries"]] == ["delete", "update", "create"]
    assert everything["total"] == 3

    deletes = client.get("/api/v1/audit", params={"action": "delete"}).json()["data"]
    assert [e["entity_id"] for e in deletes["entries"]] == [bank["id"]]
    assert deletes["total"] == 3

    window = client.get("/api/v1/audit", params={"since": "2000-01-01T00:00:00Z"}).json()["data"]
    assert [e["action"] for e in window["entries"]] == ["create", "update", "delete"]
    empty = client.get("/api/v1/audit", params={"until": "2000-01-01T00:00:00Z"}).json()["data"]
    assert empty["entries"] == []


def test_audit_filter_rejects_unknown_action_and_reversed_window(client):
    unknown = client.get("/api/v1/audit", params={"action": "explode"})
    assert unknown.status_code == 422
    assert "action" in unknown.json()["field_errors"]

    reversed_window = client.get("/api/v1/audit", params={
        "since": "2026-03-02T00:00:00Z", "until": "2026-03-01T00:00:00Z",
    })
    assert reversed_window.status_code == 422
