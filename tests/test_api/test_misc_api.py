"""
Tests for auth, dashboard, notifications, plugins, documents and backup routes.
"""
import pytest

from redemption.config import get_settings


# ---------------------------------------------------------------------------
# Auth / system
# ---------------------------------------------------------------------------

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"


def test_me_and_logout(client):
    assert client.get("/api/v1/auth/me").json()["data"]["email"] == "api@example.com"
    client.post("/api/v1/auth/logout")
    assert client.get("/api/v1/auth/me").status_code == 401


def test_login(client):
    client.post("/api/v1/auth/logout")

    bad = client.post("/api/v1/auth/login", json={"email": "api@example.com", "password": "wrong password"})
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "error": "Invalid email or password"}

    good = client.post("/api/v1/auth/login", json={"email": "API@example.com", "password": "correct horse"})
    assert good.status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 200


def test_register_rejects_duplicates_and_short_passwords(client):
    dup = client.post("/api/v1/auth/register", json={"email": "api@example.com", "password": "long enough"})
    assert dup.status_code == 422
    assert dup.json()["field_errors"] == {"email": "Email already registered"}

    short = client.post("/api/v1/auth/register", json={"email": "new@example.com", "password": "short"})
    assert short.status_code == 422
    assert "password" in short.json()["field_errors"]


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def test_dashboard_upcoming(client):
    client.post("/api/v1/entities/recurring_expense", json={
        "name": "Netflix", "amount": "15.49", "cycle": "monthly", "category": "subscription",
        "due_date": "2026-03-03",
    })

    data = client.get("/api/v1/dashboard", params={"today": "2026-03-01"}).json()["data"]

    assert data["total_expenses"] == "15.49"
    assert data["upcoming_bills"][0]["days_until_due"] == 2

    finance = client.get("/api/v1/finance", params={"today": "2026-03-01"}).json()["data"]
    assert finance["breakdown"]["by_name"][0]["name"] == "Netflix"


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@pytest.fixture
def cron_secret(monkeypatch):
    monkeypatch.setattr(get_settings(), "CRON_SECRET", "s3cret")
    return "s3cret"


def test_engine_trigger_needs_secret(client, cron_secret):
    assert client.post("/api/v1/notifications/run").status_code == 401
    wrong = client.post("/api/v1/notifications/run", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401


def test_engine_run_and_notification_routes(client, cron_secret):
    client.post("/api/v1/entities/one_time_bill", json={
        "name": "Dentist", "amount": "80", "pay_to": "Dr. Weber", "due_date": "2026-02-27",
    })
    headers = {"Authorization": f"Bearer {cron_secret}"}

    run = client.post("/api/v1/notifications/run", params={"today": "2026-03-01"}, headers=headers)
    assert run.status_code == 200
    assert run.json()["data"]["overdue"] == 1

    listing = client.get("/api/v1/notifications").json()["data"]
    assert listing["unread_count"] == 1
    notif = listing["notifications"][0]
    assert notif["type"] == "bill_overdue"

    assert client.post(f"/api/v1/notifications/{notif['id']}/read").json() == {"success": True}
    assert client.delete("/api/v1/notifications/read").json()["data"] == {"deleted": 1}
    assert client.delete(f"/api/v1/notifications/{notif['id']}").status_code == 404


# ---------------------------------------------------------------------------
# Plugins / documents
# ---------------------------------------------------------------------------

def test_documents_need_plugin(client):
    payload = {"name": "Lease", "file_name": "lease.pdf", "file_size": 2048}

    denied = client.get("/api/v1/documents")
    assert denied.status_code == 403
    assert denied.json()["error"] == "Plugin 'documents-hub' is not enabled"

    toggled = client.post("/api/v1/plugins/documents-hub", json={"enable": True})
    assert toggled.json() == {"success": True, "data": {"enabled_plugins": ["documents-hub"]}}

    created = client.post("/api/v1/documents", json=payload)
    assert created.status_code == 201
    assert created.json()["data"]["file_size_label"] == "2 KB"

    docs = client.get("/api/v1/documents").json()["data"]["documents"]
    assert [d["name"] for d in docs] == ["Lease"]


def test_plugin_list_and_unknown_toggle(client):
    plugins = client.get("/api/v1/plugins").json()["data"]["plugins"]
    assert {p["id"] for p in plugins} == {"documents-hub", "analytics"}

    result = client.post("/api/v1/plugins/teleporter", json={"enable": True}).json()
    assert result["success"] is False
    assert result["field_errors"] == {"plugin_id": "Unknown plugin"}


def test_plugin_toggle_with_bad_body(client):
    result = client.post("/api/v1/plugins/documents-hub", json={"enable": "maybe"})

    assert result.status_code == 200
    assert result.json()["success"] is False
    assert "enable" in result.json()["field_errors"]
    assert client.get("/api/v1/documents").status_code == 403


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------

def test_backup_export_validate_restore(client):
    client.post("/api/v1/entities/bank", json={"name": "paypal", "display_name": "PayPal", "balance": "5"})

    export = client.get("/api/v1/backup/export")
    assert export.status_code == 200
    assert "attachment; filename=\"redemption-backup-" in export.headers["content-disposition"]
    snapshot = export.json()
    assert snapshot["total_records"] == 1

    validated = client.post("/api/v1/backup/validate", json=snapshot).json()
    assert validated["data"]["banks"] == 1

    restored = client.post("/api/v1/backup/restore", json=snapshot).json()
    assert restored["data"]["unchanged"] == {"banks": 1}


def test_backup_invalid_payload_is_422(client):
    response = client.post("/api/v1/backup/validate", json={"app_name": "Other"})
    assert response.status_code == 422
    assert response.json()["error"] == "Invalid backup file"
