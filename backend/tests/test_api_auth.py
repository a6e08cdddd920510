"""
Login, session restore, logout and capability enforcement over HTTP
"""
from datetime import datetime, timedelta, timezone

from controlstock.models import UserSession

from conftest import audit_entries, login


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_login_returns_token_and_capabilities(client, users):
    resp = client.post("/api/auth/login", json={"username": "Operator", "password": "operator1234"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["username"] == "operator"
    assert body["capabilities"] == sorted(["view_dashboard", "view_inventory", "manage_movements", "view_reports"])
    assert body["inactivity_timeout_seconds"] == 900


def test_login_wrong_password(client, users):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "not_authenticated"


def test_inactive_user_cannot_log_in(client, db, users):
    users["operator"].is_active = False
    db.commit()
    resp = client.post("/api/auth/login", json={"username": "operator", "password": "operator1234"})
    assert resp.status_code == 401


def test_login_writes_audit_entry(client, db, users):
    login(client, "supervisor")
    entries = audit_entries(db, "login")
    assert len(entries) == 1
    assert entries[0].user_name == "supervisor"


def test_me_restores_session(client, admin_headers):
    resp = client.get("/api/auth/me", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["role"] == "administrator"
    assert resp.json()["role_display_name"] == "Administrator"


def test_requests_without_token_are_rejected(client, users):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/medicines", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid token", "error": "not_authenticated"}


def test_logout_closes_session_once(client, db, operator_headers):
    resp = client.post("/api/auth/logout", headers=operator_headers)
    assert resp.status_code == 200
    assert client.get("/api/auth/me", headers=operator_headers).status_code == 401
    logouts = audit_entries(db, "logout")
    assert len(logouts) == 1
    assert logouts[0].details == "User operator logged out"


def test_idle_session_is_expired_on_next_request(client, db, operator_headers):
    session = db.query(UserSession).one()
    session.last_activity_at = datetime.now(timezone.utc) - timedelta(minutes=16)
    db.commit()

    assert client.get("/api/auth/me", headers=operator_headers).status_code == 401
    db.expire_all()
    session = db.query(UserSession).one()
    assert session.end_reason == "inactivity"
    assert len(audit_entries(db, "logout")) == 1


def test_deactivated_user_loses_session(client, db, admin_headers, operator_headers, users):
    resp = client.patch(
        f"/api/users/{users['operator'].id}/active", json={"is_active": False}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert client.get("/api/auth/me", headers=operator_headers).status_code == 401


def test_operator_denied_admin_areas(client, operator_headers):
    for path in ("/api/users", "/api/audit"):
        resp = client.get(path, headers=operator_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "authorization_denied"
    resp = client.post("/api/medicines", json={"name": "KETAMINE"}, headers=operator_headers)
    assert resp.status_code == 403
    resp = client.post("/api/warehouses", json={"name": "Annex"}, headers=operator_headers)
    assert resp.status_code == 403


def test_operator_can_read_catalogue(client, operator_headers, medicine, warehouses):
    assert client.get("/api/medicines", headers=operator_headers).status_code == 200
    assert client.get("/api/warehouses", headers=operator_headers).status_code == 200
    assert client.get("/api/inventory", headers=operator_headers).status_code == 200
    assert client.get("/api/dashboard", headers=operator_headers).status_code == 200
