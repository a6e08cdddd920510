"""
Medicines, warehouses and users: CRUD, uniqueness and delete policy
"""
from controlstock.models import Medicine, User, Warehouse

from conftest import audit_entries, entry_payload


def test_supervisor_creates_and_edits_medicine(client, db, supervisor_headers):
    resp = client.post(
        "/api/medicines", json={"name": " KETAMINE 500MG/10ML ", "low_stock_threshold": 5}, headers=supervisor_headers
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["name"] == "KETAMINE 500MG/10ML"
    assert body["current_stock"] == 0 and body["warehouse_stock"] == {}
    assert body["is_low_stock"] is True

    resp = client.put(f"/api/medicines/{body['id']}", json={"low_stock_threshold": 2}, headers=supervisor_headers)
    assert resp.status_code == 200
    assert resp.json()["low_stock_threshold"] == 2
    categories = [e.category for e in audit_entries(db) if e.category != "login"]
    assert categories == ["create", "update"]


def test_medicine_threshold_must_be_positive(client, supervisor_headers):
    resp = client.post("/api/medicines", json={"name": "X", "low_stock_threshold": 0}, headers=supervisor_headers)
    assert resp.status_code == 422


def test_duplicate_medicine_name_conflicts(client, supervisor_headers, medicine):
    resp = client.post("/api/medicines", json={"name": "morphine 10mg amp"}, headers=supervisor_headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"


def test_stock_cannot_be_edited_directly(client, db, supervisor_headers, medicine):
    resp = client.put(
        f"/api/medicines/{medicine.id}",
        json={"current_stock": 999, "warehouse_stock": {"x": 999}},
        headers=supervisor_headers,
    )
    assert resp.status_code == 200
    db.expire_all()
    assert db.get(Medicine, medicine.id).current_stock == 0


def test_deactivate_medicine(client, supervisor_headers, medicine):
    resp = client.patch(f"/api/medicines/{medicine.id}/active", json={"is_active": False}, headers=supervisor_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    active = client.get("/api/medicines", params={"active_only": True}, headers=supervisor_headers).json()
    assert active == []


def test_unreferenced_medicine_can_be_deleted(client, db, supervisor_headers, medicine):
    resp = client.delete(f"/api/medicines/{medicine.id}", headers=supervisor_headers)
    assert resp.status_code == 204
    db.expire_all()
    assert db.get(Medicine, medicine.id) is None
    assert client.get(f"/api/medicines/{medicine.id}", headers=supervisor_headers).status_code == 404


def test_referenced_records_cannot_be_deleted(client, db, admin_headers, operator_headers, users, medicine, warehouses):
    central = warehouses["central"]
    resp = client.post("/api/movements", json=entry_payload(medicine.id, central.id, 5), headers=operator_headers)
    assert resp.status_code == 201

    for path in (
        f"/api/medicines/{medicine.id}",
        f"/api/warehouses/{central.id}",
        f"/api/users/{users['operator'].id}",
    ):
        resp = client.delete(path, headers=admin_headers)
        assert resp.status_code == 409, path
        assert "deactivate" in resp.json()["detail"]

    db.expire_all()
    assert db.get(Medicine, medicine.id) is not None
    assert db.get(Warehouse, central.id) is not None
    assert db.get(User, users["operator"].id) is not None


def test_admin_manages_warehouses(client, admin_headers):
    resp = client.post("/api/warehouses", json={"name": "Ambulance Kit No. 4"}, headers=admin_headers)
    assert resp.status_code == 201
    wid = resp.json()["id"]
    resp = client.put(f"/api/warehouses/{wid}", json={"description": "Night shift"}, headers=admin_headers)
    assert resp.json()["description"] == "Night shift"
    assert client.post("/api/warehouses", json={"name": "ambulance kit no. 4"}, headers=admin_headers).status_code == 409
    assert client.delete(f"/api/warehouses/{wid}", headers=admin_headers).status_code == 204


def test_supervisor_cannot_manage_warehouses(client, supervisor_headers, warehouses):
    resp = client.patch(
        f"/api/warehouses/{warehouses['cart'].id}/active", json={"is_active": False}, headers=supervisor_headers
    )
    assert resp.status_code == 403


def test_admin_creates_user(client, admin_headers):
    resp = client.post(
        "/api/users",
        json={"username": "nurse1", "email": "nurse1@stpaulhospital.org", "role": "operator", "password": "welcome123"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    assert "password" not in resp.json() and "password_hash" not in resp.json()
    login = client.post("/api/auth/login", json={"username": "nurse1", "password": "welcome123"})
    assert login.status_code == 200


def test_user_validation(client, admin_headers, users):
    base = {"username": "nurse2", "email": "nurse2@stpaulhospital.org", "role": "operator", "password": "welcome123"}
    assert client.post("/api/users", json={**base, "role": "owner"}, headers=admin_headers).status_code == 422
    assert client.post("/api/users", json={**base, "password": "short"}, headers=admin_headers).status_code == 422
    assert client.post("/api/users", json={**base, "email": "not-an-email"}, headers=admin_headers).status_code == 422
    assert client.post("/api/users", json={**base, "username": "ADMIN"}, headers=admin_headers).status_code == 409


def test_admin_cannot_remove_self(client, admin_headers, users):
    admin_id = users["admin"].id
    assert client.delete(f"/api/users/{admin_id}", headers=admin_headers).status_code == 422
    resp = client.patch(f"/api/users/{admin_id}/active", json={"is_active": False}, headers=admin_headers)
    assert resp.status_code == 422


def test_change_password(client, admin_headers, users):
    resp = client.put(
        f"/api/users/{users['supervisor'].id}/password", json={"new_password": "newpass999"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert client.post("/api/auth/login", json={"username": "supervisor", "password": "newpass999"}).status_code == 200
    assert client.post(
        "/api/auth/login", json={"username": "supervisor", "password": "supervisor1234"}
    ).status_code == 401
