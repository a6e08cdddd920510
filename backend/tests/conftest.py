"""
Shared fixtures: in-memory SQLite database, default users and an API client.

Environment is set before controlstock is imported so the module-level
engine is the in-memory one.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SEED_DEFAULT_DATA"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from controlstock.database import Base, SessionLocal, engine, init_db  # noqa: E402
from controlstock.models import AuditLog, Medicine, User, Warehouse  # noqa: E402
from controlstock.permission_config import ROLE_ADMINISTRATOR, ROLE_OPERATOR, ROLE_SUPERVISOR  # noqa: E402
from controlstock.utils.auth_internal import hash_password  # noqa: E402

PASSWORDS = {
    "admin": "admin1234",
    "supervisor": "supervisor1234",
    "operator": "operator1234",
}


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_user(db, username, role, password=None, is_active=True):
    user = User(
        username=username,
        email=f"{username}@stpaulhospital.org",
        role=role,
        is_active=is_active,
        password_hash=hash_password(password or PASSWORDS.get(username, "password123"), rounds=4),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def users(db):
    return {
        "admin": make_user(db, "admin", ROLE_ADMINISTRATOR),
        "supervisor": make_user(db, "supervisor", ROLE_SUPERVISOR),
        "operator": make_user(db, "operator", ROLE_OPERATOR),
    }


@pytest.fixture
def warehouses(db):
    central = Warehouse(name="Central Pharmacy", description="Main pharmacy")
    cart = Warehouse(name="Crash Cart - Surgery")
    db.add_all([central, cart])
    db.commit()
    return {"central": central, "cart": cart}


@pytest.fixture
def medicine(db):
    m = Medicine(name="MORPHINE 10MG AMP", low_stock_threshold=10, warehouse_stock={}, current_stock=0)
    db.add(m)
    db.commit()
    db.refresh(m)
    return m


@pytest.fixture
def client():
    from controlstock.main import app
    with TestClient(app) as c:
        yield c


def login(client, username, password=None):
    resp = client.post(
        "/api/auth/login",
        json={"username": username, "password": password or PASSWORDS[username]},
    )
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client, users):
    return login(client, "admin")


@pytest.fixture
def supervisor_headers(client, users):
    return login(client, "supervisor")


@pytest.fixture
def operator_headers(client, users):
    return login(client, "operator")


def entry_payload(medicine_id, warehouse_id, quantity, **extra):
    body = {
        "medicine_id": str(medicine_id),
        "warehouse_id": str(warehouse_id),
        "type": "entry",
        "quantity": quantity,
        "movement_date": date.today().isoformat(),
        "justification": "purchase",
        "invoice_number": "INV-001",
    }
    body.update(extra)
    return body


def exit_payload(medicine_id, warehouse_id, quantity, **extra):
    body = {
        "medicine_id": str(medicine_id),
        "warehouse_id": str(warehouse_id),
        "type": "exit",
        "quantity": quantity,
        "movement_date": date.today().isoformat(),
        "patient_name": "Jane Roe",
        "patient_document": "CC-123456",
        "prescription_number": "RX-9",
    }
    body.update(extra)
    return body


def audit_entries(db, category=None):
    db.expire_all()
    q = db.query(AuditLog)
    if category:
        q = q.filter(AuditLog.category == category)
    return q.order_by(AuditLog.timestamp).all()
