"""
InventoryService transaction handling, entity store errors, seeding and config helpers
"""
from datetime import date
from uuid import UUID

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from controlstock.config import normalize_database_url, settings
from controlstock.exceptions import ConcurrentUpdate, NotFound, StoreIOError
from controlstock.models import Medicine, Movement, User, Warehouse
from controlstock.schemas.movement import MovementCreate
from controlstock.services.entity_store import EntityStore
from controlstock.services.inventory_service import InventoryService
from controlstock.services.user_service import UserService
from controlstock.services.warehouse_service import WarehouseService
from controlstock.services.seed_service import DEFAULT_MEDICINES, DEFAULT_WAREHOUSES, seed_defaults


def _exit(medicine, warehouse, qty, day=None):
    return MovementCreate(
        medicine_id=medicine.id,
        warehouse_id=warehouse.id,
        type="exit",
        quantity=qty,
        movement_date=day or date.today(),
        patient_name="Jane Roe",
        patient_document="CC-1",
    )


def _entry(medicine, warehouse, qty, day=None):
    return MovementCreate(
        medicine_id=medicine.id,
        warehouse_id=warehouse.id,
        type="entry",
        quantity=qty,
        movement_date=day or date.today(),
        justification="opening_balance",
    )


def _flaky_commit(db, failures):
    real_commit = db.commit
    calls = {"n": 0}

    def commit():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise StaleDataError("version mismatch")
        real_commit()

    db.commit = commit
    return calls


def test_version_conflict_is_retried(db, users, medicine, warehouses):
    central = warehouses["central"]
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 10))
    calls = _flaky_commit(db, failures=2)

    movement, updated = InventoryService.record_movement(db, users["operator"], _exit(medicine, central, 4))
    assert calls["n"] == 3
    assert updated.current_stock == 6
    assert db.query(Movement).count() == 2


def test_persistent_conflict_raises_concurrent_update(db, users, medicine, warehouses):
    central = warehouses["central"]
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 10))
    calls = _flaky_commit(db, failures=100)

    with pytest.raises(ConcurrentUpdate):
        InventoryService.record_movement(db, users["operator"], _exit(medicine, central, 4))
    assert calls["n"] == settings.MOVEMENT_RETRY_ATTEMPTS
    db.expire_all()
    assert db.get(Medicine, medicine.id).current_stock == 10
    assert db.query(Movement).count() == 1


def test_database_failure_maps_to_store_io_error(db, users, medicine, warehouses):
    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    db.commit = broken_commit
    with pytest.raises(StoreIOError):
        InventoryService.record_movement(db, users["operator"], _entry(medicine, warehouses["central"], 1))


def test_version_increments_with_each_movement(db, users, medicine, warehouses):
    central = warehouses["central"]
    start = medicine.version
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 3))
    _, updated = InventoryService.record_movement(db, users["operator"], _exit(medicine, central, 1))
    assert updated.version == start + 2


def test_reconcile_reports_in_sync_after_movements(db, users, medicine, warehouses):
    central, cart = warehouses["central"], warehouses["cart"]
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 8))
    InventoryService.record_movement(db, users["operator"], _entry(medicine, cart, 2))
    InventoryService.record_movement(db, users["operator"], _exit(medicine, central, 3))
    report = InventoryService.reconcile_medicine(db, db.get(Medicine, medicine.id))
    assert report["in_sync"]
    assert report["derived"] == {str(central.id): 5, str(cart.id): 2}
    assert report["derived_total"] == 7


def test_reconcile_backdated_exit_is_in_sync(db, users, medicine, warehouses):
    central = warehouses["central"]
    today = date(2024, 5, 19)
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 10, today), today=today)
    # recorded after the entry, dated before it
    InventoryService.record_movement(
        db, users["operator"], _exit(medicine, central, 10, date(2024, 5, 2)), today=today
    )

    report = InventoryService.reconcile_medicine(db, db.get(Medicine, medicine.id), repair=True)
    assert report["in_sync"]
    assert not report["repaired"]
    assert report["derived"] == {str(central.id): 0}
    db.expire_all()
    assert db.get(Medicine, medicine.id).current_stock == 0


def test_reconcile_clamped_exit_then_backdated_entry(db, users, medicine, warehouses, monkeypatch):
    monkeypatch.setattr(settings, "REJECT_OVERDRAWN_EXITS", False)
    central = warehouses["central"]
    today = date(2024, 5, 19)
    InventoryService.record_movement(db, users["operator"], _entry(medicine, central, 3, today), today=today)
    movement, _ = InventoryService.record_movement(
        db, users["operator"], _exit(medicine, central, 8, today), today=today
    )
    assert movement.clamped_quantity == 5
    _, updated = InventoryService.record_movement(
        db, users["operator"], _entry(medicine, central, 4, date(2024, 5, 1)), today=today
    )
    assert updated.current_stock == 4

    report = InventoryService.reconcile_medicine(db, db.get(Medicine, medicine.id), repair=True)
    assert report["in_sync"]
    assert report["drift"] == {}
    assert report["derived_total"] == 4
    db.expire_all()
    assert db.get(Medicine, medicine.id).current_stock == 4


def test_entity_store_not_found(db):
    store = EntityStore(db)
    with pytest.raises(NotFound):
        store.get(Warehouse, UUID("00000000-0000-0000-0000-000000000009"))
    assert store.find(User, UUID("00000000-0000-0000-0000-000000000009")) is None


def test_entity_store_lists_with_filters_and_order(db, users, warehouses):
    warehouses["cart"].is_active = False
    db.commit()
    names = [w.name for w in WarehouseService.list_warehouses(db)]
    assert names == ["Central Pharmacy", "Crash Cart - Surgery"]
    assert [w.name for w in WarehouseService.list_warehouses(db, active_only=True)] == ["Central Pharmacy"]
    assert [u.username for u in UserService.list_users(db)] == ["admin", "operator", "supervisor"]
    assert len(EntityStore(db).list(User, limit=2)) == 2


def test_seed_defaults_is_idempotent(db):
    added = seed_defaults(db)
    assert added == {"users": 3, "warehouses": len(DEFAULT_WAREHOUSES), "medicines": len(DEFAULT_MEDICINES)}
    assert {u.role for u in db.query(User).all()} == {"operator", "supervisor", "administrator"}
    assert seed_defaults(db) == {"users": 0, "warehouses": 0, "medicines": 0}


def test_normalize_database_url():
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
    assert normalize_database_url(" sqlite:///x.db ") == "sqlite:///x.db"
