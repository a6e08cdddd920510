"""
Warehouse service
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from controlstock.exceptions import Conflict, ValidationError
from controlstock.models import Movement, User, Warehouse
from controlstock.schemas.warehouse import WarehouseCreate, WarehouseUpdate
from controlstock.services.audit_service import audit_recorder, CATEGORY_CREATE, CATEGORY_DELETE, CATEGORY_UPDATE
from controlstock.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class WarehouseService:

    @staticmethod
    def list_warehouses(db: Session, active_only: bool = False) -> List[Warehouse]:
        filters = [Warehouse.is_active.is_(True)] if active_only else None
        return EntityStore(db).list(Warehouse, filters=filters, order=[Warehouse.name])

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Warehouse name must not be blank", field="name")
        return name

    @staticmethod
    def _ensure_unique_name(db: Session, name: str, exclude_id=None) -> None:
        query = db.query(Warehouse.id).filter(func.lower(Warehouse.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Warehouse.id != exclude_id)
        if query.first():
            raise Conflict(f"A warehouse named {name} already exists")

    @staticmethod
    def create(db: Session, actor: User, data: WarehouseCreate) -> Warehouse:
        name = WarehouseService._clean_name(data.name)
        WarehouseService._ensure_unique_name(db, name)
        warehouse = Warehouse(name=name, description=data.description, is_active=data.is_active)
        EntityStore(db).insert(warehouse)
        audit_recorder.append(
            actor.id, actor.username, "Warehouse created", f"Warehouse {name} created", CATEGORY_CREATE
        )
        return warehouse

    @staticmethod
    def update(db: Session, actor: User, warehouse_id, data: WarehouseUpdate) -> Warehouse:
        store = EntityStore(db)
        warehouse = store.get(Warehouse, warehouse_id)
        changes = {}
        if data.name is not None:
            name = WarehouseService._clean_name(data.name)
            if name != warehouse.name:
                WarehouseService._ensure_unique_name(db, name, exclude_id=warehouse.id)
                changes["name"] = name
        if data.description is not None:
            changes["description"] = data.description
        if not changes:
            return warehouse
        old_name = warehouse.name
        warehouse = store.update(Warehouse, warehouse_id, changes)
        audit_recorder.append(
            actor.id, actor.username, "Warehouse updated",
            f"Warehouse {old_name} updated: {', '.join(sorted(changes))}", CATEGORY_UPDATE,
        )
        return warehouse

    @staticmethod
    def set_active(db: Session, actor: User, warehouse_id, is_active: bool) -> Warehouse:
        warehouse = EntityStore(db).update(Warehouse, warehouse_id, {"is_active": is_active})
        state = "activated" if is_active else "deactivated"
        audit_recorder.append(
            actor.id, actor.username, f"Warehouse {state}", f"Warehouse {warehouse.name} {state}", CATEGORY_UPDATE
        )
        return warehouse

    @staticmethod
    def delete(db: Session, actor: User, warehouse_id) -> None:
        store = EntityStore(db)
        warehouse = store.get(Warehouse, warehouse_id)
        if db.query(Movement.id).filter(Movement.warehouse_id == warehouse.id).first():
            raise Conflict(f"Warehouse {warehouse.name} has recorded movements; deactivate it instead")
        name = warehouse.name
        store.delete(Warehouse, warehouse_id)
        logger.info("Warehouse %s deleted by %s", name, actor.username)
        audit_recorder.append(
            actor.id, actor.username, "Warehouse deleted", f"Warehouse {name} deleted", CATEGORY_DELETE
        )
