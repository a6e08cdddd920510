"""
Medicine catalogue service - create, edit, activate and delete medicines.

Stock is never edited here; it only changes through InventoryService.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from controlstock.exceptions import Conflict, ValidationError
from controlstock.models import Medicine, Movement, User
from controlstock.schemas.medicine import MedicineCreate, MedicineUpdate
from controlstock.services.audit_service import audit_recorder, CATEGORY_CREATE, CATEGORY_DELETE, CATEGORY_UPDATE
from controlstock.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


def _normalize_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Medicine name must not be blank", field="name")
    return name


class MedicineService:

    @staticmethod
    def list_medicines(
        db: Session,
        search: Optional[str] = None,
        active_only: bool = False,
        low_stock_only: bool = False,
    ) -> List[Medicine]:
        query = db.query(Medicine)
        if search and search.strip():
            query = query.filter(Medicine.name.ilike(f"%{search.strip()}%"))
        if active_only:
            query = query.filter(Medicine.is_active.is_(True))
        if low_stock_only:
            query = query.filter(Medicine.current_stock < Medicine.low_stock_threshold)
        return query.order_by(Medicine.name).all()

    @staticmethod
    def _ensure_unique_name(db: Session, name: str, exclude_id=None) -> None:
        query = db.query(Medicine.id).filter(func.lower(Medicine.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Medicine.id != exclude_id)
        if query.first():
            raise Conflict(f"A medicine named {name} already exists")

    @staticmethod
    def create(db: Session, actor: User, data: MedicineCreate) -> Medicine:
        name = _normalize_name(data.name)
        MedicineService._ensure_unique_name(db, name)
        store = EntityStore(db)
        medicine = Medicine(
            name=name,
            low_stock_threshold=data.low_stock_threshold,
            is_active=data.is_active,
            warehouse_stock={},
            current_stock=0,
        )
        store.insert(medicine)
        audit_recorder.append(actor.id, actor.username, "Medicine created", f"Medicine {name} created", CATEGORY_CREATE)
        return medicine

    @staticmethod
    def update(db: Session, actor: User, medicine_id, data: MedicineUpdate) -> Medicine:
        store = EntityStore(db)
        medicine = store.get(Medicine, medicine_id)
        changes = {}
        if data.name is not None:
            name = _normalize_name(data.name)
            if name != medicine.name:
                MedicineService._ensure_unique_name(db, name, exclude_id=medicine.id)
                changes["name"] = name
        if data.low_stock_threshold is not None:
            if data.low_stock_threshold < 1:
                raise ValidationError("Low-stock threshold must be at least 1", field="low_stock_threshold")
            changes["low_stock_threshold"] = data.low_stock_threshold
        if not changes:
            return medicine
        old_name = medicine.name
        medicine = store.update(Medicine, medicine_id, changes)
        audit_recorder.append(
            actor.id, actor.username, "Medicine updated",
            f"Medicine {old_name} updated: {', '.join(sorted(changes))}", CATEGORY_UPDATE,
        )
        return medicine

    @staticmethod
    def set_active(db: Session, actor: User, medicine_id, is_active: bool) -> Medicine:
        medicine = EntityStore(db).update(Medicine, medicine_id, {"is_active": is_active})
        state = "activated" if is_active else "deactivated"
        audit_recorder.append(
            actor.id, actor.username, f"Medicine {state}", f"Medicine {medicine.name} {state}", CATEGORY_UPDATE
        )
        return medicine

    @staticmethod
    def delete(db: Session, actor: User, medicine_id) -> None:
        """Hard delete, only for medicines no movement references."""
        store = EntityStore(db)
        medicine = store.get(Medicine, medicine_id)
        if db.query(Movement.id).filter(Movement.medicine_id == medicine.id).first():
            raise Conflict(f"Medicine {medicine.name} has recorded movements; deactivate it instead")
        name = medicine.name
        store.delete(Medicine, medicine_id)
        logger.info("Medicine %s deleted by %s", name, actor.username)
        audit_recorder.append(actor.id, actor.username, "Medicine deleted", f"Medicine {name} deleted", CATEGORY_DELETE)
