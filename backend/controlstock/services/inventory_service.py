"""
Inventory Service - records movements and keeps medicine stock in step with the ledger.

A movement row and the medicine's materialized stock are written in one
transaction. The medicine row is locked (SELECT ... FOR UPDATE where the
backend supports it) and its version counter is checked on UPDATE, so two
concurrent exits cannot lose an update; a version conflict is retried a
bounded number of times.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from controlstock.config import settings
from controlstock.exceptions import (
    Conflict,
    ConcurrentUpdate,
    InsufficientStock,
    NotFound,
    StoreIOError,
    ValidationError,
)
from controlstock.models import Medicine, Movement, User, Warehouse
from controlstock.schemas.movement import ENTRY_JUSTIFICATIONS, MovementCreate
from controlstock.services.audit_service import audit_recorder, CATEGORY_MOVEMENT, CATEGORY_UPDATE
from controlstock.services.stock_ledger import (
    ENTRY,
    EXIT,
    LedgerRow,
    apply_movement,
    derive_stock_from_ledger,
    in_current_month,
    stock_drift,
    total_stock,
)

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return not (value and value.strip())


def _clean(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


class InventoryService:
    """Movement recording, movement queries and ledger reconciliation"""

    @staticmethod
    def validate_movement(payload: MovementCreate, today: Optional[date] = None) -> None:
        """Business rules checked before touching the store. Raises ValidationError."""
        today = today or date.today()
        if isinstance(payload.quantity, bool) or payload.quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity")
        if not in_current_month(payload.movement_date, today):
            raise ValidationError("Movement date must be within the current month", field="movement_date")
        if payload.type == ENTRY:
            if payload.justification not in ENTRY_JUSTIFICATIONS:
                raise ValidationError(
                    f"Entry justification must be one of: {', '.join(ENTRY_JUSTIFICATIONS)}",
                    field="justification",
                )
            if payload.justification == "purchase" and _blank(payload.invoice_number):
                raise ValidationError("Invoice number is required for purchases", field="invoice_number")
        elif payload.type == EXIT:
            if _blank(payload.patient_name):
                raise ValidationError("Patient name is required for exits", field="patient_name")
            if _blank(payload.patient_document):
                raise ValidationError("Patient document is required for exits", field="patient_document")
        else:
            raise ValidationError("Movement type must be entry or exit", field="type")

    @staticmethod
    def record_movement(
        db: Session,
        actor: User,
        payload: MovementCreate,
        today: Optional[date] = None,
    ) -> Tuple[Movement, Medicine]:
        """
        Validate, then write the movement and the medicine's new stock in one commit.
        Returns (movement, medicine) as persisted.
        """
        InventoryService.validate_movement(payload, today)

        warehouse = db.get(Warehouse, payload.warehouse_id)
        if warehouse is None:
            logger.warning("Movement for unknown warehouse %s", payload.warehouse_id)
            raise NotFound("Warehouse", payload.warehouse_id)
        if not warehouse.is_active:
            raise ValidationError(f"Warehouse {warehouse.name} is inactive", field="warehouse_id")

        strict = settings.REJECT_OVERDRAWN_EXITS
        attempts = max(1, settings.MOVEMENT_RETRY_ATTEMPTS)
        is_entry = payload.type == ENTRY

        for attempt in range(1, attempts + 1):
            try:
                medicine = (
                    db.query(Medicine)
                    .filter(Medicine.id == payload.medicine_id)
                    .with_for_update()
                    .populate_existing()
                    .first()
                )
                if medicine is None:
                    logger.warning("Movement for unknown medicine %s", payload.medicine_id)
                    raise NotFound("Medicine", payload.medicine_id)
                if not medicine.is_active:
                    raise ValidationError(f"Medicine {medicine.name} is inactive", field="medicine_id")

                update = apply_movement(
                    medicine.warehouse_stock, warehouse.id, payload.type, payload.quantity, strict=strict
                )
                movement = Movement(
                    medicine_id=medicine.id,
                    medicine_name=medicine.name,
                    warehouse_id=warehouse.id,
                    warehouse_name=warehouse.name,
                    movement_type=payload.type,
                    quantity=payload.quantity,
                    clamped_quantity=update.clamped,
                    movement_date=payload.movement_date,
                    user_id=actor.id,
                    user_name=actor.username,
                    justification=payload.justification if is_entry else None,
                    invoice_number=_clean(payload.invoice_number)
                    if is_entry and payload.justification == "purchase" else None,
                    patient_name=None if is_entry else _clean(payload.patient_name),
                    patient_document=None if is_entry else _clean(payload.patient_document),
                    prescription_number=None if is_entry else _clean(payload.prescription_number),
                )
                medicine.warehouse_stock = update.warehouse_stock
                medicine.current_stock = update.total
                db.add(movement)
                db.commit()
                break
            except StaleDataError:
                db.rollback()
                logger.warning(
                    "Version conflict on medicine %s (attempt %d/%d)", payload.medicine_id, attempt, attempts
                )
            except (NotFound, ValidationError, InsufficientStock):
                db.rollback()
                raise
            except IntegrityError as e:
                db.rollback()
                logger.exception("Movement rejected by a database constraint")
                raise Conflict("Movement conflicts with stored data") from e
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception("Could not record movement for medicine %s", payload.medicine_id)
                raise StoreIOError("Database error while recording the movement") from e
        else:
            raise ConcurrentUpdate(
                f"Stock of medicine {payload.medicine_id} kept changing; please resubmit the movement"
            )

        db.refresh(movement)
        db.refresh(medicine)
        if update.clamped:
            logger.warning(
                "Exit of %d x %s in %s clamped by %d", payload.quantity, medicine.name, warehouse.name, update.clamped
            )
        logger.info(
            "%s of %d x %s in %s by %s", payload.type, payload.quantity, medicine.name, warehouse.name, actor.username
        )
        label = "Entry" if is_entry else "Exit"
        details = f"{label} of {payload.quantity} x {medicine.name} in {warehouse.name}"
        if is_entry:
            details += f" ({payload.justification})"
        else:
            details += f" for patient {movement.patient_name}"
        audit_recorder.append(actor.id, actor.username, f"{label} recorded", details, CATEGORY_MOVEMENT)
        return movement, medicine

    @staticmethod
    def list_movements(
        db: Session,
        search: Optional[str] = None,
        movement_type: Optional[str] = None,
        justification: Optional[str] = None,
        on_date: Optional[date] = None,
        medicine_id: Optional[UUID] = None,
        warehouse_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Movement]:
        """Movements newest date first. search matches medicine name, justification or patient name."""
        query = db.query(Movement)
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Movement.medicine_name.ilike(term),
                Movement.justification.ilike(term),
                Movement.patient_name.ilike(term),
            ))
        if movement_type:
            query = query.filter(Movement.movement_type == movement_type)
        if justification:
            query = query.filter(Movement.justification == justification)
        if on_date:
            query = query.filter(Movement.movement_date == on_date)
        if date_from:
            query = query.filter(Movement.movement_date >= date_from)
        if date_to:
            query = query.filter(Movement.movement_date <= date_to)
        if medicine_id:
            query = query.filter(Movement.medicine_id == medicine_id)
        if warehouse_id:
            query = query.filter(Movement.warehouse_id == warehouse_id)
        query = query.order_by(Movement.movement_date.desc(), Movement.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def ledger_rows(db: Session, medicine_id) -> List[LedgerRow]:
        """Movements of one medicine in recording order, as LedgerRows."""
        movements = (
            db.query(Movement)
            .filter(Movement.medicine_id == medicine_id)
            .order_by(Movement.created_at, Movement.id)
            .all()
        )
        return [
            LedgerRow(
                medicine_id=str(m.medicine_id),
                warehouse_id=str(m.warehouse_id),
                movement_type=m.movement_type,
                quantity=m.quantity,
                movement_date=m.movement_date,
                clamped_quantity=m.clamped_quantity or 0,
                sequence=i,
            )
            for i, m in enumerate(movements)
        ]

    @staticmethod
    def reconcile_medicine(
        db: Session,
        medicine: Medicine,
        repair: bool = False,
        actor: Optional[User] = None,
    ) -> Dict:
        """
        Compare the materialized stock with the stock the ledger implies.
        With repair=True the materialized stock is overwritten by the derived one.
        """
        derived, derived_total = derive_stock_from_ledger(InventoryService.ledger_rows(db, medicine.id))
        materialized = {str(k): int(v) for k, v in (medicine.warehouse_stock or {}).items()}
        drift = stock_drift(materialized, derived)
        total_mismatch = (medicine.current_stock or 0) != total_stock(materialized)
        report = {
            "medicine_id": medicine.id,
            "medicine_name": medicine.name,
            "materialized": materialized,
            "materialized_total": medicine.current_stock or 0,
            "derived": derived,
            "derived_total": derived_total,
            "drift": drift,
            "in_sync": not drift and not total_mismatch,
            "repaired": False,
        }
        if repair and not report["in_sync"]:
            medicine.warehouse_stock = derived
            medicine.current_stock = derived_total
            try:
                db.commit()
            except StaleDataError as e:
                db.rollback()
                raise ConcurrentUpdate(f"Medicine {medicine.name} changed during reconciliation") from e
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception("Could not repair stock of %s", medicine.name)
                raise StoreIOError("Database error while repairing stock") from e
            report["repaired"] = True
            logger.warning("Repaired stock of %s, drift was %s", medicine.name, drift)
            if actor is not None:
                audit_recorder.append(
                    actor.id, actor.username, "Stock reconciled",
                    f"Stock of {medicine.name} reset from ledger (drift {drift})", CATEGORY_UPDATE,
                )
        return report

    @staticmethod
    def reconcile_all(db: Session, repair: bool = False, actor: Optional[User] = None) -> List[Dict]:
        medicines = db.query(Medicine).order_by(Medicine.name).all()
        return [InventoryService.reconcile_medicine(db, m, repair=repair, actor=actor) for m in medicines]
