"""
Movements API - record and browse entries and exits.

Movements are append-only: there is no update or delete route.
"""
from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from controlstock.dependencies import CurrentSession, require_capability
from controlstock.models import Movement
from controlstock.permission_config import MANAGE_MOVEMENTS
from controlstock.schemas.movement import MovementCreate, MovementRecorded, MovementResponse
from controlstock.services.entity_store import EntityStore
from controlstock.services.inventory_service import InventoryService

router = APIRouter()

_movements = require_capability(MANAGE_MOVEMENTS)


@router.post("/movements", response_model=MovementRecorded, status_code=status.HTTP_201_CREATED)
def record_movement(body: MovementCreate, current: CurrentSession = Depends(_movements)):
    """
    Record an entry or exit. The movement and the medicine's new stock are
    saved together; the response carries both.
    """
    movement, medicine = InventoryService.record_movement(current.db, current.user, body)
    return {"movement": movement, "medicine": medicine}


@router.get("/movements", response_model=List[MovementResponse])
def list_movements(
    search: Optional[str] = Query(None, description="Medicine name, justification or patient name"),
    type: Optional[Literal["entry", "exit"]] = Query(None),
    justification: Optional[str] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    medicine_id: Optional[UUID] = Query(None),
    warehouse_id: Optional[UUID] = Query(None),
    current: CurrentSession = Depends(_movements),
):
    return InventoryService.list_movements(
        current.db,
        search=search,
        movement_type=type,
        justification=justification,
        on_date=on_date,
        medicine_id=medicine_id,
        warehouse_id=warehouse_id,
    )


@router.get("/movements/{movement_id}", response_model=MovementResponse)
def get_movement(movement_id: UUID, current: CurrentSession = Depends(_movements)):
    return EntityStore(current.db).get(Movement, movement_id)
