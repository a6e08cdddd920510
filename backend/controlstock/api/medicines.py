"""
Medicine catalogue API. Any signed-in user can list medicines (movement forms
need them); changes need manage_medicines.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from controlstock.dependencies import CurrentSession, get_current_user, require_capability
from controlstock.models import Medicine
from controlstock.permission_config import MANAGE_MEDICINES
from controlstock.schemas.medicine import ActivateRequest, MedicineCreate, MedicineResponse, MedicineUpdate
from controlstock.services.entity_store import EntityStore
from controlstock.services.medicine_service import MedicineService

router = APIRouter()

_manage = require_capability(MANAGE_MEDICINES)


@router.get("/medicines", response_model=List[MedicineResponse])
def list_medicines(
    search: Optional[str] = Query(None),
    active_only: bool = Query(False),
    low_stock_only: bool = Query(False),
    current: CurrentSession = Depends(get_current_user),
):
    return MedicineService.list_medicines(
        current.db, search=search, active_only=active_only, low_stock_only=low_stock_only
    )


@router.get("/medicines/{medicine_id}", response_model=MedicineResponse)
def get_medicine(medicine_id: UUID, current: CurrentSession = Depends(get_current_user)):
    return EntityStore(current.db).get(Medicine, medicine_id)


@router.post("/medicines", response_model=MedicineResponse, status_code=status.HTTP_201_CREATED)
def create_medicine(body: MedicineCreate, current: CurrentSession = Depends(_manage)):
    return MedicineService.create(current.db, current.user, body)


@router.put("/medicines/{medicine_id}", response_model=MedicineResponse)
def update_medicine(medicine_id: UUID, body: MedicineUpdate, current: CurrentSession = Depends(_manage)):
    """Edit name and threshold. Stock is not editable here."""
    return MedicineService.update(current.db, current.user, medicine_id, body)


@router.patch("/medicines/{medicine_id}/active", response_model=MedicineResponse)
def set_medicine_active(medicine_id: UUID, body: ActivateRequest, current: CurrentSession = Depends(_manage)):
    return MedicineService.set_active(current.db, current.user, medicine_id, body.is_active)


@router.delete("/medicines/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_medicine(medicine_id: UUID, current: CurrentSession = Depends(_manage)):
    MedicineService.delete(current.db, current.user, medicine_id)
