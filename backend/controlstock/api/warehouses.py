"""
Warehouse API. Any signed-in user can list warehouses; changes need manage_warehouses.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from controlstock.dependencies import CurrentSession, get_current_user, require_capability
from controlstock.models import Warehouse
from controlstock.permission_config import MANAGE_WAREHOUSES
from controlstock.schemas.medicine import ActivateRequest
from controlstock.schemas.warehouse import WarehouseCreate, WarehouseResponse, WarehouseUpdate
from controlstock.services.entity_store import EntityStore
from controlstock.services.warehouse_service import WarehouseService

router = APIRouter()

_manage = require_capability(MANAGE_WAREHOUSES)


@router.get("/warehouses", response_model=List[WarehouseResponse])
def list_warehouses(
    active_only: bool = Query(False),
    current: CurrentSession = Depends(get_current_user),
):
    return WarehouseService.list_warehouses(current.db, active_only=active_only)


@router.get("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
def get_warehouse(warehouse_id: UUID, current: CurrentSession = Depends(get_current_user)):
    return EntityStore(current.db).get(Warehouse, warehouse_id)


@router.post("/warehouses", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse(body: WarehouseCreate, current: CurrentSession = Depends(_manage)):
    return WarehouseService.create(current.db, current.user, body)


@router.put("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
def update_warehouse(warehouse_id: UUID, body: WarehouseUpdate, current: CurrentSession = Depends(_manage)):
    return WarehouseService.update(current.db, current.user, warehouse_id, body)


@router.patch("/warehouses/{warehouse_id}/active", response_model=WarehouseResponse)
def set_warehouse_active(warehouse_id: UUID, body: ActivateRequest, current: CurrentSession = Depends(_manage)):
    return WarehouseService.set_active(current.db, current.user, warehouse_id, body.is_active)


@router.delete("/warehouses/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse(warehouse_id: UUID, current: CurrentSession = Depends(_manage)):
    WarehouseService.delete(current.db, current.user, warehouse_id)
