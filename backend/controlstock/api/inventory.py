"""
Inventory API - stock matrix and ledger reconciliation
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from controlstock.dependencies import CurrentSession, require_capability
from controlstock.models import Medicine
from controlstock.permission_config import MANAGE_MEDICINES, VIEW_INVENTORY
from controlstock.schemas.reports import DriftReport, InventoryMatrix, ReconciliationResponse
from controlstock.services.entity_store import EntityStore
from controlstock.services.inventory_service import InventoryService
from controlstock.services.report_service import ReportService

router = APIRouter()


@router.get("/inventory", response_model=InventoryMatrix)
def inventory_matrix(
    search: Optional[str] = Query(None),
    warehouse_id: Optional[UUID] = Query(None),
    current: CurrentSession = Depends(require_capability(VIEW_INVENTORY)),
):
    """Active medicines x active warehouses with per-warehouse stock and low-stock flags."""
    return ReportService.inventory_matrix(current.db, search=search, warehouse_id=warehouse_id)


@router.get("/inventory/reconcile", response_model=ReconciliationResponse)
def reconcile_all(current: CurrentSession = Depends(require_capability(VIEW_INVENTORY))):
    """Compare materialized stock with the stock implied by the movements ledger."""
    reports = InventoryService.reconcile_all(current.db)
    return {
        "checked": len(reports),
        "out_of_sync": sum(1 for r in reports if not r["in_sync"]),
        "medicines": reports,
    }


@router.post("/inventory/reconcile", response_model=ReconciliationResponse)
def repair_all(current: CurrentSession = Depends(require_capability(MANAGE_MEDICINES))):
    """Overwrite drifted materialized stock with the ledger-derived stock."""
    reports = InventoryService.reconcile_all(current.db, repair=True, actor=current.user)
    return {
        "checked": len(reports),
        "out_of_sync": sum(1 for r in reports if not r["in_sync"]),
        "medicines": reports,
    }


@router.get("/inventory/reconcile/{medicine_id}", response_model=DriftReport)
def reconcile_medicine(medicine_id: UUID, current: CurrentSession = Depends(require_capability(VIEW_INVENTORY))):
    medicine = EntityStore(current.db).get(Medicine, medicine_id)
    return InventoryService.reconcile_medicine(current.db, medicine)
