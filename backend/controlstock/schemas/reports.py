"""
Report schemas
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date
from uuid import UUID

from controlstock.schemas.medicine import MedicineResponse
from controlstock.schemas.movement import MovementResponse


class MedicineActivity(BaseModel):
    medicine_id: UUID
    medicine_name: str
    movement_count: int
    total_quantity: Optional[int] = None


class DashboardResponse(BaseModel):
    total_medicines: int
    active_medicines: int
    warehouse_count: int
    movements_today: int
    low_stock_count: int
    low_stock: List[MedicineResponse]
    top_exits: List[MedicineActivity]
    least_moved: List[MedicineActivity]
    recent_movements: List[MovementResponse]


class WarehouseColumn(BaseModel):
    id: UUID
    name: str


class InventoryRow(BaseModel):
    medicine_id: UUID
    medicine_name: str
    stock: Dict[str, int]
    total: int
    low_stock_threshold: int
    is_low_stock: bool


class InventoryMatrix(BaseModel):
    warehouses: List[WarehouseColumn]
    rows: List[InventoryRow]


class MovementSummary(BaseModel):
    start_date: date
    end_date: date
    warehouse_id: Optional[UUID] = None
    movement_count: int
    entry_count: int
    exit_count: int
    entry_quantity: int
    exit_quantity: int
    entries: List[MovementResponse]
    exits: List[MovementResponse]


class PeriodReport(MovementSummary):
    inventory: InventoryMatrix


class MonthEndStock(BaseModel):
    medicine_id: UUID
    medicine_name: str
    current_stock: int = Field(..., description="Total across all warehouses")
    month_end_stock: int = Field(
        ...,
        description="Total across all warehouses at month end; warehouse_id does not narrow it",
    )


class MonthlyReport(MovementSummary):
    year: int
    month: int
    month_end_stock: List[MonthEndStock] = Field(
        ...,
        description="Per-medicine totals across all warehouses, even when the movements are filtered by warehouse_id",
    )


class DriftReport(BaseModel):
    medicine_id: UUID
    medicine_name: str
    materialized: Dict[str, int]
    materialized_total: int
    derived: Dict[str, int]
    derived_total: int
    drift: Dict[str, int]
    in_sync: bool
    repaired: bool


class ReconciliationResponse(BaseModel):
    checked: int
    out_of_sync: int
    medicines: List[DriftReport]
