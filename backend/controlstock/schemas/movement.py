"""
Movement schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime, date
from uuid import UUID

from controlstock.schemas.medicine import MedicineResponse

ENTRY_JUSTIFICATIONS = (
    "purchase",
    "return",
    "write_off_recovery",
    "transfer",
    "inventory_adjustment",
    "opening_balance",
)


class MovementCreate(BaseModel):
    """
    Entry: justification required; invoice_number required for purchases.
    Exit: patient_name and patient_document required.
    Cross-field rules are checked by InventoryService.validate_movement.
    """
    medicine_id: UUID
    warehouse_id: UUID
    type: Literal["entry", "exit"]
    quantity: int = Field(..., gt=0)
    movement_date: date
    justification: Optional[str] = None
    invoice_number: Optional[str] = None
    patient_name: Optional[str] = None
    patient_document: Optional[str] = None
    prescription_number: Optional[str] = None


class MovementResponse(BaseModel):
    id: UUID
    medicine_id: UUID
    medicine_name: str
    warehouse_id: UUID
    warehouse_name: str
    movement_type: str
    quantity: int
    clamped_quantity: int = 0
    movement_date: date
    user_id: UUID
    user_name: str
    justification: Optional[str] = None
    invoice_number: Optional[str] = None
    patient_name: Optional[str] = None
    patient_document: Optional[str] = None
    prescription_number: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MovementRecorded(BaseModel):
    movement: MovementResponse
    medicine: MedicineResponse
