"""
Medicine schemas

Stock fields are read-only here: stock only changes through movements.
"""
from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime
from uuid import UUID


class MedicineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    low_stock_threshold: int = Field(10, ge=1)
    is_active: bool = True


class MedicineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    low_stock_threshold: Optional[int] = Field(None, ge=1)


class ActivateRequest(BaseModel):
    is_active: bool


class MedicineResponse(BaseModel):
    id: UUID
    name: str
    is_active: bool
    low_stock_threshold: int
    warehouse_stock: Dict[str, int] = Field(default_factory=dict)
    current_stock: int
    is_low_stock: bool
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
