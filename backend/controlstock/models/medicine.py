"""
Medicine model - materialized stock per warehouse.

warehouse_stock and current_stock are a materialized view over the movements
ledger. They are only written together with a Movement row, in the same
transaction (see InventoryService.record_movement).
"""
from sqlalchemy import Column, String, Integer, Boolean, JSON, CheckConstraint, Uuid
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from controlstock.database import Base


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    low_stock_threshold = Column(Integer, nullable=False, default=10)
    # {str(warehouse_id): quantity}; keys only for warehouses that ever held stock
    warehouse_stock = Column(JSON, nullable=False, default=dict)
    current_stock = Column(Integer, nullable=False, default=0)
    # Optimistic concurrency: every UPDATE checks and bumps this counter
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="medicine_stock_not_negative"),
        CheckConstraint("low_stock_threshold >= 1", name="medicine_threshold_positive"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) < (self.low_stock_threshold or 0)

    def stock_in(self, warehouse_id) -> int:
        return int((self.warehouse_stock or {}).get(str(warehouse_id), 0))
