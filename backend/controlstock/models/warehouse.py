"""
Warehouse model (pharmacy, emergency cart, ambulance kit...)
"""
from sqlalchemy import Column, String, Boolean, Text, Uuid
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
import uuid
from controlstock.database import Base


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
