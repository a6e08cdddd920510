"""
Audit log - append-only record of user actions.
"""
from sqlalchemy import Column, String, Text, Uuid
from sqlalchemy.types import TIMESTAMP
import uuid
from controlstock.database import Base


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=True, index=True)  # no FK: survives user deletion
    user_name = Column(String(100), nullable=False)
    action = Column(String(255), nullable=False)
    details = Column(Text, nullable=False, default="")
    category = Column(String(20), nullable=False, index=True)  # login|logout|create|update|delete|movement
    timestamp = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
