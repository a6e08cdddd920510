"""
Audit log schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID


class AuditLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    user_name: str
    action: str
    details: str
    category: str
    timestamp: datetime

    class Config:
        from_attributes = True
