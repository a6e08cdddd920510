"""
Audit log API (administrators only)
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from controlstock.dependencies import CurrentSession, require_capability
from controlstock.permission_config import VIEW_AUDIT_LOG
from controlstock.schemas.audit import AuditLogResponse
from controlstock.services.audit_service import AuditService, CATEGORIES

router = APIRouter()


@router.get("/audit", response_model=List[AuditLogResponse])
def list_audit_entries(
    search: Optional[str] = Query(None, description="User name, action or details"),
    category: Optional[str] = Query(None, description=", ".join(CATEGORIES)),
    on_date: Optional[date] = Query(None, alias="date"),
    limit: int = Query(500, ge=1, le=5000),
    current: CurrentSession = Depends(require_capability(VIEW_AUDIT_LOG)),
):
    return AuditService.list_entries(current.db, search=search, category=category, on_date=on_date, limit=limit)
