"""
Reports API - dashboard, period and monthly reports
"""
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from controlstock.dependencies import CurrentSession, require_capability
from controlstock.permission_config import VIEW_DASHBOARD, VIEW_REPORTS
from controlstock.schemas.reports import DashboardResponse, MonthlyReport, PeriodReport
from controlstock.services.report_service import ReportService

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(current: CurrentSession = Depends(require_capability(VIEW_DASHBOARD))):
    return ReportService.dashboard(current.db)


@router.get("/reports/period", response_model=PeriodReport)
def period_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    warehouse_id: Optional[UUID] = Query(None),
    current: CurrentSession = Depends(require_capability(VIEW_REPORTS)),
):
    """Movements between start_date and end_date (inclusive) plus the current stock matrix."""
    return ReportService.period_report(current.db, start_date, end_date, warehouse_id=warehouse_id)


@router.get("/reports/monthly", response_model=MonthlyReport)
def monthly_report(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(...),
    warehouse_id: Optional[UUID] = Query(None),
    current: CurrentSession = Depends(require_capability(VIEW_REPORTS)),
):
    """Movements of one month and each active medicine's stock at the end of it."""
    return ReportService.monthly_report(current.db, year, month, warehouse_id=warehouse_id)
