"""
Report Service - dashboard statistics, inventory matrix, period and monthly reports.

All figures are computed from the medicines' materialized stock and the
movements ledger; month-end stock is reconstructed from the current total by
undoing later movements.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from controlstock.exceptions import NotFound, ValidationError
from controlstock.models import Medicine, Movement, Warehouse
from controlstock.services.inventory_service import InventoryService
from controlstock.services.stock_ledger import ENTRY, EXIT, month_bounds, reconstruct_end_of_period_stock

logger = logging.getLogger(__name__)

RECENT_MOVEMENTS_LIMIT = 10
TOP_LIMIT = 5
ACTIVITY_WINDOW_DAYS = 30


class ReportService:

    @staticmethod
    def dashboard(db: Session, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        window_start = today - timedelta(days=ACTIVITY_WINDOW_DAYS)

        medicines = db.query(Medicine).order_by(Medicine.name).all()
        active = [m for m in medicines if m.is_active]
        low_stock = [m for m in active if m.is_low_stock]

        movements_today = db.query(func.count(Movement.id)).filter(Movement.movement_date == today).scalar() or 0
        warehouse_count = db.query(func.count(Warehouse.id)).filter(Warehouse.is_active.is_(True)).scalar() or 0

        exits = (
            db.query(Movement.medicine_id, func.sum(Movement.quantity), func.count(Movement.id))
            .filter(Movement.movement_type == EXIT, Movement.movement_date >= window_start)
            .group_by(Movement.medicine_id)
            .all()
        )
        by_id = {m.id: m for m in medicines}
        top_exits = sorted(
            (
                {
                    "medicine_id": mid,
                    "medicine_name": by_id[mid].name if mid in by_id else "",
                    "total_quantity": int(total or 0),
                    "movement_count": int(count or 0),
                }
                for mid, total, count in exits
                if total
            ),
            key=lambda r: (-r["total_quantity"], r["medicine_name"]),
        )[:TOP_LIMIT]

        counts = dict(
            db.query(Movement.medicine_id, func.count(Movement.id))
            .filter(Movement.movement_date >= window_start)
            .group_by(Movement.medicine_id)
            .all()
        )
        least_moved = sorted(
            (
                {"medicine_id": m.id, "medicine_name": m.name, "movement_count": int(counts.get(m.id, 0))}
                for m in active
            ),
            key=lambda r: (r["movement_count"], r["medicine_name"]),
        )[:TOP_LIMIT]

        recent = InventoryService.list_movements(db, limit=RECENT_MOVEMENTS_LIMIT)

        return {
            "total_medicines": len(medicines),
            "active_medicines": len(active),
            "warehouse_count": warehouse_count,
            "movements_today": movements_today,
            "low_stock_count": len(low_stock),
            "low_stock": low_stock,
            "top_exits": top_exits,
            "least_moved": least_moved,
            "recent_movements": recent,
        }

    @staticmethod
    def inventory_matrix(
        db: Session,
        search: Optional[str] = None,
        warehouse_id: Optional[UUID] = None,
    ) -> Dict:
        """Active medicines x active warehouses. With warehouse_id only that column is returned."""
        warehouses = db.query(Warehouse).filter(Warehouse.is_active.is_(True)).order_by(Warehouse.name).all()
        if warehouse_id is not None:
            warehouses = [w for w in warehouses if w.id == warehouse_id]
            if not warehouses:
                raise NotFound("Warehouse", warehouse_id)

        query = db.query(Medicine).filter(Medicine.is_active.is_(True))
        if search and search.strip():
            query = query.filter(Medicine.name.ilike(f"%{search.strip()}%"))

        rows = []
        for medicine in query.order_by(Medicine.name).all():
            stock = {str(w.id): medicine.stock_in(w.id) for w in warehouses}
            rows.append({
                "medicine_id": medicine.id,
                "medicine_name": medicine.name,
                "stock": stock,
                "total": medicine.current_stock or 0,
                "low_stock_threshold": medicine.low_stock_threshold,
                "is_low_stock": medicine.is_low_stock,
            })
        return {
            "warehouses": [{"id": w.id, "name": w.name} for w in warehouses],
            "rows": rows,
        }

    @staticmethod
    def _summarize(movements: List[Movement]) -> Dict:
        entries = [m for m in movements if m.movement_type == ENTRY]
        exits = [m for m in movements if m.movement_type == EXIT]
        return {
            "movement_count": len(movements),
            "entry_count": len(entries),
            "exit_count": len(exits),
            "entry_quantity": sum(m.quantity for m in entries),
            "exit_quantity": sum(m.effective_quantity for m in exits),
            "entries": entries,
            "exits": exits,
        }

    @staticmethod
    def period_report(
        db: Session,
        start: date,
        end: date,
        warehouse_id: Optional[UUID] = None,
    ) -> Dict:
        """Movements dated start..end inclusive, split by type, with the current stock matrix."""
        if start > end:
            raise ValidationError("Start date must not be after end date", field="start_date")
        movements = InventoryService.list_movements(db, warehouse_id=warehouse_id, date_from=start, date_to=end)
        report = {"start_date": start, "end_date": end, "warehouse_id": warehouse_id}
        report.update(ReportService._summarize(movements))
        report["inventory"] = ReportService.inventory_matrix(db, warehouse_id=warehouse_id)
        return report

    @staticmethod
    def monthly_report(
        db: Session,
        year: int,
        month: int,
        warehouse_id: Optional[UUID] = None,
    ) -> Dict:
        """
        Movements of one calendar month and every active medicine's total stock
        at the end of that month. warehouse_id filters the movements only; the
        month-end figures are always totals across all warehouses.
        """
        first, last = month_bounds(year, month)
        movements = InventoryService.list_movements(db, warehouse_id=warehouse_id, date_from=first, date_to=last)

        later = db.query(Movement).filter(Movement.movement_date > last).all()
        later_by_medicine = defaultdict(list)
        for m in later:
            later_by_medicine[m.medicine_id].append(m)

        month_end = []
        for medicine in db.query(Medicine).filter(Medicine.is_active.is_(True)).order_by(Medicine.name).all():
            month_end.append({
                "medicine_id": medicine.id,
                "medicine_name": medicine.name,
                "current_stock": medicine.current_stock or 0,
                "month_end_stock": reconstruct_end_of_period_stock(
                    later_by_medicine.get(medicine.id, []), medicine.id, medicine.current_stock or 0, last
                ),
            })

        report = {"year": year, "month": month, "start_date": first, "end_date": last, "warehouse_id": warehouse_id}
        report.update(ReportService._summarize(movements))
        report["month_end_stock"] = month_end
        return report
