"""
Stock ledger model - pure stock arithmetic, no database access.

A medicine's stock is a map {warehouse_id: quantity} plus a total that must
always equal the sum of the map. Movements change one warehouse at a time:
an entry adds, an exit subtracts and never goes below zero.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, Optional, Tuple, Union

from controlstock.exceptions import InsufficientStock, ValidationError

ENTRY = "entry"
EXIT = "exit"
MOVEMENT_TYPES = (ENTRY, EXIT)

StockMap = Dict[str, int]


@dataclass(frozen=True)
class StockUpdate:
    """Result of applying one movement."""
    warehouse_stock: StockMap
    total: int
    previous: int
    new: int
    # Units of an exit that could not be withdrawn because stock ran out
    clamped: int = 0


@dataclass
class LedgerRow:
    """Minimal view of a movement used by the replay functions."""
    medicine_id: str
    warehouse_id: str
    movement_type: str
    quantity: int
    movement_date: date
    clamped_quantity: int = 0
    sequence: int = field(default=0, compare=False)


def total_stock(warehouse_stock: Optional[StockMap]) -> int:
    return sum(int(v) for v in (warehouse_stock or {}).values())


def _validate(movement_type: str, quantity) -> None:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Movement type must be one of {', '.join(MOVEMENT_TYPES)}", field="type")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer", field="quantity")


def apply_movement(
    warehouse_stock: Optional[StockMap],
    warehouse_id,
    movement_type: str,
    quantity: int,
    strict: bool = False,
) -> StockUpdate:
    """
    Apply an entry or exit to a copy of warehouse_stock.

    Exits larger than the warehouse's stock are clamped to zero (the shortfall
    is returned as StockUpdate.clamped). With strict=True they raise
    InsufficientStock instead and nothing changes.
    """
    _validate(movement_type, quantity)
    key = str(warehouse_id)
    stock = {str(k): int(v) for k, v in (warehouse_stock or {}).items()}
    cur = stock.get(key, 0)

    clamped = 0
    if movement_type == ENTRY:
        new = cur + quantity
    else:
        if quantity > cur:
            if strict:
                raise InsufficientStock(key, available=cur, requested=quantity)
            clamped = quantity - cur
        new = max(0, cur - quantity)

    stock[key] = new
    return StockUpdate(
        warehouse_stock=stock,
        total=total_stock(stock),
        previous=cur,
        new=new,
        clamped=clamped,
    )


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def reconstruct_end_of_period_stock(
    movements: Iterable,
    medicine_id,
    current_total: int,
    period_end: Union[date, datetime],
) -> int:
    """
    Total stock of a medicine at the end of period_end, recovered from its
    current total by undoing every later movement.

    Entries after the period are subtracted, exits after the period are added
    back (only the units that actually left, so clamped exits do not inflate
    the result). Order does not matter. The result is floored at zero.
    """
    end = _as_date(period_end)
    target = str(medicine_id)
    running = int(current_total)
    for m in movements:
        if str(m.medicine_id) != target:
            continue
        if _as_date(m.movement_date) <= end:
            continue
        moved = int(m.quantity) - int(getattr(m, "clamped_quantity", 0) or 0)
        if m.movement_type == ENTRY:
            running -= moved
        else:
            running += moved
    return max(0, running)


def derive_stock_from_ledger(movements: Iterable, strict: bool = False) -> Tuple[StockMap, int]:
    """
    Replay movements in recording order and return the stock map and total they
    imply. Rows are ordered by sequence (input order breaks ties); the movement
    date plays no part since a movement may be backdated within its month.

    An exit only withdraws the units that left when it was recorded, i.e.
    quantity minus clamped_quantity, so the replay never re-clamps.
    """
    stock: StockMap = {}
    for m in sorted(movements, key=lambda m: getattr(m, "sequence", 0) or 0):
        moved = int(m.quantity)
        if m.movement_type == EXIT:
            moved -= int(getattr(m, "clamped_quantity", 0) or 0)
            if moved <= 0:
                stock.setdefault(str(m.warehouse_id), 0)
                continue
        stock = apply_movement(stock, m.warehouse_id, m.movement_type, moved, strict=strict).warehouse_stock
    return stock, total_stock(stock)


def stock_drift(materialized: Optional[StockMap], derived: Optional[StockMap]) -> Dict[str, int]:
    """Per-warehouse difference materialized - derived, only for warehouses that differ."""
    materialized = {str(k): int(v) for k, v in (materialized or {}).items()}
    derived = {str(k): int(v) for k, v in (derived or {}).items()}
    drift = {}
    for key in set(materialized) | set(derived):
        diff = materialized.get(key, 0) - derived.get(key, 0)
        if diff:
            drift[key] = diff
    return drift


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def in_current_month(value: date, today: date) -> bool:
    first, last = month_bounds(today.year, today.month)
    return first <= value <= last
