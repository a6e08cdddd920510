"""
Movement model - append-only ledger of controlled-substance entries and exits.

Never update or delete. Medicine, warehouse and user names are snapshots taken
when the movement was recorded so the ledger stays readable if the referenced
record is later renamed.
"""
from sqlalchemy import Column, String, Integer, Date, ForeignKey, CheckConstraint, Uuid
from sqlalchemy.types import TIMESTAMP
import uuid
from datetime import datetime, timezone
from controlstock.database import Base


class Movement(Base):
    __tablename__ = "movements"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    medicine_id = Column(Uuid(as_uuid=True), ForeignKey("medicines.id"), nullable=False, index=True)
    medicine_name = Column(String(255), nullable=False)
    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False, index=True)
    warehouse_name = Column(String(255), nullable=False)
    movement_type = Column(String(10), nullable=False)  # entry | exit
    quantity = Column(Integer, nullable=False)
    # Part of an exit that could not be withdrawn (clamped at zero stock)
    clamped_quantity = Column(Integer, nullable=False, default=0)
    movement_date = Column(Date, nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(100), nullable=False)

    # Entry
    justification = Column(String(40), nullable=True)
    invoice_number = Column(String(100), nullable=True)
    # Exit
    patient_name = Column(String(255), nullable=True)
    patient_document = Column(String(50), nullable=True)
    prescription_number = Column(String(100), nullable=True)

    # Python-side default keeps microseconds so same-day movements replay in recording order
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint("quantity > 0", name="movement_quantity_positive"),
        CheckConstraint("movement_type IN ('entry', 'exit')", name="movement_type_valid"),
        CheckConstraint("clamped_quantity >= 0", name="movement_clamped_not_negative"),
    )

    @property
    def effective_quantity(self) -> int:
        """Units that actually moved (quantity minus any clamped shortfall)."""
        return self.quantity - (self.clamped_quantity or 0)
