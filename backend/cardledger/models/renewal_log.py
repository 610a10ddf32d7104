"""
Renewal decision log. Rows are only ever appended.
"""
from sqlalchemy import Column, String, Date, ForeignKey, Integer, Text, Enum as SQLEnum, event
from sqlalchemy.orm import relationship
from cardledger.db.base import BaseModel
from cardledger.core.exceptions import ImmutableRecordError
import enum


class RenewalAction(str, enum.Enum):
    """Decision recorded for a renewal cycle."""
    CONTINUE = "Continue"
    CANCEL = "Cancel"
    DISABLE_BY_MIS = "DisableByMIS"


class RenewalLog(BaseModel):
    """A human decision for one (entry, renewal date) cycle."""
    __tablename__ = "renewal_logs"

    expense_entry_id = Column(Integer, ForeignKey("expense_entries.id", ondelete="SET NULL"), nullable=True, index=True)
    service_handler = Column(String(100), nullable=True)
    action = Column(
        SQLEnum(RenewalAction, values_callable=lambda e: [m.value for m in e], native_enum=False, length=20),
        nullable=False
    )
    reason = Column(Text, nullable=True)
    renewal_date = Column(Date, nullable=False, index=True)

    # Relationships
    expense_entry = relationship("ExpenseEntry", back_populates="renewal_logs")


@event.listens_for(RenewalLog, "before_update")
def _block_renewal_log_update(mapper, connection, target):
    raise ImmutableRecordError(f"RenewalLog {target.id} is append-only and cannot be modified")


@event.listens_for(RenewalLog, "before_delete")
def _block_renewal_log_delete(mapper, connection, target):
    raise ImmutableRecordError(f"RenewalLog {target.id} is append-only and cannot be deleted")
