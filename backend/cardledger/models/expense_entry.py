"""
Expense entry model for corporate card purchases and subscriptions.
"""
from sqlalchemy import (
    Column, String, Numeric, Date, DateTime, Boolean, ForeignKey, Integer, Text, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from cardledger.db.base import BaseModel
import enum


def _enum_column(enum_cls, **kwargs):
    """Enum column persisted by value ("One-time") rather than member name."""
    return Column(
        SQLEnum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=40),
        **kwargs
    )


class ServiceStatus(str, enum.Enum):
    """Whether the purchased service is still in use."""
    ACTIVE = "Active"
    DEACTIVE = "Deactive"
    DECLINED = "Declined"


class EntryStatus(str, enum.Enum):
    """Review state of the entry itself."""
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class DuplicateStatus(str, enum.Enum):
    UNIQUE = "Unique"
    MERGED = "Merged"


class Recurring(str, enum.Enum):
    ONE_TIME = "One-time"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class TypeOfService(str, enum.Enum):
    DOMAIN = "Domain"
    GOOGLE = "Google"
    GOOGLE_ADWORDS_EXPENSE = "Google Adwords Expense"
    HOSTING = "Hosting"
    PROXY = "Proxy"
    SERVER = "Server"
    SERVICE = "Service"
    TOOL = "Tool"


class BusinessUnit(str, enum.Enum):
    DWSG = "DWSG"
    SIGNATURE = "Signature"
    COLLABX = "Collabx"
    WYTLABS = "Wytlabs"
    SMEGOWEB = "Smegoweb"


class CostCenter(str, enum.Enum):
    OPS = "Ops"
    FE = "FE"
    OH_EXPS = "OH Exps"
    SUPPORT = "Support"
    MANAGEMENT_EXPS = "Management EXPS"


class ApprovedBy(str, enum.Enum):
    VAIBHAV = "Vaibhav"
    MARC = "Marc"
    DAWOOD = "Dawood"
    RAGHAV = "Raghav"
    TARUN = "Tarun"
    YULIA = "Yulia"
    SARTHAK = "Sarthak"
    HARSHIT = "Harshit"


class ExpenseEntry(BaseModel):
    """A single card purchase or recurring subscription."""
    __tablename__ = "expense_entries"

    card_number = Column(String(50), nullable=False, index=True)
    card_assigned_to = Column(String(100), nullable=False)
    date = Column(Date, nullable=False, index=True)
    month = Column(String(20), nullable=True)  # Display label, e.g. "Jan 2025"
    status = _enum_column(ServiceStatus, default=ServiceStatus.ACTIVE, nullable=False)
    particulars = Column(String(255), nullable=False)
    narration = Column(Text, nullable=True)
    currency = Column(String(3), nullable=False, default="USD", index=True)
    bill_status = Column(String(50), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    xe_rate = Column(Numeric(15, 6), nullable=False, default=1)  # 1 unit of currency = xe_rate INR
    amount_in_inr = Column(Numeric(15, 2), nullable=False, default=0)
    type_of_service = _enum_column(TypeOfService, nullable=False)
    business_unit = _enum_column(BusinessUnit, nullable=False, index=True)
    cost_center = _enum_column(CostCenter, nullable=False)
    approved_by = _enum_column(ApprovedBy, nullable=False)
    service_handler = Column(String(100), nullable=True)
    recurring = _enum_column(Recurring, default=Recurring.ONE_TIME, nullable=False)
    entry_status = _enum_column(EntryStatus, default=EntryStatus.PENDING, nullable=False, index=True)
    duplicate_status = _enum_column(DuplicateStatus, nullable=True)

    # Renewal lifecycle
    next_renewal_date = Column(Date, nullable=True, index=True)
    renewal_notification_sent = Column(Boolean, default=False, nullable=False)
    auto_cancellation_notification_sent = Column(Boolean, default=False, nullable=False)
    disabled_at = Column(DateTime, nullable=True)

    is_shared = Column(Boolean, default=False, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # Relationships
    created_by = relationship("User", back_populates="expense_entries")
    shared_allocations = relationship(
        "SharedAllocation",
        back_populates="expense_entry",
        cascade="all, delete-orphan",
        order_by="SharedAllocation.position"
    )
    renewal_logs = relationship("RenewalLog", back_populates="expense_entry", passive_deletes="all")


class SharedAllocation(BaseModel):
    """One business unit's share of a shared entry's amount."""
    __tablename__ = "shared_allocations"

    expense_entry_id = Column(Integer, ForeignKey("expense_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    business_unit = _enum_column(BusinessUnit, nullable=False)
    amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    expense_entry = relationship("ExpenseEntry", back_populates="shared_allocations")
