"""
Pydantic schemas for ExpenseEntry entity.
"""
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from cardledger.models.expense_entry import (
    ServiceStatus, EntryStatus, DuplicateStatus, Recurring,
    TypeOfService, BusinessUnit, CostCenter, ApprovedBy
)


class SharedAllocationSchema(BaseModel):
    """One business unit's share of a shared entry."""
    business_unit: BusinessUnit
    amount: Decimal = Field(..., ge=0)

    class Config:
        from_attributes = True


class ExpenseEntryBase(BaseModel):
    """Base expense entry schema."""
    card_number: str = Field(..., min_length=1)
    card_assigned_to: str = Field(..., min_length=1)
    date: date
    month: Optional[str] = None
    status: ServiceStatus = ServiceStatus.ACTIVE
    particulars: str = Field(..., min_length=1)
    narration: Optional[str] = None
    currency: str = Field("USD", min_length=3, max_length=3)
    bill_status: Optional[str] = None
    amount: Decimal = Field(..., gt=0, le=Decimal("9999999999999.99"))
    type_of_service: TypeOfService
    business_unit: BusinessUnit
    cost_center: CostCenter
    approved_by: ApprovedBy
    service_handler: Optional[str] = None
    recurring: Recurring = Recurring.ONE_TIME
    is_shared: bool = False
    shared_allocations: List[SharedAllocationSchema] = []


class ExpenseEntryCreate(ExpenseEntryBase):
    """Schema for manual entry creation."""
    pass


class ExpenseEntryUpdate(BaseModel):
    """Schema for entry update. Only fields that are sent are changed."""
    card_number: Optional[str] = None
    card_assigned_to: Optional[str] = None
    date: Optional[dt.date] = None
    month: Optional[str] = None
    status: Optional[ServiceStatus] = None
    particulars: Optional[str] = None
    narration: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    bill_status: Optional[str] = None
    amount: Optional[Decimal] = Field(None, gt=0, le=Decimal("9999999999999.99"))
    type_of_service: Optional[TypeOfService] = None
    business_unit: Optional[BusinessUnit] = None
    cost_center: Optional[CostCenter] = None
    approved_by: Optional[ApprovedBy] = None
    service_handler: Optional[str] = None
    recurring: Optional[Recurring] = None
    is_shared: Optional[bool] = None
    shared_allocations: Optional[List[SharedAllocationSchema]] = None
    disable_reason: Optional[str] = None  # Logged when the status moves to Deactive


class ExpenseEntryResponse(ExpenseEntryBase):
    """Schema for expense entry response."""
    id: int
    xe_rate: Decimal
    amount_in_inr: Decimal
    entry_status: EntryStatus
    duplicate_status: Optional[DuplicateStatus] = None
    next_renewal_date: Optional[date] = None
    renewal_notification_sent: bool
    auto_cancellation_notification_sent: bool
    disabled_at: Optional[datetime] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ExpenseEntryReview(BaseModel):
    """Decision on a Pending entry."""
    decision: Literal["Accepted", "Rejected"]


class ExpenseFilters(BaseModel):
    """Query-string filters shared by the list and export endpoints."""
    business_unit: Optional[BusinessUnit] = None
    card_number: Optional[str] = None
    card_assigned_to: Optional[str] = None  # Comma-separated, partial match
    status: Optional[ServiceStatus] = None
    month: Optional[str] = None
    type_of_service: Optional[TypeOfService] = None
    service_handler: Optional[str] = None  # Comma-separated, partial match
    cost_center: Optional[CostCenter] = None
    approved_by: Optional[ApprovedBy] = None
    recurring: Optional[Recurring] = None
    is_shared: Optional[bool] = None
    duplicate_status: Optional[DuplicateStatus] = None
    entry_status: Optional[EntryStatus] = None  # Honoured for MIS managers and super admins only
    start_date: Optional[str] = None  # DD-MM-YYYY or ISO
    end_date: Optional[str] = None
    disable_start_date: Optional[str] = None
    disable_end_date: Optional[str] = None
    min_amount: Optional[Decimal] = None  # Bounds on amount_in_inr
    max_amount: Optional[Decimal] = None
    search: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    include_duplicate_status: bool = False


class GroupTotal(BaseModel):
    key: Optional[str] = None
    total: Decimal
    count: int


class OverallStats(BaseModel):
    total_expenses: Decimal
    total_entries: int
    avg_expense: Decimal


class ExpenseStatsResponse(BaseModel):
    """Totals in INR over the entries visible to the caller."""
    overall: OverallStats
    by_business_unit: List[GroupTotal]
    by_type: List[GroupTotal]
