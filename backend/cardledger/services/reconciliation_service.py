"""
Duplicate detection and merge for incoming expense entries.

Two entries are duplicates when card number, date, particulars, business unit,
amount and currency are all equal. A duplicate never creates a second record:
the stored entry is flagged Merged instead.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session
from cardledger.models.expense_entry import (
    ExpenseEntry, SharedAllocation, ServiceStatus, EntryStatus, DuplicateStatus,
    Recurring, TypeOfService, BusinessUnit, CostCenter, ApprovedBy
)
from cardledger.services.allocation_service import Allocation
from cardledger.services.date_service import add_cadence

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class NormalizedEntry:
    """Canonical field values for one incoming entry, ready to persist."""
    card_number: str
    card_assigned_to: str
    date: date
    particulars: str
    amount: Decimal
    currency: str
    business_unit: BusinessUnit
    type_of_service: TypeOfService
    cost_center: CostCenter
    approved_by: ApprovedBy
    xe_rate: Decimal
    amount_in_inr: Decimal
    month: Optional[str] = None
    status: ServiceStatus = ServiceStatus.ACTIVE
    narration: str = ""
    bill_status: str = ""
    service_handler: str = ""
    recurring: Recurring = Recurring.ONE_TIME
    is_shared: bool = False
    shared_allocations: List[Allocation] = field(default_factory=list)


@dataclass
class ReconcileOutcome:
    entry: ExpenseEntry
    merged: bool


def find_duplicate(db: Session, candidate: NormalizedEntry) -> Optional[ExpenseEntry]:
    """Look up a stored entry with the same duplicate key."""
    return db.query(ExpenseEntry).filter(
        ExpenseEntry.card_number == candidate.card_number,
        ExpenseEntry.date == candidate.date,
        ExpenseEntry.particulars == candidate.particulars,
        ExpenseEntry.business_unit == candidate.business_unit,
        ExpenseEntry.amount == candidate.amount.quantize(CENTS),
        ExpenseEntry.currency == candidate.currency
    ).first()


def mark_merged(db: Session, existing: ExpenseEntry) -> ExpenseEntry:
    """Flag a stored entry as Merged. Writes only on the first merge."""
    if existing.duplicate_status != DuplicateStatus.MERGED:
        existing.duplicate_status = DuplicateStatus.MERGED
        db.commit()
        db.refresh(existing)
    return existing


def create_entry(
    db: Session,
    candidate: NormalizedEntry,
    created_by_id: Optional[int],
    entry_status: EntryStatus
) -> ExpenseEntry:
    """Persist a new Unique entry with its renewal date and allocations."""
    entry = ExpenseEntry(
        card_number=candidate.card_number,
        card_assigned_to=candidate.card_assigned_to,
        date=candidate.date,
        month=candidate.month or candidate.date.strftime("%b %Y"),
        status=candidate.status,
        particulars=candidate.particulars,
        narration=candidate.narration or candidate.particulars,
        currency=candidate.currency,
        bill_status=candidate.bill_status,
        amount=candidate.amount.quantize(CENTS),
        xe_rate=candidate.xe_rate,
        amount_in_inr=candidate.amount_in_inr.quantize(CENTS),
        type_of_service=candidate.type_of_service,
        business_unit=candidate.business_unit,
        cost_center=candidate.cost_center,
        approved_by=candidate.approved_by,
        service_handler=candidate.service_handler,
        recurring=candidate.recurring,
        entry_status=entry_status,
        duplicate_status=DuplicateStatus.UNIQUE,
        next_renewal_date=add_cadence(candidate.date, candidate.recurring),
        renewal_notification_sent=False,
        auto_cancellation_notification_sent=False,
        is_shared=candidate.is_shared,
        created_by_id=created_by_id
    )
    entry.shared_allocations = [
        SharedAllocation(position=index, business_unit=allocation.business_unit, amount=allocation.amount)
        for index, allocation in enumerate(candidate.shared_allocations)
    ]
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def reconcile_entry(
    db: Session,
    candidate: NormalizedEntry,
    created_by_id: Optional[int],
    entry_status: EntryStatus
) -> ReconcileOutcome:
    """Merge into an existing duplicate or create a new entry."""
    existing = find_duplicate(db, candidate)
    if existing:
        logger.info(f"Duplicate of entry {existing.id} detected for {candidate.particulars}; marking merged")
        return ReconcileOutcome(entry=mark_merged(db, existing), merged=True)
    return ReconcileOutcome(entry=create_entry(db, candidate, created_by_id, entry_status), merged=False)
