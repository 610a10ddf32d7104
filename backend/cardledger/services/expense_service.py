"""
Expense service for manual entry management, role-scoped queries and stats.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy import and_, or_, func
from sqlalchemy.orm import Session, Query, selectinload
from cardledger.db.base import utcnow
from cardledger.models.expense_entry import ExpenseEntry, SharedAllocation, ServiceStatus, EntryStatus
from cardledger.models.renewal_log import RenewalLog, RenewalAction
from cardledger.models.user import User, UserRole, BU_SCOPED_ROLES, AUTO_ACCEPT_ROLES
from cardledger.schemas.expense_entry import ExpenseEntryCreate, ExpenseEntryUpdate, ExpenseFilters
from cardledger.services.allocation_service import validate_shared_allocations
from cardledger.services.date_service import add_cadence, parse_filter_date
from cardledger.services.fx_service import RateLookup, get_exchange_rate, resolve_rate, convert_to_base
from cardledger.services.notification_service import create_notification
from cardledger.services.reconciliation_service import NormalizedEntry, ReconcileOutcome, reconcile_entry

logger = logging.getLogger(__name__)


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(column, value: str):
    return column.ilike(f"%{_like_escape(value)}%", escape="\\")


def _split_multi(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def handler_name_clause(column, name: str):
    """Match the full name or any word of it anywhere in ``column``, case-insensitively."""
    parts = [name.strip()] + name.split()
    return or_(*[_contains(column, part) for part in parts if part])


def apply_visibility(query: Query, user: User) -> Query:
    """Restrict a query to the entries the user's role may see."""
    if user.role in BU_SCOPED_ROLES:
        query = query.filter(ExpenseEntry.business_unit == user.business_unit)
    if user.role == UserRole.SERVICE_HANDLER:
        query = query.filter(handler_name_clause(ExpenseEntry.service_handler, user.name))
    return query


def build_expense_query(db: Session, user: User, filters: ExpenseFilters) -> Query:
    """
    Build the role-scoped, filtered entry query used by list and export.

    Entry status defaults to Accepted for everyone except SPOCs, unless the
    caller is browsing by disable-date range. A disable-date range defaults the
    service status to Deactive and matches either disabled_at or, for rows
    disabled before disabled_at existed, updated_at.
    """
    query = apply_visibility(db.query(ExpenseEntry), user)

    if filters.business_unit and user.role not in BU_SCOPED_ROLES:
        query = query.filter(ExpenseEntry.business_unit == filters.business_unit)
    if filters.card_number:
        query = query.filter(ExpenseEntry.card_number == filters.card_number)
    if filters.month:
        query = query.filter(ExpenseEntry.month == filters.month)
    if filters.type_of_service:
        query = query.filter(ExpenseEntry.type_of_service == filters.type_of_service)
    if filters.cost_center:
        query = query.filter(ExpenseEntry.cost_center == filters.cost_center)
    if filters.approved_by:
        query = query.filter(ExpenseEntry.approved_by == filters.approved_by)
    if filters.recurring:
        query = query.filter(ExpenseEntry.recurring == filters.recurring)
    if filters.is_shared is not None:
        query = query.filter(ExpenseEntry.is_shared == filters.is_shared)
    if filters.duplicate_status:
        query = query.filter(ExpenseEntry.duplicate_status == filters.duplicate_status)

    handlers = _split_multi(filters.service_handler)
    if handlers:
        query = query.filter(or_(*[_contains(ExpenseEntry.service_handler, h) for h in handlers]))
    assignees = _split_multi(filters.card_assigned_to)
    if assignees:
        query = query.filter(or_(*[_contains(ExpenseEntry.card_assigned_to, a) for a in assignees]))

    start = parse_filter_date(filters.start_date)
    end = parse_filter_date(filters.end_date, end_of_day=True)
    if start:
        query = query.filter(ExpenseEntry.date >= start.date())
    if end:
        query = query.filter(ExpenseEntry.date <= end.date())

    disable_start = parse_filter_date(filters.disable_start_date)
    disable_end = parse_filter_date(filters.disable_end_date, end_of_day=True)
    browsing_disabled = bool(disable_start or disable_end)

    status = filters.status
    if browsing_disabled and not status:
        status = ServiceStatus.DEACTIVE
    if status:
        query = query.filter(ExpenseEntry.status == status)

    if browsing_disabled:
        disabled_in_range = []
        legacy_in_range = [ExpenseEntry.status == ServiceStatus.DEACTIVE]
        if disable_start:
            disabled_in_range.append(ExpenseEntry.disabled_at >= disable_start)
            legacy_in_range.append(ExpenseEntry.updated_at >= disable_start)
        if disable_end:
            disabled_in_range.append(ExpenseEntry.disabled_at <= disable_end)
            legacy_in_range.append(ExpenseEntry.updated_at <= disable_end)
        query = query.filter(or_(and_(*disabled_in_range), and_(*legacy_in_range)))

    if filters.min_amount is not None:
        query = query.filter(ExpenseEntry.amount_in_inr >= filters.min_amount)
    if filters.max_amount is not None:
        query = query.filter(ExpenseEntry.amount_in_inr <= filters.max_amount)

    if filters.search:
        query = query.filter(or_(
            _contains(ExpenseEntry.particulars, filters.search),
            _contains(ExpenseEntry.narration, filters.search),
            _contains(ExpenseEntry.card_number, filters.search),
            _contains(ExpenseEntry.service_handler, filters.search),
            _contains(ExpenseEntry.card_assigned_to, filters.search)
        ))

    if filters.entry_status and user.role in (UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN):
        query = query.filter(ExpenseEntry.entry_status == filters.entry_status)
    elif user.role != UserRole.SPOC and not browsing_disabled:
        query = query.filter(ExpenseEntry.entry_status == EntryStatus.ACCEPTED)

    return query


def list_expense_entries(db: Session, user: User, filters: ExpenseFilters) -> List[ExpenseEntry]:
    """Filtered entries, newest purchase first."""
    query = build_expense_query(db, user, filters).options(
        selectinload(ExpenseEntry.shared_allocations)
    ).order_by(ExpenseEntry.date.desc(), ExpenseEntry.id.desc())
    if filters.limit:
        query = query.limit(filters.limit)
    return query.all()


def can_view_entry(user: User, entry: ExpenseEntry) -> bool:
    if user.role in BU_SCOPED_ROLES and entry.business_unit != user.business_unit:
        return False
    return True


async def create_expense_entry(
    db: Session,
    user: User,
    data: ExpenseEntryCreate,
    rate_lookup: RateLookup = get_exchange_rate
) -> ReconcileOutcome:
    """
    Create a manual entry through the same reconciliation as bulk upload.

    Raises AllocationExceedsTotal for an invalid split and ExchangeRateError
    when no rate is available. A duplicate returns the existing entry, now
    flagged Merged.
    """
    is_shared, allocations = validate_shared_allocations(
        data.is_shared, data.shared_allocations, data.amount, data.business_unit
    )

    currency = data.currency.upper()
    rate = await resolve_rate(rate_lookup, currency)
    candidate = NormalizedEntry(
        card_number=data.card_number.strip(),
        card_assigned_to=data.card_assigned_to.strip(),
        date=data.date,
        month=data.month,
        status=data.status,
        particulars=data.particulars.strip(),
        narration=data.narration or "",
        currency=currency,
        bill_status=data.bill_status or "",
        amount=data.amount,
        xe_rate=rate,
        amount_in_inr=convert_to_base(data.amount, rate),
        type_of_service=data.type_of_service,
        business_unit=data.business_unit,
        cost_center=data.cost_center,
        approved_by=data.approved_by,
        service_handler=(data.service_handler or "").strip(),
        recurring=data.recurring,
        is_shared=is_shared,
        shared_allocations=allocations
    )

    entry_status = EntryStatus.ACCEPTED if user.role in AUTO_ACCEPT_ROLES else EntryStatus.PENDING
    outcome = reconcile_entry(db, candidate, user.id, entry_status)

    if not outcome.merged and user.role == UserRole.SPOC:
        _notify_business_unit_admins(db, user, outcome.entry)
    logger.info(f"Entry {outcome.entry.id} created by user {user.id} (merged={outcome.merged})")
    return outcome


def _notify_business_unit_admins(db: Session, author: User, entry: ExpenseEntry) -> None:
    admins = db.query(User).filter(
        User.role == UserRole.BUSINESS_UNIT_ADMIN,
        User.business_unit == author.business_unit
    ).all()
    for admin in admins:
        create_notification(
            db,
            user_id=admin.id,
            type="entry_logged",
            title="New expense logged by SPOC",
            message=(
                f"{author.name} logged {entry.particulars} ({entry.currency} {entry.amount}) "
                f"for {entry.business_unit.value}."
            ),
            related_entry_id=entry.id
        )
    db.commit()


async def update_expense_entry(
    db: Session,
    entry: ExpenseEntry,
    data: ExpenseEntryUpdate,
    user: User,
    rate_lookup: RateLookup = get_exchange_rate
) -> ExpenseEntry:
    """
    Apply a partial update.

    Shared splits are re-validated whenever the split, the amount or the
    business unit changes. The INR amount is re-priced when amount or currency
    changes, and a new date or cadence restarts the renewal cycle. Moving the
    status to Deactive stamps disabled_at; when MIS or a super admin disables
    a service, a DisableByMIS decision is appended to the renewal log.
    """
    changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
    disable_reason = changes.pop("disable_reason", None)
    previous_status = entry.status

    split_changed = "is_shared" in changes or "shared_allocations" in changes
    total_changed = "amount" in changes or "business_unit" in changes
    if split_changed or (entry.is_shared and total_changed):
        wants_shared = changes.pop("is_shared", None)
        raw_allocations = changes.pop("shared_allocations", None)
        is_shared, allocations = validate_shared_allocations(
            entry.is_shared if wants_shared is None else wants_shared,
            entry.shared_allocations if raw_allocations is None else raw_allocations,
            changes.get("amount") or entry.amount,
            changes.get("business_unit") or entry.business_unit
        )
        entry.is_shared = is_shared
        entry.shared_allocations = [
            SharedAllocation(position=index, business_unit=a.business_unit, amount=a.amount)
            for index, a in enumerate(allocations)
        ]

    if changes.get("currency"):
        changes["currency"] = changes["currency"].upper()
    if changes.get("amount") or changes.get("currency"):
        amount = Decimal(str(changes.get("amount") or entry.amount))
        rate = await resolve_rate(rate_lookup, changes.get("currency") or entry.currency)
        changes["xe_rate"] = rate
        changes["amount_in_inr"] = convert_to_base(amount, rate)

    disabling = changes.get("status") == ServiceStatus.DEACTIVE and previous_status != ServiceStatus.DEACTIVE
    if disabling:
        changes["disabled_at"] = utcnow()

    for field, value in changes.items():
        setattr(entry, field, value)

    if "date" in changes or "recurring" in changes:
        entry.next_renewal_date = add_cadence(entry.date, entry.recurring)
        entry.renewal_notification_sent = False
        entry.auto_cancellation_notification_sent = False

    if disabling and user.role in (UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN):
        db.add(RenewalLog(
            expense_entry_id=entry.id,
            service_handler=entry.service_handler,
            action=RenewalAction.DISABLE_BY_MIS,
            reason=disable_reason or "Disabled by MIS",
            renewal_date=date.today()
        ))

    db.commit()
    db.refresh(entry)
    return entry


def review_expense_entry(db: Session, entry: ExpenseEntry, decision: EntryStatus) -> ExpenseEntry:
    """Accept or reject a Pending entry."""
    if entry.entry_status != EntryStatus.PENDING:
        raise ValueError("This entry has already been processed")
    entry.entry_status = decision
    db.commit()
    db.refresh(entry)
    logger.info(f"Entry {entry.id} {decision.value.lower()}")
    return entry


def delete_expense_entry(db: Session, entry: ExpenseEntry) -> None:
    db.delete(entry)
    db.commit()


def get_expense_stats(db: Session, user: User) -> Dict[str, Any]:
    """INR totals overall, per business unit and per service type."""
    base = apply_visibility(db.query(ExpenseEntry), user)
    if user.role != UserRole.SPOC:
        base = base.filter(ExpenseEntry.entry_status == EntryStatus.ACCEPTED)
    inr_total = func.coalesce(func.sum(ExpenseEntry.amount_in_inr), 0)

    total, count = base.with_entities(inr_total, func.count(ExpenseEntry.id)).one()
    total = Decimal(str(total)).quantize(Decimal("0.01"))
    average = (total / count).quantize(Decimal("0.01")) if count else Decimal("0.00")

    def grouped(column) -> List[Dict[str, Any]]:
        rows = base.with_entities(column, inr_total, func.count(ExpenseEntry.id)).group_by(column).order_by(column).all()
        return [
            {
                "key": key.value if key is not None else None,
                "total": Decimal(str(subtotal)).quantize(Decimal("0.01")),
                "count": group_count
            }
            for key, subtotal, group_count in rows
        ]

    return {
        "overall": {"total_expenses": total, "total_entries": count, "avg_expense": average},
        "by_business_unit": grouped(ExpenseEntry.business_unit),
        "by_type": grouped(ExpenseEntry.type_of_service),
    }
