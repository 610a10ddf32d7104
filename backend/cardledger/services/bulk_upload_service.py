"""
Bulk upload of expense spreadsheets.

Every data row is normalized and reconciled on its own: a failing row is
recorded in the batch errors and the remaining rows still run. Rows that were
written before a crash stay written.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session
from cardledger.core.exceptions import MissingRequiredField, UnresolvedEnum, ValueOutOfRange
from cardledger.models.expense_entry import ExpenseEntry, EntryStatus
from cardledger.services.allocation_service import parse_boolean, parse_shared_allocations, validate_shared_allocations
from cardledger.services.date_service import resolve_date
from cardledger.services.enum_service import (
    canonical_type_of_service, canonical_business_unit, canonical_cost_center,
    canonical_approved_by, canonical_status, canonical_recurring
)
from cardledger.services.field_resolver import FieldResolver
from cardledger.services.fx_service import RateLookup, get_exchange_rate, resolve_rate, convert_to_base
from cardledger.services.reconciliation_service import NormalizedEntry, reconcile_entry

logger = logging.getLogger(__name__)

# Data rows start under the header, so list index 0 is display row 2
FIRST_DATA_ROW = 2

# Largest values the Numeric(15, 2) and Numeric(15, 6) columns hold
MAX_AMOUNT = Decimal("9999999999999.99")
MAX_RATE = Decimal("999999999.999999")

# Labels for the length-limited text columns checked before insert
BOUNDED_TEXT_FIELDS = {
    "card_number": "Card Number",
    "card_assigned_to": "Card Assigned To",
    "month": "Month",
    "particulars": "Particulars",
    "currency": "Currency",
    "bill_status": "Bill Status",
    "service_handler": "Service Handler",
}


@dataclass
class RowError:
    row_number: int
    message: str
    raw_row: Dict[str, Any]


@dataclass
class BatchResult:
    """Aggregate outcome of one upload."""
    total: int = 0
    success: int = 0
    failed: int = 0
    merged: int = 0
    unique: int = 0
    errors: List[RowError] = field(default_factory=list)

    def record_success(self, merged: bool) -> None:
        self.success += 1
        if merged:
            self.merged += 1
        else:
            self.unique += 1

    def record_failure(self, row_number: int, message: str, raw_row: Dict[str, Any]) -> None:
        self.failed += 1
        self.errors.append(RowError(row_number=row_number, message=message, raw_row=raw_row))
        logger.warning(f"[Bulk Upload] Row {row_number} failed. {message}")


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse an amount cell, tolerating thousands separators."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).replace(",", "").strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _positive_decimal(value: Any) -> Optional[Decimal]:
    amount = parse_amount(value)
    if amount is None or amount <= 0:
        return None
    return amount


def _check_range(label: str, value: Decimal, limit: Decimal) -> None:
    if abs(value) > limit:
        raise ValueOutOfRange(f"{label} out of range (value: {value})")


def check_column_lengths(candidate: NormalizedEntry) -> None:
    """Raise ValueOutOfRange when a text value is longer than its column allows."""
    columns = ExpenseEntry.__table__.columns
    for name, label in BOUNDED_TEXT_FIELDS.items():
        value = getattr(candidate, name) or ""
        limit = columns[name].type.length
        if len(value) > limit:
            raise ValueOutOfRange(f"{label} exceeds {limit} characters")


async def normalize_row(row: Dict[str, Any], rate_lookup: RateLookup) -> NormalizedEntry:
    """
    Resolve one raw row into canonical values.

    Raises MissingRequiredField, UnresolvedEnum, InvalidDate,
    AllocationExceedsTotal or ValueOutOfRange; rate lookup failures propagate
    as-is.
    """
    fields = FieldResolver(row)

    card_number = fields.text("card_number")
    card_assigned_to = fields.text("card_assigned_to")
    raw_date = fields.field("date")
    particulars = fields.text("particulars")
    amount = parse_amount(fields.field("amount"))
    business_unit_raw = fields.text("business_unit")
    business_unit = canonical_business_unit(business_unit_raw)

    missing = []
    if not card_number:
        missing.append("Card Number")
    if not card_assigned_to:
        missing.append("Card Assigned To")
    if raw_date is None or str(raw_date).strip() == "":
        missing.append("Date")
    if not particulars:
        missing.append("Particulars")
    if amount is None:
        missing.append("Amount")
    if not business_unit_raw:
        missing.append("Business Unit")
    if missing:
        raise MissingRequiredField(missing)
    _check_range("Amount", amount, MAX_AMOUNT)

    type_raw = fields.text("type_of_service")
    cost_center_raw = fields.text("cost_center")
    approved_by_raw = fields.text("approved_by")
    type_of_service = canonical_type_of_service(type_raw)
    cost_center = canonical_cost_center(cost_center_raw)
    approved_by = canonical_approved_by(approved_by_raw)

    problems = []
    if not business_unit:
        problems.append(f"Business Unit (value: {business_unit_raw})")
    if not type_of_service:
        problems.append(f"Type of Service (value: {type_raw or 'empty'})")
    if not cost_center:
        problems.append(f"Cost Center (value: {cost_center_raw or 'empty'})")
    if not approved_by:
        problems.append(f"Approved By (value: {approved_by_raw or 'empty'})")
    if problems:
        raise UnresolvedEnum(problems)

    parsed_date = resolve_date(raw_date).date()

    raw_allocations = fields.field("shared_allocations")
    wants_shared = parse_boolean(fields.field("is_shared")) or bool(parse_shared_allocations(raw_allocations))
    is_shared, allocations = validate_shared_allocations(wants_shared, raw_allocations, amount, business_unit)

    currency = fields.text("currency", "USD").upper()
    rate = _positive_decimal(fields.field("xe_rate"))
    if rate is None:
        rate = await resolve_rate(rate_lookup, currency)
    _check_range("XE Rate", rate, MAX_RATE)
    amount_in_inr = _positive_decimal(fields.field("amount_in_inr")) or convert_to_base(amount, rate)
    _check_range("Amount in INR", amount_in_inr, MAX_AMOUNT)

    candidate = NormalizedEntry(
        card_number=card_number,
        card_assigned_to=card_assigned_to,
        date=parsed_date,
        month=fields.text("month") or None,
        status=canonical_status(fields.field("status")),
        particulars=particulars,
        narration=fields.text("narration"),
        currency=currency,
        bill_status=fields.text("bill_status"),
        amount=amount,
        xe_rate=rate,
        amount_in_inr=amount_in_inr,
        type_of_service=type_of_service,
        business_unit=business_unit,
        cost_center=cost_center,
        approved_by=approved_by,
        service_handler=fields.text("service_handler"),
        recurring=canonical_recurring(fields.field("recurring")),
        is_shared=is_shared,
        shared_allocations=allocations
    )
    check_column_lengths(candidate)
    return candidate


async def process_rows(
    db: Session,
    rows: List[Dict[str, Any]],
    created_by_id: Optional[int],
    rate_lookup: RateLookup = get_exchange_rate
) -> BatchResult:
    """Normalize and reconcile each row in order, collecting a batch summary."""
    result = BatchResult(total=len(rows))

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        try:
            candidate = await normalize_row(row, rate_lookup)
            # Uploads come from privileged roles and are accepted directly
            outcome = reconcile_entry(db, candidate, created_by_id, EntryStatus.ACCEPTED)
        except (ValueError, ArithmeticError) as e:
            db.rollback()
            result.record_failure(row_number, str(e) or "Invalid number", row)
            continue
        except (DataError, IntegrityError) as e:
            # Connection failures (OperationalError) still abort the upload
            db.rollback()
            result.record_failure(row_number, f"Database rejected row: {e.orig}", row)
            continue
        result.record_success(outcome.merged)

    logger.info(
        f"Bulk upload completed: total={result.total} success={result.success} failed={result.failed} "
        f"merged={result.merged} unique={result.unique}"
    )
    return result

