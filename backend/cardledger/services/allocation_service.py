"""
Shared cost allocation parsing and validation.
"""
import json
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple
from cardledger.core.exceptions import AllocationExceedsTotal
from cardledger.models.expense_entry import BusinessUnit
from cardledger.services.enum_service import canonical_business_unit


_SEGMENT_SEPARATORS = re.compile(r"[,;|]")
_SEGMENT_PATTERN = re.compile(r"(.+?)[\s:=\-]+([\d.,]+)")
_TRUTHY = {"true", "yes", "y", "1", "shared", "checked"}


@dataclass
class Allocation:
    """A business unit's share of an entry amount."""
    business_unit: BusinessUnit
    amount: Decimal


def parse_boolean(value: Any) -> bool:
    """Interpret spreadsheet yes/no style flags."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _to_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _item_field(item: Any, *names: str) -> Any:
    for name in names:
        if isinstance(item, dict):
            if item.get(name) is not None:
                return item[name]
        elif getattr(item, name, None) is not None:
            return getattr(item, name)
    return None


def _parse_structured(items: List[Any]) -> List[Allocation]:
    allocations = []
    for item in items:
        bu = canonical_business_unit(_item_field(item, "business_unit", "businessUnit", "bu", "unit"))
        amount = _to_amount(_item_field(item, "amount", "value", "share"))
        if bu and amount is not None and amount > 0:
            allocations.append(Allocation(business_unit=bu, amount=amount))
    return allocations


def _parse_text(text: str) -> List[Allocation]:
    allocations = []
    for segment in _SEGMENT_SEPARATORS.split(text):
        segment = segment.strip()
        if not segment:
            continue
        match = _SEGMENT_PATTERN.match(segment)
        if not match:
            continue
        bu = canonical_business_unit(match.group(1))
        amount = _to_amount(re.sub(r"[^0-9.\-]", "", match.group(2)))
        if bu and amount is not None and amount > 0:
            allocations.append(Allocation(business_unit=bu, amount=amount))
    return allocations


def parse_shared_allocations(raw: Any) -> List[Allocation]:
    """
    Parse allocations from a list of dicts/objects, a JSON-encoded list, or
    free text such as "Wytlabs: 200, Collabx: 100".

    Items with an unknown business unit or a non-positive amount are dropped.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return _parse_structured(list(raw))

    text = str(raw).strip()
    if not text:
        return []
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None
    if isinstance(decoded, list):
        return _parse_structured(decoded)
    return _parse_text(text)


def validate_shared_allocations(
    is_shared: bool,
    raw_allocations: Any,
    total_amount: Decimal,
    primary_business_unit: Optional[BusinessUnit]
) -> Tuple[bool, List[Allocation]]:
    """
    Validate a cost-sharing split against the entry total.

    Returns the final (is_shared, allocations). The primary business unit is
    appended with amount 0 when the split does not mention it. Raises
    AllocationExceedsTotal when the shares add up to more than ``total_amount``.
    """
    if not is_shared:
        return False, []

    allocations = parse_shared_allocations(raw_allocations)

    if primary_business_unit and not any(a.business_unit == primary_business_unit for a in allocations):
        allocations.append(Allocation(business_unit=primary_business_unit, amount=Decimal("0")))

    allocated = sum((a.amount for a in allocations), Decimal("0"))
    total = Decimal(str(total_amount or 0))
    if allocated > total:
        raise AllocationExceedsTotal(allocated, total)

    allocations = [a for a in allocations if a.business_unit and a.amount >= 0]
    return len(allocations) > 0, allocations


def format_shared_allocations(allocations) -> str:
    """Render allocations back to the "BU: amount, ..." export form."""
    return ", ".join(
        f"{_value(a.business_unit)}: {a.amount}" for a in allocations if a.business_unit
    )


def _value(member) -> str:
    return member.value if hasattr(member, "value") else str(member)
