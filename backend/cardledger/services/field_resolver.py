"""
Header alias resolution for uploaded rows.

Historical exports name the same column differently ("Card Number/Payment from",
"Card No", "cardNumber", ...). FIELD_ALIASES lists the accepted spellings for each
canonical field in priority order.
"""
from typing import Any, Dict, List, Optional, Sequence

FIELD_ALIASES: Dict[str, List[str]] = {
    "card_number": [
        "Card Number/Payment from",
        "Card Number/Payment From",
        "Card Number/Pavment from",
        "Card Number",
        "cardNumber",
        "Card No",
    ],
    "card_assigned_to": ["Card Assigned To", "cardAssignedTo", "Card assigned to"],
    "date": ["Date", "date"],
    "month": ["Month", "month"],
    "status": ["Status", "status"],
    "particulars": [
        "Particulars",
        "particulars",
        "Particulars - from cc statement",
        "Particulars - from the statement",
    ],
    "narration": [
        "Narration",
        "narration",
        "Narration - from statement",
        "Narration - from the statement",
    ],
    "currency": ["Currency", "currency"],
    "bill_status": ["Bill Status", "billStatus"],
    "amount": ["Amount", "amount", "Amount (USD/Euro/Any)", "Amt", "Amt (USD/Euro/Any)"],
    "type_of_service": [
        "Types of Tools or Service",
        "Type of Tool or Service",
        "typeOfService",
        "Type",
        "Type of Tool or Service*",
    ],
    "business_unit": ["Business Unit", "businessUnit"],
    "cost_center": ["Cost Center", "costCenter"],
    "approved_by": ["Approved By", "approvedBy"],
    "service_handler": [
        "Tool or Service Handler",
        "Tool or Service Handler (User Name)",
        "serviceHandler",
        "Service Handler",
    ],
    "recurring": ["Recurring/One-time", "Recurring/One time", "recurring", "Recurring"],
    "is_shared": ["Is Shared", "Is Shared (Yes/No)", "isShared", "Shared", "shared", "Shared Bill?"],
    "shared_allocations": [
        "Shared Bill",
        "Shared Bills",
        "Shared Bill (BU:Amount, ...)",
        "sharedBill",
        "sharedAllocation",
        "sharedAllocations",
    ],
    "xe_rate": ["XE", "xe", "XE Rate", "xeRate"],
    "amount_in_inr": ["Amt INR", "Amount in INR", "amountInINR", "Amount (INR)"],
}


def _normalize_header(header: Any) -> str:
    if header is None:
        return ""
    return str(header).strip().lower()


class FieldResolver:
    """
    Case/whitespace-insensitive field lookup over one row.

    The header map is normalized once at construction so resolving many fields
    from the same row does not re-scan the headers.
    """

    def __init__(self, row: Dict[str, Any]):
        self._normalized: Dict[str, Any] = {}
        for key, value in (row or {}).items():
            norm = _normalize_header(key)
            if norm:
                self._normalized[norm] = value

    def get(self, aliases: Sequence[str]) -> Optional[Any]:
        """Return the value under the first alias present, or None."""
        for alias in aliases:
            norm = _normalize_header(alias)
            if norm and norm in self._normalized:
                return self._normalized[norm]
        return None

    def field(self, name: str) -> Optional[Any]:
        """Resolve a canonical field using its curated alias list."""
        return self.get(FIELD_ALIASES[name])

    def text(self, name: str, default: str = "") -> str:
        """Resolve a field as stripped text; blank or absent gives ``default``."""
        value = self.field(name)
        if value is None:
            return default
        text = str(value).strip()
        return text or default
