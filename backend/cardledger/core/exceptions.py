"""
Card Ledger exception hierarchy.

All errors derive from ValueError so callers that guard service calls with
``except ValueError`` keep working.
"""
from decimal import Decimal
from typing import Any, List


class CardLedgerError(ValueError):
    """Base exception for all Card Ledger errors."""


class UnsupportedFormat(CardLedgerError):
    """Uploaded file could not be parsed as CSV or spreadsheet."""


class MissingRequiredField(CardLedgerError):
    """One or more required fields are absent from a row."""

    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__(f"Missing required fields: {', '.join(fields)}")


class UnresolvedEnum(CardLedgerError):
    """A required classification value did not canonicalize."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__(f"Invalid enum: {', '.join(problems)}")


class InvalidDate(CardLedgerError):
    """A date value matched none of the supported representations."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__("Invalid date")


class AllocationExceedsTotal(CardLedgerError):
    """Shared allocations add up to more than the entry amount."""

    def __init__(self, allocated: Decimal, total: Decimal):
        self.allocated = allocated
        self.total = total
        super().__init__("Shared allocations exceed total amount")


class Unauthorized(CardLedgerError):
    """Cron trigger called without the shared secret."""


class ImmutableRecordError(CardLedgerError):
    """Attempt to modify or delete an append-only record."""


class ExchangeRateError(CardLedgerError):
    """Currency rate lookup failed."""


class ValueOutOfRange(CardLedgerError):
    """A numeric or text value does not fit its stored column."""
