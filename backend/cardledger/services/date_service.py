"""
Date resolution for uploaded spreadsheet values.

Uploads mix real date cells, spreadsheet serial numbers, ISO strings,
year-first "2025/01/05" strings, "05-Jan-25" style labels, numeric dd/mm or
mm/dd strings and written dates such as "Jan 5, 2025". resolve_date tries
each representation in a fixed order and returns the first that parses.
"""
import re
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from cardledger.core.exceptions import InvalidDate
from cardledger.models.expense_entry import Recurring

# Spreadsheet day zero (serial 1 == 1899-12-31, with the 1900 leap-year bug folded in)
SPREADSHEET_EPOCH = datetime(1899, 12, 30)
SECONDS_PER_DAY = 86400

_MONTH_NAME_PATTERN = re.compile(r"^\d{1,2}-[A-Za-z]{3}-(\d{2}|\d{4})$")
_SERIAL_PATTERN = re.compile(r"^\d{5}(\.\d+)?$")
_YEAR_FIRST_PATTERN = re.compile(r"^(\d{4})[/-](\d{1,2})[/-](\d{1,2})$")
_LETTERS = re.compile(r"[A-Za-z]")
_DIGIT_RUNS = re.compile(r"\d+")


def serial_to_datetime(serial: float) -> datetime:
    """Convert a spreadsheet serial day count to a UTC timestamp (second precision)."""
    days = int(serial // 1)
    seconds = round((serial - days) * SECONDS_PER_DAY)
    return SPREADSHEET_EPOCH + timedelta(days=days, seconds=seconds)


def date_to_serial(value: date) -> int:
    """Inverse of serial_to_datetime for whole calendar days."""
    if isinstance(value, datetime):
        value = value.date()
    return (value - SPREADSHEET_EPOCH.date()).days


def _parse_iso(text: str) -> Optional[datetime]:
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        return None


def _parse_month_name(text: str) -> Optional[datetime]:
    match = _MONTH_NAME_PATTERN.match(text)
    if not match:
        return None
    fmt = "%d-%b-%Y" if len(match.group(1)) == 4 else "%d-%b-%y"
    try:
        return datetime.strptime(text.title(), fmt)
    except ValueError:
        return None


def _parse_year_first(text: str) -> Optional[datetime]:
    match = _YEAR_FIRST_PATTERN.match(text)
    if not match:
        return None
    try:
        return datetime(*(int(part) for part in match.groups()))
    except ValueError:
        return None


def _parse_written_month(text: str) -> Optional[datetime]:
    """Free-form text such as "Jan 5, 2025"; needs both a day and a year."""
    if not _LETTERS.search(text) or len(_DIGIT_RUNS.findall(text)) < 2:
        return None
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def _parse_numeric_parts(text: str) -> Optional[datetime]:
    """
    Resolve "a-b-y" / "a/b/y" where a and b are day and month in unknown order.

    first > 12 means day-month-year, second > 12 means month-day-year, and an
    ambiguous pair defaults to month-day-year.
    """
    parts = text.split("-")
    if len(parts) != 3:
        return None
    p1, p2, p3 = (p.strip() for p in parts)
    if len(p3) == 2:
        p3 = f"20{p3}"
    try:
        n1, n2, year = int(p1), int(p2), int(p3)
    except ValueError:
        return None

    if n1 > 12:
        day, month = n1, n2
    else:
        month, day = n1, n2
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def resolve_date(value: Any) -> datetime:
    """
    Parse a raw cell value into a naive UTC datetime.

    Raises InvalidDate when no representation matches.
    """
    if value is None or isinstance(value, bool):
        raise InvalidDate(value)
    if isinstance(value, datetime):
        return _to_naive_utc(value) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, Decimal)):
        try:
            return serial_to_datetime(float(value))
        except (OverflowError, ValueError):
            raise InvalidDate(value)

    text = str(value).strip()
    if not text:
        raise InvalidDate(value)
    # CSV cells carry serial numbers as text
    if _SERIAL_PATTERN.match(text):
        return serial_to_datetime(float(text))

    parsed = _parse_iso(text)
    if parsed is not None:
        return _to_naive_utc(parsed) if parsed.tzinfo else parsed

    normalized = text.replace("/", "-")
    parsed = (
        _parse_year_first(text)
        or _parse_month_name(normalized)
        or _parse_numeric_parts(normalized)
        or _parse_written_month(text)
    )
    if parsed is None:
        raise InvalidDate(value)
    return _to_naive_utc(parsed) if parsed.tzinfo else parsed


def _to_naive_utc(value: datetime) -> datetime:
    return (value - value.utcoffset()).replace(tzinfo=None)


def add_cadence(start: date, recurring: Recurring) -> Optional[date]:
    """
    Advance a date by one recurring period.

    Month-end dates clamp to the last day of the target month (Jan 31 -> Feb 28).
    Returns None for one-time purchases.
    """
    if recurring == Recurring.MONTHLY:
        return start + relativedelta(months=1)
    if recurring == Recurring.YEARLY:
        return start + relativedelta(years=1)
    return None


def parse_filter_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a query-string date filter ("31-01-2025" or ISO).

    ``end_of_day`` extends a date to its last microsecond for inclusive upper bounds.
    """
    if not value:
        return None
    if re.match(r"^\d{2}-\d{2}-\d{4}$", value):
        dd, mm, yyyy = value.split("-")
        parsed = datetime(int(yyyy), int(mm), int(dd))
    else:
        parsed = _parse_iso(value)
        if parsed is None:
            raise InvalidDate(value)
        if parsed.tzinfo:
            parsed = _to_naive_utc(parsed)
    if end_of_day:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
    return parsed
