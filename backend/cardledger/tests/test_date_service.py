"""
Tests for date resolution and renewal cadence.
"""
from datetime import date, datetime, timezone
import pytest
from cardledger.core.exceptions import InvalidDate
from cardledger.models import Recurring
from cardledger.services.date_service import (
    resolve_date, serial_to_datetime, date_to_serial, add_cadence, parse_filter_date
)


def test_month_name_label():
    assert resolve_date("05-Jan-25") == datetime(2025, 1, 5)
    assert resolve_date("5-jan-2025") == datetime(2025, 1, 5)


def test_iso_string_and_timezone_is_normalized_to_utc():
    assert resolve_date("2025-01-05") == datetime(2025, 1, 5)
    assert resolve_date("2025-01-05T02:30:00+05:30") == datetime(2025, 1, 4, 21, 0)


def test_native_values():
    assert resolve_date(date(2025, 3, 1)) == datetime(2025, 3, 1)
    aware = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert resolve_date(aware) == datetime(2025, 3, 1, 12, 0)


def test_spreadsheet_serial_numbers():
    assert resolve_date(45662) == datetime(2025, 1, 5)
    assert resolve_date("45662") == datetime(2025, 1, 5)
    assert resolve_date(45662.5) == datetime(2025, 1, 5, 12, 0)


@pytest.mark.parametrize("serial", [1, 60, 61, 36526, 45292, 45662, 47848])
def test_serial_round_trip(serial):
    assert date_to_serial(serial_to_datetime(serial)) == serial


def test_numeric_day_month_heuristic():
    # First part above 12 is the day
    assert resolve_date("25/12/2024") == datetime(2024, 12, 25)
    # Second part above 12 means month first
    assert resolve_date("12/25/2024") == datetime(2024, 12, 25)
    # Ambiguous pairs read as month-day-year
    assert resolve_date("01/02/2025") == datetime(2025, 1, 2)
    assert resolve_date("03-04-25") == datetime(2025, 3, 4)


@pytest.mark.parametrize("value", [None, "", "not a date", "31/31/2025", True])
def test_invalid_dates(value):
    with pytest.raises(InvalidDate):
        resolve_date(value)


def test_add_cadence():
    assert add_cadence(date(2025, 1, 5), Recurring.YEARLY) == date(2026, 1, 5)
    assert add_cadence(date(2025, 1, 5), Recurring.MONTHLY) == date(2025, 2, 5)
    assert add_cadence(date(2025, 1, 31), Recurring.MONTHLY) == date(2025, 2, 28)
    assert add_cadence(date(2025, 1, 5), Recurring.ONE_TIME) is None


def test_parse_filter_date():
    assert parse_filter_date("31-01-2025") == datetime(2025, 1, 31)
    assert parse_filter_date("2025-01-31", end_of_day=True) == datetime(2025, 1, 31, 23, 59, 59, 999999)
    assert parse_filter_date(None) is None
    with pytest.raises(InvalidDate):
        parse_filter_date("yesterday")


def test_year_first_and_written_dates():
    assert resolve_date("2025/01/05") == datetime(2025, 1, 5)
    assert resolve_date("2025-1-5") == datetime(2025, 1, 5)
    assert resolve_date("Jan 5, 2025") == datetime(2025, 1, 5)
    assert resolve_date("5 January 2025") == datetime(2025, 1, 5)
    with pytest.raises(InvalidDate):
        resolve_date("2025/13/05")
    with pytest.raises(InvalidDate):
        resolve_date("January")
