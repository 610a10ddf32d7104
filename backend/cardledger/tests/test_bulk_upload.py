"""
Tests for the bulk upload pipeline.
"""
import asyncio
from datetime import date
from decimal import Decimal
from cardledger.models import ExpenseEntry, DuplicateStatus, EntryStatus, BusinessUnit, Recurring
from cardledger.services.bulk_upload_service import process_rows


def _row(**overrides):
    row = {
        "Card Number/Payment from": "M003",
        "Card Assigned To": "John Doe",
        "Date": "05-Jan-25",
        "Month": "Jan 2025",
        "Status": "Active",
        "Particulars": "ChatGPT",
        "Narration": "ChatGPT Subscription",
        "Currency": "USD",
        "Amount": "200",
        "Types of Tools or Service": "Tool",
        "Business Unit": "Wytlabs",
        "Cost Center": "Ops",
        "Approved By": "Raghav",
        "Tool or Service Handler": "Raghav Sharma",
        "Recurring/One-time": "Yearly",
    }
    row.update(overrides)
    return row


def _upload(db, rows, rate_lookup):
    return asyncio.run(process_rows(db, rows, None, rate_lookup))


def test_new_row_is_stored_as_unique(db, rate_lookup):
    result = _upload(db, [_row()], rate_lookup)

    assert (result.total, result.success, result.failed, result.unique, result.merged) == (1, 1, 0, 1, 0)
    entry = db.query(ExpenseEntry).one()
    assert entry.date == date(2025, 1, 5)
    assert entry.recurring == Recurring.YEARLY
    assert entry.next_renewal_date == date(2026, 1, 5)
    assert entry.entry_status == EntryStatus.ACCEPTED
    assert entry.duplicate_status == DuplicateStatus.UNIQUE
    assert entry.xe_rate == Decimal("83.25")
    assert entry.amount_in_inr == Decimal("16650.00")
    assert entry.renewal_notification_sent is False


def test_reupload_merges_instead_of_duplicating(db, rate_lookup):
    _upload(db, [_row()], rate_lookup)
    result = _upload(db, [_row(Narration="changed narration")], rate_lookup)

    assert (result.success, result.merged, result.unique) == (1, 1, 0)
    entries = db.query(ExpenseEntry).all()
    assert len(entries) == 1
    assert entries[0].duplicate_status == DuplicateStatus.MERGED
    assert entries[0].narration == "ChatGPT Subscription"


def test_same_file_rows_merge_with_each_other(db, rate_lookup):
    result = _upload(db, [_row(), _row(Date="2025-01-05")], rate_lookup)

    assert (result.unique, result.merged) == (1, 1)
    assert db.query(ExpenseEntry).count() == 1


def test_failing_rows_do_not_stop_the_batch(db, rate_lookup):
    rows = [
        _row(**{"Card Number/Payment from": ""}),
        _row(**{"Business Unit": "Acme Corp", "Cost Center": "Nowhere"}),
        _row(Date="someday"),
        _row(Currency="JPY"),
        _row(Particulars="Figma"),
    ]

    result = _upload(db, rows, rate_lookup)

    assert (result.total, result.success, result.failed) == (5, 1, 4)
    errors = {error.row_number: error.message for error in result.errors}
    assert errors[2] == "Missing required fields: Card Number"
    assert errors[3] == "Invalid enum: Business Unit (value: Acme Corp), Cost Center (value: Nowhere)"
    assert errors[4] == "Invalid date"
    assert errors[5] == "No rate for JPY"
    assert result.errors[0].raw_row["Card Number/Payment from"] == ""
    assert db.query(ExpenseEntry).one().particulars == "Figma"


def test_explicit_rate_and_inr_amount_are_kept(db, rate_lookup):
    _upload(db, [_row(**{"XE Rate": "80", "Amount in INR": "16000"})], rate_lookup)

    entry = db.query(ExpenseEntry).one()
    assert entry.xe_rate == Decimal("80")
    assert entry.amount_in_inr == Decimal("16000")


def test_shared_allocations_from_text(db, rate_lookup):
    result = _upload(db, [_row(Amount="300", **{"Shared Bill": "Wytlabs: 200, Collabx: 100"})], rate_lookup)

    assert result.success == 1
    entry = db.query(ExpenseEntry).one()
    assert entry.is_shared is True
    assert [(a.business_unit, a.amount) for a in entry.shared_allocations] == [
        (BusinessUnit.WYTLABS, Decimal("200")),
        (BusinessUnit.COLLABX, Decimal("100")),
    ]


def test_allocations_over_total_fail_the_row(db, rate_lookup):
    result = _upload(db, [_row(Amount="300", **{"Is Shared": "Yes", "Shared Bill": "Wytlabs: 200, Collabx: 150"})], rate_lookup)

    assert result.failed == 1
    assert result.errors[0].message == "Shared allocations exceed total amount"
    assert db.query(ExpenseEntry).count() == 0


def test_out_of_range_values_fail_only_their_row(db, rate_lookup):
    rows = [
        _row(Amount="1e30"),
        _row(Particulars="Figma", **{"XE Rate": "1e12"}),
        _row(Particulars="Miro", Currency="USDT", **{"XE Rate": "83"}),
        _row(Particulars="Notion", Month="January of the year 2025"),
        _row(Particulars="Slack"),
    ]

    result = _upload(db, rows, rate_lookup)

    assert (result.total, result.failed, result.unique) == (5, 4, 1)
    errors = {error.row_number: error.message for error in result.errors}
    assert errors[2] == "Amount out of range (value: 1E+30)"
    assert errors[3].startswith("XE Rate out of range")
    assert errors[4] == "Currency exceeds 3 characters"
    assert errors[5] == "Month exceeds 20 characters"
    assert db.query(ExpenseEntry).one().particulars == "Slack"
