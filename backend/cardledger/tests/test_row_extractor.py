"""
Tests for CSV and spreadsheet row extraction.
"""
import io
import pytest
from openpyxl import Workbook
from cardledger.core.exceptions import UnsupportedFormat
from cardledger.services.row_extractor import FileKind, extract_rows, kind_from_filename


def _xlsx(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_kind_from_filename():
    assert kind_from_filename("March.CSV") == FileKind.CSV
    assert kind_from_filename("March.xlsx") == FileKind.SPREADSHEET
    assert kind_from_filename("") == FileKind.SPREADSHEET


def test_csv_rows_keep_headers_and_drop_blank_rows():
    content = (
        "\ufeffCard Number,Amount,Currency\n"
        "M003,200,USD\n"
        ",,\n"
        "M004,50,EUR\n"
    ).encode("utf-8")

    rows = extract_rows(content, FileKind.CSV)

    assert rows == [
        {"Card Number": "M003", "Amount": "200", "Currency": "USD"},
        {"Card Number": "M004", "Amount": "50", "Currency": "EUR"},
    ]


def test_spreadsheet_rows():
    content = _xlsx([
        ["Card Number", "Amount", None],
        ["M003", 200, "ignored"],
        [None, None, None],
        ["M004", 50.5, None],
    ])

    rows = extract_rows(content, FileKind.SPREADSHEET)

    assert rows == [
        {"Card Number": "M003", "Amount": 200},
        {"Card Number": "M004", "Amount": 50.5},
    ]


def test_header_only_spreadsheet_has_no_rows():
    assert extract_rows(_xlsx([["Card Number", "Amount"]]), FileKind.SPREADSHEET) == []


def test_garbage_spreadsheet_is_unsupported():
    with pytest.raises(UnsupportedFormat):
        extract_rows(b"definitely not a zip archive", FileKind.SPREADSHEET)
