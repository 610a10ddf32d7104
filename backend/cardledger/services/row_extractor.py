"""
Row extraction from uploaded CSV and spreadsheet files.

Both readers return one dict per non-empty data row, keyed by the header
text in row 1 with column order preserved.
"""
import csv
import enum
import io
import logging
import zipfile
from typing import Any, Dict, List
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from cardledger.core.exceptions import UnsupportedFormat

logger = logging.getLogger(__name__)


class FileKind(str, enum.Enum):
    """Declared upload format."""
    CSV = "csv"
    SPREADSHEET = "spreadsheet"


def kind_from_filename(filename: str) -> FileKind:
    """Only a .csv extension means delimited text; everything else is read as xlsx."""
    if filename and filename.lower().endswith(".csv"):
        return FileKind.CSV
    return FileKind.SPREADSHEET


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _header_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def read_csv_rows(content: bytes) -> List[Dict[str, Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    try:
        reader = csv.DictReader(io.StringIO(text, newline=""))
        rows = []
        for record in reader:
            # Surplus cells without a header land under the None key
            row = {key: value for key, value in record.items() if key is not None}
            if any(not _is_blank(value) for value in row.values()):
                rows.append(row)
    except csv.Error as e:
        raise UnsupportedFormat(f"Could not parse CSV file: {e}") from e
    return rows


def read_spreadsheet_rows(content: bytes) -> List[Dict[str, Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise UnsupportedFormat(f"Could not parse spreadsheet: {e}") from e

    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[0]
        row_iter = sheet.iter_rows(values_only=True)
        header_row = next(row_iter, None)
        if header_row is None:
            return []
        headers = [_header_text(value) for value in header_row]
        if not any(headers):
            return []

        rows = []
        for values in row_iter:
            row = {}
            for header, value in zip(headers, values):
                if not header:
                    continue
                row[header] = value
            if any(not _is_blank(value) for value in row.values()):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def extract_rows(content: bytes, kind: FileKind) -> List[Dict[str, Any]]:
    """
    Turn uploaded bytes into header->value dicts, dropping fully empty rows.

    Raises UnsupportedFormat if the content cannot be parsed as ``kind``.
    """
    if kind == FileKind.CSV:
        rows = read_csv_rows(content)
    else:
        rows = read_spreadsheet_rows(content)
    logger.info(f"Extracted {len(rows)} data rows from {kind.value} upload")
    return rows
