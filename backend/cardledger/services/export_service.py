"""
Spreadsheet output: the upload template and filtered entry exports.
"""
from io import BytesIO
from typing import Iterable, List, Tuple
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from cardledger.models.expense_entry import ExpenseEntry
from cardledger.services.allocation_service import format_shared_allocations

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TEMPLATE_COLUMNS: List[str] = [
    "Card Number",
    "Card Assigned To",
    "Date",
    "Month",
    "Status",
    "Particulars",
    "Narration",
    "Currency",
    "Bill Status",
    "Amount",
    "Types of Tools or Service",
    "Business Unit",
    "Cost Center",
    "Approved By",
    "Tool or Service Handler",
    "Recurring/One-time",
    "Is Shared (Yes/No)",
    "Shared Bill (BU:Amount, ...)",
]

TEMPLATE_EXAMPLE_ROW = [
    "M003", "John Doe", "2025-01-05", "Jan-2025", "Active", "ChatGPT", "ChatGPT Subscription",
    "USD", "", 300, "Tool", "Wytlabs", "Ops", "Raghav", "Raghav", "Yearly", "Yes",
    "Wytlabs: 200, Collabx: 100",
]

EXPORT_COLUMNS: List[Tuple[str, str]] = [
    ("Card Number", "card_number"),
    ("Card Assigned To", "card_assigned_to"),
    ("Date", "date"),
    ("Month", "month"),
    ("Status", "status"),
    ("Particulars", "particulars"),
    ("Narration", "narration"),
    ("Currency", "currency"),
    ("Bill Status", "bill_status"),
    ("Amount", "amount"),
    ("XE Rate", "xe_rate"),
    ("Amount in INR", "amount_in_inr"),
    ("Types of Tools or Service", "type_of_service"),
    ("Business Unit", "business_unit"),
    ("Cost Center", "cost_center"),
    ("Approved By", "approved_by"),
    ("Service Handler", "service_handler"),
    ("Recurring", "recurring"),
    ("Disable Date", "disabled_at"),
    ("Shared Bill", "shared_allocations"),
]


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = max((len(str(cell.value)) for cell in ws[letter] if cell.value is not None), default=0)
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _to_bytes(wb: Workbook) -> bytes:
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _cell_value(entry: ExpenseEntry, attr: str):
    value = getattr(entry, attr)
    if attr == "shared_allocations":
        return format_shared_allocations(value) if entry.is_shared and value else ""
    if attr == "disabled_at":
        return value.date() if value else ""
    if value is None:
        return ""
    if hasattr(value, "value"):
        return value.value
    if attr in ("amount", "xe_rate", "amount_in_inr"):
        return float(value)
    return value


def build_template_workbook() -> bytes:
    """Upload template: canonical headers plus one documented example row."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Expenses"
    ws.append(TEMPLATE_COLUMNS)
    ws.append(TEMPLATE_EXAMPLE_ROW)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    _autosize_columns(ws)
    return _to_bytes(wb)


def build_export_workbook(entries: Iterable[ExpenseEntry], include_duplicate_status: bool = False) -> bytes:
    """Render entries into an xlsx sheet, one row per entry."""
    columns = list(EXPORT_COLUMNS)
    if include_duplicate_status:
        columns.append(("Duplicate Status", "duplicate_status"))

    wb = Workbook()
    ws = wb.active
    ws.title = "Expenses"
    ws.append([header for header, _ in columns])
    for entry in entries:
        row = [_cell_value(entry, attr) for _, attr in columns]
        if include_duplicate_status and not entry.duplicate_status:
            row[-1] = "Unique"
        ws.append(row)

    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for cell in ws["C"][1:]:
        cell.number_format = "DD-MM-YYYY"
    _autosize_columns(ws)
    return _to_bytes(wb)
