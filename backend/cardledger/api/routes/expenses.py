"""
Expense entry routes: manual CRUD, review, bulk upload and spreadsheet export.
"""
import logging
from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Response
from sqlalchemy.orm import Session
from typing import List
from cardledger.core.config import settings
from cardledger.core.exceptions import ExchangeRateError, UnsupportedFormat
from cardledger.db.session import get_db
from cardledger.models.expense_entry import ExpenseEntry, EntryStatus
from cardledger.models.user import User, UserRole
from cardledger.schemas.bulk_upload import BulkUploadResponse
from cardledger.schemas.expense_entry import (
    ExpenseEntryCreate, ExpenseEntryUpdate, ExpenseEntryResponse, ExpenseEntryReview,
    ExpenseFilters, ExpenseStatsResponse
)
from cardledger.services.bulk_upload_service import process_rows
from cardledger.services.export_service import XLSX_MEDIA_TYPE, build_template_workbook, build_export_workbook
from cardledger.services.expense_service import (
    list_expense_entries, can_view_entry, create_expense_entry,
    update_expense_entry, review_expense_entry, delete_expense_entry, get_expense_stats
)
from cardledger.services.fx_service import RateLookup
from cardledger.services.row_extractor import extract_rows, kind_from_filename
from cardledger.api.dependencies import get_current_user, require_roles, get_rate_lookup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])

ENTRY_AUTHORS = (UserRole.SPOC, UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN, UserRole.BUSINESS_UNIT_ADMIN)
MIS_ROLES = (UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN)


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


def get_visible_entry(entry_id: int, current_user: User, db: Session) -> ExpenseEntry:
    """Load an entry the user may see, or raise 404."""
    entry = db.query(ExpenseEntry).filter(ExpenseEntry.id == entry_id).first()
    if not entry or not can_view_entry(current_user, entry):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Expense entry not found"
        )
    return entry


@router.post("", response_model=ExpenseEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    entry_data: ExpenseEntryCreate,
    response: Response,
    current_user: User = Depends(require_roles(*ENTRY_AUTHORS)),
    db: Session = Depends(get_db),
    rate_lookup: RateLookup = Depends(get_rate_lookup)
):
    """Create an entry manually. A duplicate returns the existing entry with 200."""
    if current_user.role in (UserRole.SPOC, UserRole.BUSINESS_UNIT_ADMIN) and \
            entry_data.business_unit != current_user.business_unit:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only create entries for your assigned business unit"
        )

    try:
        outcome = await create_expense_entry(db, current_user, entry_data, rate_lookup)
    except ExchangeRateError as e:
        logger.error(f"Exchange rate unavailable for {entry_data.currency}: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if outcome.merged:
        response.status_code = status.HTTP_200_OK
    return outcome.entry


@router.get("", response_model=List[ExpenseEntryResponse])
async def list_entries(
    filters: ExpenseFilters = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List entries visible to the user, newest first."""
    try:
        return list_expense_entries(db, current_user, filters)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/stats", response_model=ExpenseStatsResponse)
async def expense_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """INR totals for the entries visible to the user."""
    return get_expense_stats(db, current_user)


@router.get("/template")
async def download_template(current_user: User = Depends(require_roles(*MIS_ROLES))):
    """Download the bulk upload template."""
    return _xlsx_response(build_template_workbook(), "expense-template.xlsx")


@router.get("/export")
async def export_entries(
    filters: ExpenseFilters = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Export the filtered entries as a spreadsheet."""
    try:
        entries = list_expense_entries(db, current_user, filters)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    content = build_export_workbook(entries, include_duplicate_status=filters.include_duplicate_status)
    return _xlsx_response(content, "expenses-export.xlsx")


@router.post("/bulk-upload", response_model=BulkUploadResponse)
async def bulk_upload(
    file: UploadFile = File(...),
    current_user: User = Depends(require_roles(*MIS_ROLES)),
    db: Session = Depends(get_db),
    rate_lookup: RateLookup = Depends(get_rate_lookup)
):
    """Upload a CSV or spreadsheet; every row is processed independently."""
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded file is too large"
        )

    try:
        rows = extract_rows(content, kind_from_filename(file.filename or ""))
    except UnsupportedFormat as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No data found in the uploaded file"
        )

    logger.info(f"Bulk upload of {file.filename} ({len(rows)} rows) by user {current_user.id}")
    result = await process_rows(db, rows, current_user.id, rate_lookup)
    return {
        "success": True,
        "message": f"Processed {result.total} rows: {result.success} succeeded, {result.failed} failed",
        "data": asdict(result)
    }


@router.get("/{entry_id}", response_model=ExpenseEntryResponse)
async def get_entry(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single entry."""
    return get_visible_entry(entry_id, current_user, db)


@router.put("/{entry_id}", response_model=ExpenseEntryResponse)
async def update_entry(
    entry_id: int,
    entry_data: ExpenseEntryUpdate,
    current_user: User = Depends(require_roles(*MIS_ROLES)),
    db: Session = Depends(get_db),
    rate_lookup: RateLookup = Depends(get_rate_lookup)
):
    """Update an entry (MIS managers and super admins)."""
    entry = get_visible_entry(entry_id, current_user, db)
    try:
        return await update_expense_entry(db, entry, entry_data, current_user, rate_lookup)
    except ExchangeRateError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )
    except ValueError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.post("/{entry_id}/review", response_model=ExpenseEntryResponse)
async def review_entry(
    entry_id: int,
    review: ExpenseEntryReview,
    current_user: User = Depends(require_roles(*MIS_ROLES, UserRole.BUSINESS_UNIT_ADMIN)),
    db: Session = Depends(get_db)
):
    """Accept or reject a Pending entry."""
    entry = get_visible_entry(entry_id, current_user, db)
    try:
        return review_expense_entry(db, entry, EntryStatus(review.decision))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: int,
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN)),
    db: Session = Depends(get_db)
):
    """Delete an entry (super admin only)."""
    entry = get_visible_entry(entry_id, current_user, db)
    delete_expense_entry(db, entry)
    return {"message": "Expense entry deleted successfully"}
