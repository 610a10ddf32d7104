"""
Pydantic schemas for bulk upload results.
"""
from pydantic import BaseModel
from typing import Any, Dict, List


class RowErrorResponse(BaseModel):
    """A rejected row: display row number (header is row 1), reason and raw cells."""
    row_number: int
    message: str
    raw_row: Dict[str, Any]

    class Config:
        from_attributes = True


class BatchResultResponse(BaseModel):
    total: int
    success: int
    failed: int
    merged: int
    unique: int
    errors: List[RowErrorResponse] = []

    class Config:
        from_attributes = True


class BulkUploadResponse(BaseModel):
    success: bool
    message: str
    data: BatchResultResponse
