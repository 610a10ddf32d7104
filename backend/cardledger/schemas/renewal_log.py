"""
Pydantic schemas for renewal decisions.
"""
from pydantic import BaseModel
from typing import Literal, Optional
from datetime import date, datetime
from cardledger.models.renewal_log import RenewalAction


class RenewalDecisionCreate(BaseModel):
    """A handler's decision for the entry's current renewal cycle."""
    action: Literal["Continue", "Cancel"]
    reason: Optional[str] = None


class RenewalLogResponse(BaseModel):
    id: int
    expense_entry_id: Optional[int] = None
    service_handler: Optional[str] = None
    action: RenewalAction
    reason: Optional[str] = None
    renewal_date: date
    created_at: datetime

    class Config:
        from_attributes = True
