"""
Pydantic schemas for Notification entity.
"""
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


class NotificationResponse(BaseModel):
    """Schema for notification response."""
    id: int
    type: str
    title: str
    message: str
    related_entry_id: Optional[int] = None
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
