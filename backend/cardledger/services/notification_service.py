"""
In-app notification persistence.
"""
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from cardledger.models.notification import Notification


def create_notification(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_entry_id: Optional[int] = None,
    data: Optional[Dict[str, Any]] = None
) -> Notification:
    """Add a notification to the session; the caller commits."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_entry_id=related_entry_id,
        data=data
    )
    db.add(notification)
    return notification


def mark_as_read(notification_id: int, user_id: int, db: Session) -> Notification:
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id
    ).first()
    if not notification:
        raise ValueError("Notification not found")
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
