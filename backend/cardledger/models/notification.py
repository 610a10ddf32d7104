"""
In-app notification model.
"""
from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Text, JSON
from sqlalchemy.orm import relationship
from cardledger.db.base import BaseModel


class Notification(BaseModel):
    """Notification shown to a user inside the application."""
    __tablename__ = "notifications"

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # renewal_reminder, service_cancellation, ...
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    related_entry_id = Column(Integer, ForeignKey("expense_entries.id", ondelete="SET NULL"), nullable=True)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="notifications")
