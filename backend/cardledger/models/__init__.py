"""Models package - Import all models for SQLAlchemy registration."""
from cardledger.models.user import User, UserRole
from cardledger.models.expense_entry import (
    ExpenseEntry, SharedAllocation, ServiceStatus, EntryStatus, DuplicateStatus,
    Recurring, TypeOfService, BusinessUnit, CostCenter, ApprovedBy
)
from cardledger.models.renewal_log import RenewalLog, RenewalAction
from cardledger.models.notification import Notification

__all__ = [
    "User",
    "UserRole",
    "ExpenseEntry",
    "SharedAllocation",
    "ServiceStatus",
    "EntryStatus",
    "DuplicateStatus",
    "Recurring",
    "TypeOfService",
    "BusinessUnit",
    "CostCenter",
    "ApprovedBy",
    "RenewalLog",
    "RenewalAction",
    "Notification",
]
