"""
User model for authentication and role scoping.
"""
from sqlalchemy import Column, String, Boolean, Enum as SQLEnum
from sqlalchemy.orm import relationship
from cardledger.db.base import BaseModel
from cardledger.models.expense_entry import BusinessUnit
import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    SUPER_ADMIN = "super_admin"
    MIS_MANAGER = "mis_manager"
    BUSINESS_UNIT_ADMIN = "business_unit_admin"
    SPOC = "spoc"
    SERVICE_HANDLER = "service_handler"


# Roles whose visibility is limited to their own business unit
BU_SCOPED_ROLES = (UserRole.BUSINESS_UNIT_ADMIN, UserRole.SPOC, UserRole.SERVICE_HANDLER)
# Roles whose manual entries are accepted without review
AUTO_ACCEPT_ROLES = (UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN, UserRole.BUSINESS_UNIT_ADMIN, UserRole.SPOC)


class User(BaseModel):
    """Application user; service handlers are matched to entries by name."""
    __tablename__ = "users"

    name = Column(String(100), nullable=False, index=True)
    email = Column(String(100), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e], native_enum=False, length=40),
        nullable=False,
        default=UserRole.SPOC
    )
    business_unit = Column(
        SQLEnum(BusinessUnit, values_callable=lambda e: [m.value for m in e], native_enum=False, length=40),
        nullable=True
    )
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    expense_entries = relationship("ExpenseEntry", back_populates="created_by")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
