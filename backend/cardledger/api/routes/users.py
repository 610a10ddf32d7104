"""
User management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from cardledger.db.session import get_db
from cardledger.schemas.user import UserCreate, UserResponse
from cardledger.models.user import User, UserRole, BU_SCOPED_ROLES
from cardledger.core.security import get_password_hash
from cardledger.api.dependencies import get_current_user, require_roles

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN)),
    db: Session = Depends(get_db)
):
    """Create a user (super admin only)."""
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already exists"
        )

    if user_data.role in BU_SCOPED_ROLES and not user_data.business_unit:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Business unit is required for this role"
        )

    new_user = User(
        name=user_data.name.strip(),
        email=email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        business_unit=user_data.business_unit
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


@router.get("", response_model=List[UserResponse])
async def list_users(
    current_user: User = Depends(require_roles(UserRole.SUPER_ADMIN, UserRole.MIS_MANAGER)),
    db: Session = Depends(get_db)
):
    """List all users."""
    return db.query(User).order_by(User.name).all()
