"""
Renewal decision routes.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from cardledger.db.session import get_db
from cardledger.models.renewal_log import RenewalAction
from cardledger.models.user import User
from cardledger.schemas.renewal_log import RenewalDecisionCreate, RenewalLogResponse
from cardledger.services.renewal_service import can_decide_renewal, record_renewal_decision, list_renewal_logs
from cardledger.api.dependencies import get_current_user
from cardledger.api.routes.expenses import get_visible_entry

router = APIRouter(prefix="/renewals", tags=["renewals"])


@router.post("/{entry_id}", response_model=RenewalLogResponse, status_code=status.HTTP_201_CREATED)
async def decide_renewal(
    entry_id: int,
    decision: RenewalDecisionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record Continue or Cancel for the entry's upcoming renewal."""
    entry = get_visible_entry(entry_id, current_user, db)
    if not can_decide_renewal(current_user, entry):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to decide this renewal"
        )

    try:
        return record_renewal_decision(db, entry, current_user, RenewalAction(decision.action), decision.reason)
    except ValueError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.get("/{entry_id}", response_model=List[RenewalLogResponse])
async def get_renewal_logs(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Renewal decisions recorded for an entry, newest first."""
    get_visible_entry(entry_id, current_user, db)
    return list_renewal_logs(db, entry_id)
