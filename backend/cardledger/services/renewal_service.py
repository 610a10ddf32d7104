"""
Human renewal decisions for the current cycle of a recurring entry.
"""
import logging
from typing import List
from sqlalchemy.orm import Session
from cardledger.models.expense_entry import ExpenseEntry
from cardledger.models.renewal_log import RenewalLog, RenewalAction
from cardledger.models.user import User, UserRole
from cardledger.services.notification_service import create_notification
from cardledger.services.renewal_jobs import build_name_pattern, has_renewal_action

logger = logging.getLogger(__name__)


def can_decide_renewal(user: User, entry: ExpenseEntry) -> bool:
    """MIS and super admins decide any entry; handlers only the entries naming them in their unit."""
    if user.role in (UserRole.MIS_MANAGER, UserRole.SUPER_ADMIN):
        return True
    if user.role != UserRole.SERVICE_HANDLER or user.business_unit != entry.business_unit:
        return False
    pattern = build_name_pattern(entry.service_handler)
    return bool(pattern and pattern.search(user.name or ""))


def record_renewal_decision(
    db: Session,
    entry: ExpenseEntry,
    user: User,
    action: RenewalAction,
    reason: str = None
) -> RenewalLog:
    """
    Append a Continue/Cancel decision for the cycle (entry, next_renewal_date).

    A cycle takes one decision; a second raises ValueError. Cancel requests
    notify MIS managers, who disable the service.
    """
    if not entry.next_renewal_date:
        raise ValueError("Entry has no upcoming renewal")
    if has_renewal_action(db, entry.id, entry.next_renewal_date):
        raise ValueError("A renewal decision is already recorded for this cycle")

    log = RenewalLog(
        expense_entry_id=entry.id,
        service_handler=entry.service_handler or user.name,
        action=action,
        reason=reason,
        renewal_date=entry.next_renewal_date
    )
    db.add(log)

    if action == RenewalAction.CANCEL:
        for manager in db.query(User).filter(User.role == UserRole.MIS_MANAGER).all():
            create_notification(
                db,
                user_id=manager.id,
                type="service_cancellation",
                title="Cancellation requested",
                message=f"{user.name} asked to cancel {entry.particulars} before {entry.next_renewal_date.isoformat()}",
                related_entry_id=entry.id,
                data={"reason": reason}
            )

    db.commit()
    db.refresh(log)
    logger.info(f"Renewal {action.value} recorded for entry {entry.id} cycle {entry.next_renewal_date}")
    return log


def list_renewal_logs(db: Session, entry_id: int) -> List[RenewalLog]:
    return db.query(RenewalLog).filter(
        RenewalLog.expense_entry_id == entry_id
    ).order_by(RenewalLog.created_at.desc(), RenewalLog.id.desc()).all()
