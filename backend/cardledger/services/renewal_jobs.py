"""
Renewal lifecycle jobs for recurring services.

Each job is safe to re-run: candidates are selected by the notification flags,
and a decision recorded in the renewal log for the current cycle
(entry, next_renewal_date) suppresses both automated notices for that cycle.
"""
import asyncio
import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session
from cardledger.core.config import settings
from cardledger.db.base import utcnow
from cardledger.models.expense_entry import (
    ExpenseEntry, SharedAllocation, ServiceStatus, EntryStatus, Recurring
)
from cardledger.models.renewal_log import RenewalLog
from cardledger.models.user import User, UserRole
from cardledger.services.date_service import add_cadence
from cardledger.services.email_service import EmailService
from cardledger.services.fx_service import RateLookup, get_exchange_rate, get_base_currency, resolve_rate
from cardledger.services.notification_service import create_notification

logger = logging.getLogger(__name__)


def build_name_pattern(name: Optional[str]) -> Optional[re.Pattern]:
    """Case-insensitive pattern matching the full handler name or any of its words."""
    if not name or not name.strip():
        return None
    tokens = [re.escape(token) for token in name.split() if token]
    return re.compile("|".join([re.escape(name.strip())] + tokens), re.IGNORECASE)


def find_service_handler(db: Session, entry: ExpenseEntry) -> Optional[User]:
    """Resolve the handler user responsible for an entry within its business unit."""
    pattern = build_name_pattern(entry.service_handler)
    if pattern is None:
        return None

    handlers = db.query(User).filter(
        User.role == UserRole.SERVICE_HANDLER,
        User.business_unit == entry.business_unit,
        User.is_active == True  # noqa: E712
    ).order_by(User.id).all()
    for handler in handlers:
        if pattern.search(handler.name or ""):
            return handler
    return None


def has_renewal_action(db: Session, entry_id: int, renewal_date: Optional[date]) -> bool:
    """Whether a human decision exists for the (entry, renewal date) cycle."""
    if not entry_id or not renewal_date:
        return False
    return db.query(RenewalLog.id).filter(
        RenewalLog.expense_entry_id == entry_id,
        RenewalLog.renewal_date == renewal_date
    ).first() is not None


def _due_on(db: Session, target: date):
    return db.query(ExpenseEntry).filter(
        ExpenseEntry.next_renewal_date == target,
        ExpenseEntry.status == ServiceStatus.ACTIVE,
        ExpenseEntry.entry_status == EntryStatus.ACCEPTED
    )


def _notification_payload(entry: ExpenseEntry) -> dict:
    return {
        "entry_id": entry.id,
        "service": entry.particulars,
        "business_unit": entry.business_unit.value if entry.business_unit else None,
        "service_handler": entry.service_handler,
        "purchase_date": entry.date.isoformat() if entry.date else None,
        "next_renewal_date": entry.next_renewal_date.isoformat() if entry.next_renewal_date else None,
        "amount": str(entry.amount),
        "currency": entry.currency,
        "recurring": entry.recurring.value if entry.recurring else None,
    }


async def run_renewal_reminders_once(
    db: Session,
    today: Optional[date] = None,
    mailer: Optional[EmailService] = None
) -> int:
    """Remind handlers of services renewing in RENEWAL_NOTIFICATION_DAYS days. Returns reminders sent."""
    logger.info("Running renewal reminder job")
    today = today or date.today()
    mailer = mailer or EmailService()
    reminder_days = settings.RENEWAL_NOTIFICATION_DAYS
    target = today + timedelta(days=reminder_days)

    candidates = _due_on(db, target).filter(
        ExpenseEntry.renewal_notification_sent == False  # noqa: E712
    ).order_by(ExpenseEntry.id).all()
    logger.info(f"Found {len(candidates)} services due for renewal on {target.isoformat()}")

    sent = 0
    for entry in candidates:
        if has_renewal_action(db, entry.id, entry.next_renewal_date):
            logger.info(f"Renewal already decided for entry {entry.id}; skipping reminder")
            continue

        handler = find_service_handler(db, entry)
        if not handler:
            logger.warning(f"No service handler found for entry {entry.id} ({entry.service_handler})")
            continue

        await mailer.send_renewal_reminder(handler.email, entry, reminder_days)
        create_notification(
            db,
            user_id=handler.id,
            type="renewal_reminder",
            title="Service Renewal Reminder",
            message=f"Your subscription for {entry.particulars} is due for renewal in {reminder_days} days",
            related_entry_id=entry.id,
            data=_notification_payload(entry)
        )
        entry.renewal_notification_sent = True
        db.commit()
        sent += 1
        logger.info(f"Renewal reminder sent for {entry.particulars} to {handler.email}")

    logger.info(f"Renewal reminder job completed: {sent} sent")
    return sent


async def run_auto_cancellation_notices_once(
    db: Session,
    today: Optional[date] = None,
    mailer: Optional[EmailService] = None
) -> int:
    """
    Warn the handler and oversight roles when a reminded service got no response.

    Emails go to the handler (when resolvable) and every MIS manager; in-app
    notifications go to MIS managers and super admins. Returns notices sent.
    """
    logger.info("Running auto-cancellation notice job")
    today = today or date.today()
    mailer = mailer or EmailService()
    days_before = settings.AUTO_CANCEL_DAYS_BEFORE
    target = today + timedelta(days=days_before)

    candidates = _due_on(db, target).filter(
        ExpenseEntry.renewal_notification_sent == True,  # noqa: E712
        ExpenseEntry.auto_cancellation_notification_sent == False  # noqa: E712
    ).order_by(ExpenseEntry.id).all()
    if not candidates:
        logger.info("No auto-cancel candidates found")
        return 0

    mis_managers: List[User] = db.query(User).filter(User.role == UserRole.MIS_MANAGER).all()
    super_admins: List[User] = db.query(User).filter(User.role == UserRole.SUPER_ADMIN).all()

    sent = 0
    for entry in candidates:
        if has_renewal_action(db, entry.id, entry.next_renewal_date):
            logger.info(f"Renewal already decided for entry {entry.id}; skipping auto-cancel notice")
            continue

        recipients = [manager.email for manager in mis_managers]
        handler = find_service_handler(db, entry)
        if handler:
            recipients.insert(0, handler.email)
        await asyncio.gather(
            *(mailer.send_auto_cancellation_notice(email, entry, days_before) for email in recipients)
        )

        payload = _notification_payload(entry)
        payload["reason"] = "No response to renewal reminder"
        for user in mis_managers + super_admins:
            create_notification(
                db,
                user_id=user.id,
                type="service_cancellation",
                title="Auto-cancel requested",
                message=(
                    f"No response from {entry.service_handler or 'service handler'} for {entry.particulars} "
                    f"(renewal in {days_before} days)"
                ),
                related_entry_id=entry.id,
                data=payload
            )
        entry.auto_cancellation_notification_sent = True
        db.commit()
        sent += 1

    logger.info(f"Auto-cancellation notice job completed: {sent} sent")
    return sent


async def run_renewal_rollover_once(db: Session, today: Optional[date] = None) -> int:
    """
    Start a new cycle for reminded services whose renewal date has passed.

    next_renewal_date advances by one cadence period and both notification
    flags are cleared. All candidates are written in one bulk update. Returns
    rows updated.
    """
    logger.info("Running renewal flag reset job")
    today = today or date.today()

    candidates = db.query(ExpenseEntry).filter(
        ExpenseEntry.next_renewal_date <= today,
        ExpenseEntry.renewal_notification_sent == True  # noqa: E712
    ).all()
    if not candidates:
        logger.info("No services to reset")
        return 0

    now = utcnow()
    mappings = []
    for entry in candidates:
        next_date = entry.next_renewal_date
        if entry.recurring in (Recurring.MONTHLY, Recurring.YEARLY):
            next_date = add_cadence(next_date, entry.recurring)
        mappings.append({
            "id": entry.id,
            "next_renewal_date": next_date,
            "renewal_notification_sent": False,
            "auto_cancellation_notification_sent": False,
            "updated_at": now,
        })
    db.bulk_update_mappings(ExpenseEntry, mappings)
    db.commit()
    # bulk_update_mappings bypasses the identity map
    db.expire_all()

    logger.info(f"Reset renewal flag for {len(mappings)} services")
    return len(mappings)


async def run_exchange_rate_refresh_once(db: Session, rate_lookup: RateLookup = get_exchange_rate) -> int:
    """Re-price every entry at the current rate of its currency. Returns currencies refreshed."""
    logger.info("Running exchange rate refresh job")
    base_currency = get_base_currency()
    currencies = [row[0] for row in db.query(ExpenseEntry.currency).distinct().all() if row[0]]
    if not currencies:
        logger.info("No currencies found to refresh")
        return 0

    for currency in currencies:
        rate = await resolve_rate(rate_lookup, currency, base_currency)
        db.query(ExpenseEntry).filter(ExpenseEntry.currency == currency).update(
            {
                ExpenseEntry.xe_rate: rate,
                ExpenseEntry.amount_in_inr: ExpenseEntry.amount * rate,
                ExpenseEntry.updated_at: utcnow(),
            },
            synchronize_session=False
        )
        db.commit()
        logger.info(f"Updated XE rate for {currency} -> {base_currency} at {rate}")

    db.expire_all()
    logger.info("Exchange rate refresh job completed")
    return len(currencies)


async def run_rejected_entries_cleanup_once(db: Session, now: Optional[datetime] = None) -> int:
    """Permanently delete Rejected entries untouched for AUTO_DELETE_REJECTED_DAYS. Returns rows deleted."""
    logger.info("Running rejected entries cleanup job")
    delete_days = settings.AUTO_DELETE_REJECTED_DAYS
    cutoff = (now or utcnow()) - timedelta(days=delete_days)

    expired_ids = [row[0] for row in db.query(ExpenseEntry.id).filter(
        ExpenseEntry.entry_status == EntryStatus.REJECTED,
        ExpenseEntry.updated_at <= cutoff
    ).all()]
    if not expired_ids:
        logger.info("No rejected entries to delete")
        return 0

    db.query(SharedAllocation).filter(
        SharedAllocation.expense_entry_id.in_(expired_ids)
    ).delete(synchronize_session=False)
    deleted = db.query(ExpenseEntry).filter(
        ExpenseEntry.id.in_(expired_ids)
    ).delete(synchronize_session=False)
    db.commit()
    db.expire_all()

    logger.info(f"Deleted {deleted} rejected entries older than {delete_days} days")
    return deleted
