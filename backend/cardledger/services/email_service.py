"""
Outbound email through a transactional email HTTP API.

When EMAIL_API_URL is not configured, messages are logged and skipped.
"""
import logging
from typing import Optional
import httpx
from cardledger.core.config import settings
from cardledger.models.expense_entry import ExpenseEntry

logger = logging.getLogger(__name__)


def _entry_summary(entry: ExpenseEntry) -> str:
    renewal = entry.next_renewal_date.isoformat() if entry.next_renewal_date else "-"
    return (
        f"<ul>"
        f"<li>Service: {entry.particulars}</li>"
        f"<li>Business unit: {entry.business_unit.value if entry.business_unit else '-'}</li>"
        f"<li>Amount: {entry.currency} {entry.amount}</li>"
        f"<li>Recurring: {entry.recurring.value if entry.recurring else '-'}</li>"
        f"<li>Next renewal: {renewal}</li>"
        f"</ul>"
    )


class EmailService:
    """Thin client for the email API."""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None, sender: Optional[str] = None):
        self.api_url = api_url if api_url is not None else settings.EMAIL_API_URL
        self.api_key = api_key if api_key is not None else settings.EMAIL_API_KEY
        self.sender = sender or settings.EMAIL_FROM

    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message. Returns False when email is not configured."""
        if not self.api_url:
            logger.warning(f"EMAIL_API_URL not configured. Skipping email to {to}: {subject}")
            return False

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
        logger.info(f"Email sent to {to}: {subject}")
        return True

    async def send_renewal_reminder(self, to: str, entry: ExpenseEntry, days_before: int) -> bool:
        subject = f"Renewal reminder: {entry.particulars} renews in {days_before} days"
        html = (
            f"<p>Your subscription for <b>{entry.particulars}</b> is due for renewal in {days_before} days.</p>"
            f"{_entry_summary(entry)}"
            f"<p>Please confirm whether it should continue or be cancelled: "
            f"<a href=\"{settings.FRONTEND_URL}/renewals/{entry.id}\">review renewal</a></p>"
        )
        return await self.send(to, subject, html)

    async def send_auto_cancellation_notice(self, to: str, entry: ExpenseEntry, days_before: int) -> bool:
        subject = f"Auto-cancellation notice: {entry.particulars}"
        html = (
            f"<p>No response was recorded for the renewal of <b>{entry.particulars}</b> "
            f"handled by {entry.service_handler or 'an unassigned handler'}. "
            f"The service renews in {days_before} days and is flagged for cancellation.</p>"
            f"{_entry_summary(entry)}"
        )
        return await self.send(to, subject, html)
