"""
Notification service — transactional emails sent after money moves.

Ledger operations don't send anything themselves. They return
EmailNotification values, and the routers hand those to
send_email_notification as FastAPI background tasks, which run only after
the request's database transaction has committed.

Delivery is best-effort: a failed or unconfigured email service is
logged and never affects the transaction that triggered it.
"""

import logging
from dataclasses import dataclass

import httpx

from unitedbank.config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailNotification:
    """
    One templated email request.

    type is "sent", "received", "deposit" or "reversal"; the email
    service picks the template from it.
    """
    type: str
    email: str
    name: str
    amount_cents: int
    recipient_name: str | None = None
    sender_name: str | None = None
    description: str | None = None
    account_number: str | None = None
    reference_number: str | None = None
    original_transaction: str | None = None

    def to_payload(self) -> dict:
        """JSON body expected by the email function (amount in currency units)."""
        payload = {
            "type": self.type,
            "email": self.email,
            "name": self.name,
            "amount": self.amount_cents / 100,
            "recipientName": self.recipient_name,
            "senderName": self.sender_name,
            "description": self.description,
            "accountNumber": self.account_number,
            "referenceNumber": self.reference_number,
            "originalTransaction": self.original_transaction,
        }
        return {key: value for key, value in payload.items() if value is not None}


async def send_email_notification(notification: EmailNotification) -> bool:
    """
    POST a notification to the email service.

    Returns True if the service accepted it. Never raises for delivery
    problems.
    """
    if not settings.NOTIFICATION_URL:
        logger.debug("NOTIFICATION_URL not set; skipping %s email", notification.type)
        return False

    headers = {}
    if settings.NOTIFICATION_API_KEY:
        headers["Authorization"] = f"Bearer {settings.NOTIFICATION_API_KEY}"

    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
            response = await client.post(
                settings.NOTIFICATION_URL,
                json=notification.to_payload(),
                headers=headers,
            )
            response.raise_for_status()
    except httpx.HTTPError:
        logger.warning("Failed to send %s email notification", notification.type, exc_info=True)
        return False

    logger.info("Sent %s email notification", notification.type)
    return True


def schedule_notifications(background_tasks, notifications: list[EmailNotification]) -> None:
    """Queue each notification to run after the response is sent."""
    for notification in notifications:
        background_tasks.add_task(send_email_notification, notification)
