"""Email sending tasks."""

import logging
from typing import Optional
from celery import Task

from workers.celery_app import celery_app
from core.integrations.email import EmailService

logger = logging.getLogger(__name__)

RETRY_COUNTDOWN_SECONDS = 120
MAX_RETRIES = 5


class EmailDeliveryFailed(Exception):
    """SMTP delivery did not succeed; the task will be retried."""


@celery_app.task(name="workers.tasks.emails.send_email", bind=True, max_retries=MAX_RETRIES)
def send_email(
    self: Task,
    to: str,
    subject: str,
    body: str,
    html_body: Optional[str] = None,
) -> dict:
    """Send email via the configured SMTP service.

    Args:
        to: Recipient email address
        subject: Email subject
        body: Plain text email body
        html_body: HTML email body (optional)

    Returns:
        Dictionary with send status
    """
    sent = EmailService().send_email(
        to_email=to,
        subject=subject,
        body=body,
        html_body=html_body,
    )
    if not sent:
        logger.warning(
            f"Email delivery failed, attempt {self.request.retries + 1} of {MAX_RETRIES + 1}"
        )
        raise self.retry(
            exc=EmailDeliveryFailed(f"Could not deliver email: {subject}"),
            countdown=RETRY_COUNTDOWN_SECONDS,
        )

    return {"status": "sent", "to": to}
