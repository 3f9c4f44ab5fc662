"""
Outbound notification hand-off.

Services decide who is notified and render the message; the dispatcher only
hands the rendered email to the worker queue. Delivery and retries happen in
the Celery worker, never on the request path.
"""

import logging
from typing import Optional, Protocol

from workers.tasks.emails import send_email

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    def notify_company_owner(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> None:
        """Notify a company owner about a new ticket or applicant reply."""
        ...

    def notify_ticket_applicant(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> None:
        """Notify a ticket's applicant about a company reply."""
        ...


class CeleryNotificationDispatcher:
    """Queues every notification as a ``send_email`` task."""

    def __init__(self, task=send_email):
        self.task = task

    def _enqueue(
        self, kind: str, to_email: str, subject: str, body: str, html_body: Optional[str]
    ) -> None:
        result = self.task.delay(
            to=to_email,
            subject=subject,
            body=body,
            html_body=html_body,
        )
        logger.info(f"Queued {kind} notification as task {result.id}")

    def notify_company_owner(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> None:
        self._enqueue("company owner", to_email, subject, body, html_body)

    def notify_ticket_applicant(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> None:
        self._enqueue("ticket applicant", to_email, subject, body, html_body)
