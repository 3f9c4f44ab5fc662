"""Email integration utilities for sending emails."""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from typing import Optional, List
import logging

from core.config import settings

logger = logging.getLogger(__name__)

# Longest message excerpt quoted in a notification
EXCERPT_LENGTH = 500


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service. Unset arguments fall back to settings.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            use_tls: Whether to upgrade the connection with STARTTLS
            from_email: Default sender email
            from_name: Default sender name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def build_message(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> MIMEMultipart:
        """Build a plain text message with an optional HTML alternative."""
        msg = MIMEMultipart('alternative')
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = ", ".join(to_email) if isinstance(to_email, list) else to_email
        msg['Subject'] = subject
        if reply_to:
            msg['Reply-To'] = reply_to

        msg.attach(MIMEText(body, 'plain'))
        if html_body:
            msg.attach(MIMEText(html_body, 'html'))
        return msg

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Plain text body
            html_body: HTML body (optional)
            reply_to: Reply-to email address

        Returns:
            True if email sent successfully
        """
        recipients = list(to_email) if isinstance(to_email, list) else [to_email]
        try:
            msg = self.build_message(to_email, subject, body, html_body, reply_to)

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)

            logger.info(f"Email sent to {len(recipients)} recipient(s): {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False


def _excerpt(content: str) -> str:
    content = content.strip()
    if len(content) <= EXCERPT_LENGTH:
        return content
    return content[:EXCERPT_LENGTH].rstrip() + "..."


# Pre-configured email templates
class EmailTemplates:
    """Pre-configured email templates for support ticket notifications."""

    @staticmethod
    def ticket_created_for_owner(
        owner_name: Optional[str],
        applicant_name: Optional[str],
        applicant_email: str,
        title: str,
        content: str,
        ticket_url: str,
        is_reply: bool = False,
    ) -> dict:
        """Tell a company owner about a new ticket or a new applicant reply."""
        sender = applicant_name or applicant_email
        greeting = f"Hi {owner_name}," if owner_name else "Hello,"
        if is_reply:
            subject = f"New reply on support ticket: {title}"
            intro = f"{sender} replied to the support ticket \"{title}\"."
        else:
            subject = f"New support ticket: {title}"
            intro = f"{sender} ({applicant_email}) opened a support ticket \"{title}\"."
        excerpt = _excerpt(content)

        return {
            'subject': subject,
            'body': (
                f"{greeting}\n\n{intro}\n\n{excerpt}\n\n"
                f"View and reply: {ticket_url}\n"
            ),
            'html_body': f"""
                <html>
                <body>
                    <p>{escape(greeting)}</p>
                    <p>{escape(intro)}</p>
                    <blockquote>{escape(excerpt)}</blockquote>
                    <p><a href="{escape(ticket_url, quote=True)}">View and reply</a></p>
                </body>
                </html>
            """,
        }

    @staticmethod
    def ticket_reply_for_applicant(
        company_name: str,
        title: str,
        content: str,
        ticket_url: str,
    ) -> dict:
        """Tell an applicant that the company replied to their ticket."""
        intro = f"{company_name} replied to your support ticket \"{title}\"."
        excerpt = _excerpt(content)

        return {
            'subject': f"{company_name} replied to your ticket: {title}",
            'body': f"Hello,\n\n{intro}\n\n{excerpt}\n\nView the conversation: {ticket_url}\n",
            'html_body': f"""
                <html>
                <body>
                    <p>Hello,</p>
                    <p>{escape(intro)}</p>
                    <blockquote>{escape(excerpt)}</blockquote>
                    <p><a href="{escape(ticket_url, quote=True)}">View the conversation</a></p>
                </body>
                </html>
            """,
        }


def owner_ticket_url(ticket_id: int, company_slug: str) -> str:
    return f"{settings.frontend_origin.rstrip('/')}/tickets/{ticket_id}?company={company_slug}"


def applicant_ticket_url(ticket_id: int) -> str:
    return f"{settings.frontend_origin.rstrip('/')}/tickets/{ticket_id}"
