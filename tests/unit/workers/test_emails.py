"""
Tests for email notifications: templates, SMTP delivery, the Celery task and
the dispatcher that queues it.
"""

import smtplib
import pytest
from unittest.mock import MagicMock, Mock, patch
from celery.exceptions import Retry

from api.services.notifications import CeleryNotificationDispatcher
from core.integrations.email import (
    EmailService,
    EmailTemplates,
    owner_ticket_url,
    applicant_ticket_url,
)
from workers.tasks.emails import send_email, EmailDeliveryFailed, RETRY_COUNTDOWN_SECONDS


class TestEmailTemplates:
    """Test ticket notification templates."""

    def test_new_ticket_for_owner(self):
        email = EmailTemplates.ticket_created_for_owner(
            owner_name="Olga",
            applicant_name="Ada",
            applicant_email="ada@example.com",
            title="Interview schedule",
            content="When is the next round?",
            ticket_url="https://jobs.example.com/tickets/30?company=acme",
        )

        assert email["subject"] == "New support ticket: Interview schedule"
        assert email["body"].startswith("Hi Olga,")
        assert "ada@example.com" in email["body"]
        assert "When is the next round?" in email["body"]
        assert "https://jobs.example.com/tickets/30?company=acme" in email["html_body"]

    def test_reply_for_owner(self):
        email = EmailTemplates.ticket_created_for_owner(
            owner_name=None,
            applicant_name=None,
            applicant_email="ada@example.com",
            title="Interview schedule",
            content="Thanks!",
            ticket_url="https://jobs.example.com/tickets/30?company=acme",
            is_reply=True,
        )

        assert email["subject"] == "New reply on support ticket: Interview schedule"
        assert email["body"].startswith("Hello,")
        assert "ada@example.com replied" in email["body"]

    def test_reply_for_applicant(self):
        email = EmailTemplates.ticket_reply_for_applicant(
            company_name="Acme",
            title="Interview schedule",
            content="Next Tuesday.",
            ticket_url="https://jobs.example.com/tickets/30",
        )

        assert email["subject"] == "Acme replied to your ticket: Interview schedule"
        assert "Next Tuesday." in email["body"]

    def test_html_is_escaped(self):
        email = EmailTemplates.ticket_reply_for_applicant(
            company_name="Acme",
            title="<script>alert(1)</script>",
            content="<b>bold</b>",
            ticket_url="https://jobs.example.com/tickets/30",
        )

        assert "<script>" not in email["html_body"]
        assert "&lt;b&gt;bold&lt;/b&gt;" in email["html_body"]

    def test_long_content_is_excerpted(self):
        email = EmailTemplates.ticket_reply_for_applicant(
            company_name="Acme",
            title="Interview schedule",
            content="word " * 300,
            ticket_url="https://jobs.example.com/tickets/30",
        )

        assert "..." in email["body"]
        assert len(email["body"]) < 700

    def test_ticket_urls(self):
        assert owner_ticket_url(30, "acme") == "https://jobs.example.com/tickets/30?company=acme"
        assert applicant_ticket_url(30) == "https://jobs.example.com/tickets/30"


class TestEmailService:
    """Test SMTP delivery."""

    def test_build_message(self):
        service = EmailService(from_email="noreply@jobs.example.com", from_name="Jobs")

        msg = service.build_message(
            "ada@example.com", "Hello", "Plain body", html_body="<p>Hi</p>",
            reply_to="support@jobs.example.com",
        )

        assert msg["From"] == "Jobs <noreply@jobs.example.com>"
        assert msg["To"] == "ada@example.com"
        assert msg["Reply-To"] == "support@jobs.example.com"
        assert len(msg.get_payload()) == 2

    @patch("core.integrations.email.smtplib.SMTP")
    def test_send_email(self, mock_smtp):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server
        service = EmailService(
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="mailer",
            smtp_password="pw",
            use_tls=True,
        )

        assert service.send_email("ada@example.com", "Hello", "Body") is True
        mock_smtp.assert_called_once_with("smtp.example.com", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "pw")
        server.send_message.assert_called_once()

    @patch("core.integrations.email.smtplib.SMTP")
    def test_send_email_failure(self, mock_smtp):
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, b"unavailable")

        assert EmailService().send_email("ada@example.com", "Hello", "Body") is False


class TestSendEmailTask:
    """Test the Celery email task."""

    @patch("workers.tasks.emails.EmailService")
    def test_sends(self, mock_service):
        mock_service.return_value.send_email.return_value = True

        result = send_email(to="ada@example.com", subject="Hello", body="Body")

        assert result == {"status": "sent", "to": "ada@example.com"}
        mock_service.return_value.send_email.assert_called_once_with(
            to_email="ada@example.com", subject="Hello", body="Body", html_body=None
        )

    @patch("workers.tasks.emails.EmailService")
    def test_retries_on_failure(self, mock_service):
        mock_service.return_value.send_email.return_value = False

        with patch.object(send_email, "retry", side_effect=Retry()) as mock_retry:
            with pytest.raises(Retry):
                send_email(to="ada@example.com", subject="Hello", body="Body")

        kwargs = mock_retry.call_args.kwargs
        assert isinstance(kwargs["exc"], EmailDeliveryFailed)
        assert kwargs["countdown"] == RETRY_COUNTDOWN_SECONDS


class TestCeleryNotificationDispatcher:
    """Test queueing notifications."""

    @pytest.mark.parametrize("method", ["notify_company_owner", "notify_ticket_applicant"])
    def test_enqueues_send_email(self, method):
        task = Mock()
        task.delay.return_value.id = "task-1"
        dispatcher = CeleryNotificationDispatcher(task=task)

        getattr(dispatcher, method)("olga@acme.example", "Subject", "Body", "<p>Body</p>")

        task.delay.assert_called_once_with(
            to="olga@acme.example",
            subject="Subject",
            body="Body",
            html_body="<p>Body</p>",
        )

    def test_broker_errors_propagate(self):
        task = Mock()
        task.delay.side_effect = ConnectionError("broker unreachable")
        dispatcher = CeleryNotificationDispatcher(task=task)

        with pytest.raises(ConnectionError):
            dispatcher.notify_company_owner("olga@acme.example", "Subject", "Body")
