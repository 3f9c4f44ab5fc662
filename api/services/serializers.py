"""Dict serializers for the read models returned by the services."""

from typing import Any, Optional

from database.models.users import User
from database.models.organizations import Company
from database.models.jobs import Job
from database.models.applications import Message
from database.models.tickets import CompanyTicket, CompanyTicketMessage


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "avatar_url": user.avatar_url,
    }


def serialize_company(company: Company) -> dict[str, Any]:
    return {
        "id": company.id,
        "name": company.name,
        "slug": company.slug,
        "logo_url": company.logo_url,
        "location": company.location,
    }


def serialize_job(job: Job) -> dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "company": serialize_company(job.company),
    }


def serialize_message(message: Message) -> dict[str, Any]:
    """Application message with its sender. Requires ``sender`` loaded."""
    return {
        "id": message.id,
        "application_id": message.application_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "message_type": message.message_type.value,
        "file_url": message.file_url,
        "is_read": message.is_read,
        "created_at": message.created_at,
        "updated_at": message.updated_at,
        "sender": serialize_user(message.sender),
    }


def serialize_ticket_message(message: CompanyTicketMessage) -> dict[str, Any]:
    """Ticket message with its sender. Requires ``sender`` loaded."""
    return {
        "id": message.id,
        "ticket_id": message.ticket_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": message.created_at,
        "updated_at": message.updated_at,
        "sender": serialize_user(message.sender),
    }


def serialize_ticket(
    ticket: CompanyTicket,
    last_message: Optional[CompanyTicketMessage] = None,
    has_unread: bool = False,
) -> dict[str, Any]:
    """Ticket header. Requires ``company`` and ``applicant`` loaded."""
    return {
        "id": ticket.id,
        "title": ticket.title,
        "status": ticket.status.value,
        "company": serialize_company(ticket.company),
        "applicant": serialize_user(ticket.applicant),
        "applicant_last_viewed_at": ticket.applicant_last_viewed_at,
        "company_last_viewed_at": ticket.company_last_viewed_at,
        "created_at": ticket.created_at,
        "updated_at": ticket.updated_at,
        "last_message": (
            serialize_ticket_message(last_message) if last_message is not None else None
        ),
        "has_unread": has_unread,
    }
