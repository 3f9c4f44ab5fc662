from database.models.users import User
from database.models.organizations import Company, CompanyMember, CompanyRole
from database.models.jobs import Job
from database.models.applications import (
    Application,
    ApplicationStatus,
    Message,
    MessageType,
)
from database.models.tickets import (
    ACTIVE_TICKET_STATUSES,
    CompanyTicket,
    CompanyTicketMessage,
    TicketStatus,
)

__all__ = [
    "User",
    "Company",
    "CompanyMember",
    "CompanyRole",
    "Job",
    "Application",
    "ApplicationStatus",
    "Message",
    "MessageType",
    "CompanyTicket",
    "CompanyTicketMessage",
    "TicketStatus",
    "ACTIVE_TICKET_STATUSES",
]
