"""
API Services Layer.

Conversation and ticket operations used by the HTTP routes. Services are
constructed with their collaborators; see api.dependencies for the wiring.
"""

from api.services.membership import MembershipResolver
from api.services.inbox import ConversationService
from api.services.tickets import TicketService
from api.services.notifications import (
    NotificationDispatcher,
    CeleryNotificationDispatcher,
)

__all__ = [
    "MembershipResolver",
    "ConversationService",
    "TicketService",
    "NotificationDispatcher",
    "CeleryNotificationDispatcher",
]
