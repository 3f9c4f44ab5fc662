"""
Role-based permission checks for company-scoped actions.

Company membership is resolved once per request by the membership resolver;
everything here works on the resolved role only:
1. Permission enum for every company-scoped action
2. Role to permission mapping
3. One predicate per action, taking the resolved role (or None)
"""

import logging
from typing import Optional, Set
from enum import Enum

from core.exceptions import Forbidden
from database.models.organizations import CompanyRole

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """Company-scoped permissions."""

    # Application conversations
    CONVERSATION_READ = "conversation:read"
    CONVERSATION_MESSAGE = "conversation:message"

    # Support tickets
    TICKET_READ = "ticket:read"
    TICKET_REPLY = "ticket:reply"
    TICKET_UPDATE_STATUS = "ticket:update_status"
    TICKET_NOTIFY = "ticket:notify"

    # Company management
    COMPANY_MANAGE = "company:manage"


# Role to permission mapping
ROLE_PERMISSIONS: dict[CompanyRole, Set[Permission]] = {
    CompanyRole.OWNER: {
        # Full access, and the recipient of ticket notifications
        Permission.CONVERSATION_READ, Permission.CONVERSATION_MESSAGE,
        Permission.TICKET_READ, Permission.TICKET_REPLY,
        Permission.TICKET_UPDATE_STATUS, Permission.TICKET_NOTIFY,
        Permission.COMPANY_MANAGE,
    },
    CompanyRole.ADMIN: {
        Permission.CONVERSATION_READ, Permission.CONVERSATION_MESSAGE,
        Permission.TICKET_READ, Permission.TICKET_REPLY,
        Permission.TICKET_UPDATE_STATUS,
        Permission.COMPANY_MANAGE,
    },
    CompanyRole.MEMBER: {
        Permission.CONVERSATION_READ, Permission.CONVERSATION_MESSAGE,
        Permission.TICKET_READ, Permission.TICKET_REPLY,
        Permission.TICKET_UPDATE_STATUS,
    },
}


def has_permission(role: Optional[CompanyRole], permission: Permission) -> bool:
    """
    Check whether a resolved role grants a permission.

    Args:
        role: Role from the membership resolver, None for non-members
        permission: Permission to check

    Returns:
        True if the role grants the permission
    """
    if role is None:
        return False
    return permission in ROLE_PERMISSIONS.get(role, set())


def can_access_company_conversations(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.CONVERSATION_READ)


def can_message_as_company(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.CONVERSATION_MESSAGE)


def can_view_company_tickets(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.TICKET_READ)


def can_reply_to_ticket(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.TICKET_REPLY)


def can_update_ticket_status(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.TICKET_UPDATE_STATUS)


def can_manage_company(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.COMPANY_MANAGE)


def receives_ticket_notifications(role: Optional[CompanyRole]) -> bool:
    return has_permission(role, Permission.TICKET_NOTIFY)


def ensure_permission(
    role: Optional[CompanyRole],
    permission: Permission,
    user_id: int,
    company_id: int,
    message: str = "You do not have access to this resource",
) -> CompanyRole:
    """
    Raise Forbidden unless the role grants the permission.

    Returns:
        The role, narrowed to a non-None value

    Raises:
        Forbidden: If the user is not a member or lacks the permission
    """
    if not has_permission(role, permission):
        logger.warning(
            f"User {user_id} with role {role} lacks permission "
            f"{permission.value} in company {company_id}"
        )
        raise Forbidden(message)
    return role
