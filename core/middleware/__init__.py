"""
Core middleware package.

- Error handling with sensitive data sanitization
- Structured logging with PII masking
- Role-based permission predicates for company-scoped actions
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    StructuredFormatter,
    setup_logging,
)

from core.middleware.authorization import (
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    ensure_permission,
    can_access_company_conversations,
    can_message_as_company,
    can_view_company_tickets,
    can_reply_to_ticket,
    can_update_ticket_status,
    can_manage_company,
    receives_ticket_notifications,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "StructuredFormatter",
    "setup_logging",
    # Authorization
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "ensure_permission",
    "can_access_company_conversations",
    "can_message_as_company",
    "can_view_company_tickets",
    "can_reply_to_ticket",
    "can_update_ticket_status",
    "can_manage_company",
    "receives_ticket_notifications",
]
