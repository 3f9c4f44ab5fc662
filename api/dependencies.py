"""FastAPI dependencies for dependency injection."""

from datetime import timedelta
import logging
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt

from api.services.inbox import ConversationService
from api.services.membership import MembershipResolver
from api.services.notifications import (
    CeleryNotificationDispatcher,
    NotificationDispatcher,
)
from api.services.tickets import TicketService
from core.config import settings
from core.security import verify_jwt_token
from database.engine import AsyncSessionLocal

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """
    Resolve the authenticated user id from the bearer token.

    The token's ``sub`` claim is the user id.
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    try:
        payload = verify_jwt_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {type(e).__name__}")
        raise _unauthorized("Invalid authentication token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid authentication token")

    request.state.user_id = user_id
    return user_id


def get_membership_resolver() -> MembershipResolver:
    return MembershipResolver(AsyncSessionLocal)


def get_notification_dispatcher() -> NotificationDispatcher:
    return CeleryNotificationDispatcher()


def get_conversation_service(
    membership: MembershipResolver = Depends(get_membership_resolver),
) -> ConversationService:
    return ConversationService(AsyncSessionLocal, membership)


def get_ticket_service(
    membership: MembershipResolver = Depends(get_membership_resolver),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> TicketService:
    return TicketService(
        AsyncSessionLocal,
        membership,
        notifier,
        platform_support_company_id=settings.platform_support_company_id,
        max_open_tickets_per_company=settings.max_open_tickets_per_company,
        max_tickets_per_day=settings.max_tickets_per_day,
        rate_window=timedelta(hours=settings.ticket_window_hours),
    )
