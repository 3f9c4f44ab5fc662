"""Support ticket endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from api.dependencies import require_user_id, get_ticket_service
from api.schemas.common import ErrorResponse
from api.schemas.tickets import (
    CreateTicketRequest,
    SendTicketMessageRequest,
    UpdateTicketStatusRequest,
    TicketResponse,
    TicketListResponse,
    TicketMessageResponse,
    TicketMessagesResponse,
)
from api.services.tickets import TicketService
from database.models.tickets import TicketStatus

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Not the applicant or a company member"},
        404: {"model": ErrorResponse, "description": "Resource not found"},
        429: {"model": ErrorResponse, "description": "Ticket quota exhausted"},
    },
)


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a support ticket",
)
async def create_ticket(
    request: CreateTicketRequest,
    user_id: int = Depends(require_user_id),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Open a ticket with a company. Company owners are notified by email.

    - **company_id**: Target company
    - **title**: 10-120 characters
    - **content**: First message, 20-4000 characters
    """
    return await service.create_ticket(
        user_id, request.company_id, request.title, request.content
    )


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
)
async def list_tickets(
    company_id: Optional[int] = Query(None, description="List the company's tickets instead of your own"),
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page (default 10, max 50)"),
    user_id: int = Depends(require_user_id),
    service: TicketService = Depends(get_ticket_service),
):
    """Tickets opened by the caller, or all tickets of a company the caller belongs to."""
    return await service.list_tickets(
        user_id,
        company_id=company_id,
        status=status_filter,
        page=page,
        limit=limit,
    )


@router.get(
    "/{ticket_id}/messages",
    response_model=TicketMessagesResponse,
    summary="Read ticket messages",
)
async def get_ticket_messages(
    ticket_id: int,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page (default 20, max 100)"),
    user_id: int = Depends(require_user_id),
    service: TicketService = Depends(get_ticket_service),
):
    """Messages in chronological order. Marks the ticket as viewed by the caller's side."""
    return await service.get_messages(user_id, ticket_id, page=page, limit=limit)


@router.post(
    "/{ticket_id}/messages",
    response_model=TicketMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a ticket",
)
async def send_ticket_message(
    ticket_id: int,
    request: SendTicketMessageRequest,
    user_id: int = Depends(require_user_id),
    service: TicketService = Depends(get_ticket_service),
):
    return await service.send_message(user_id, ticket_id, request.content)


@router.patch(
    "/{ticket_id}/status",
    response_model=TicketResponse,
    summary="Change ticket status",
)
async def update_ticket_status(
    ticket_id: int,
    request: UpdateTicketStatusRequest,
    user_id: int = Depends(require_user_id),
    service: TicketService = Depends(get_ticket_service),
):
    """Applicants may only close their ticket; company members may set any status."""
    return await service.update_ticket_status(user_id, ticket_id, request.status)
