"""Application conversation endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from api.dependencies import require_user_id, get_conversation_service
from api.schemas.common import ErrorResponse
from api.schemas.inbox import (
    SendMessageRequest,
    SentMessageResponse,
    MessageListResponse,
    ConversationListResponse,
    MarkMessageReadResponse,
    MarkConversationReadResponse,
    UnreadCountResponse,
)
from api.services.inbox import ConversationService

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        403: {"model": ErrorResponse, "description": "Not a party to the conversation"},
        404: {"model": ErrorResponse, "description": "Resource not found"},
    },
)


@router.post(
    "/messages",
    response_model=SentMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    description="Post a message to the conversation of an application",
)
async def send_message(
    request: SendMessageRequest,
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """
    Send a message as the applicant or as a member of the hiring company.

    - **application_id**: Application whose conversation receives the message
    - **content**: Message text (1-2000 characters)
    - **message_type**: TEXT, FILE or IMAGE
    - **file_url**: Optional attachment URL
    """
    return await service.send_message(
        user_id,
        request.application_id,
        request.content,
        message_type=request.message_type,
        file_url=str(request.file_url) if request.file_url else None,
    )


@router.get(
    "/applications/{application_id}/messages",
    response_model=MessageListResponse,
    summary="List conversation messages",
)
async def list_messages(
    application_id: int,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page (default 20, max 50)"),
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """Messages of one conversation, newest first."""
    return await service.list_messages(user_id, application_id, page=page, limit=limit)


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="List conversations",
)
async def list_conversations(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    limit: Optional[int] = Query(None, ge=1, description="Items per page (default 20, max 50)"),
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """Every conversation the caller is a party to, with last message and unread count."""
    return await service.list_conversations(user_id, page=page, limit=limit)


@router.patch(
    "/messages/{message_id}/read",
    response_model=MarkMessageReadResponse,
    summary="Mark a message as read",
)
async def mark_message_read(
    message_id: int,
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.mark_message_read(user_id, message_id)


@router.patch(
    "/applications/{application_id}/read",
    response_model=MarkConversationReadResponse,
    summary="Mark a conversation as read",
)
async def mark_conversation_read(
    application_id: int,
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.mark_conversation_read(user_id, application_id)


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Count unread messages",
)
async def get_unread_count(
    application_id: Optional[int] = Query(None, description="Limit the count to one conversation"),
    user_id: int = Depends(require_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    return await service.get_unread_count(user_id, application_id=application_id)
