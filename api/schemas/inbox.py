"""Application conversation API schemas."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, HttpUrl, field_validator

from api.schemas.common import PaginationMeta, UserSummary, JobSummary
from database.models.applications import ApplicationStatus, MessageType


class SendMessageRequest(BaseModel):
    """Schema for posting a message to an application conversation."""

    application_id: int = Field(..., gt=0, description="Application the conversation belongs to")
    content: str = Field(..., min_length=1, max_length=2000, description="Message text")
    message_type: MessageType = Field(default=MessageType.TEXT)
    file_url: Optional[HttpUrl] = Field(None, description="Attachment URL for FILE and IMAGE messages")

    @field_validator("content", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class MessageResponse(BaseModel):
    id: int
    application_id: int
    sender_id: int
    content: str
    message_type: MessageType
    file_url: Optional[str] = None
    is_read: bool
    created_at: datetime
    updated_at: datetime
    sender: UserSummary


class ApplicationContext(BaseModel):
    id: int
    status: ApplicationStatus
    applied_at: datetime
    job: JobSummary
    applicant: UserSummary


class SentMessageResponse(MessageResponse):
    """A newly sent message with the conversation it landed in."""

    application: ApplicationContext


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    pagination: PaginationMeta


class ApplicationSummary(BaseModel):
    id: int
    status: ApplicationStatus
    applied_at: datetime


class ConversationResponse(BaseModel):
    """One conversation as seen by the requesting user."""

    id: int
    application_id: int
    last_message: Optional[MessageResponse] = None
    unread_count: int = Field(ge=0, description="Unread messages from the other party")
    job: JobSummary
    applicant: UserSummary
    application: ApplicationSummary


class ConversationListResponse(BaseModel):
    conversations: list[ConversationResponse]
    pagination: PaginationMeta


class MarkMessageReadResponse(BaseModel):
    message_id: int
    updated: bool


class MarkConversationReadResponse(BaseModel):
    application_id: int
    updated: int = Field(ge=0, description="Number of messages marked read")


class UnreadCountResponse(BaseModel):
    unread_count: int = Field(ge=0)
