"""Support ticket API schemas."""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

from api.schemas.common import PaginationMeta, UserSummary, CompanySummary
from database.models.tickets import TicketStatus

TicketScope = Literal["company", "applicant"]


class CreateTicketRequest(BaseModel):
    """Schema for opening a support ticket."""

    company_id: int = Field(..., gt=0, description="Company the ticket is addressed to")
    title: str = Field(..., min_length=10, max_length=120, description="Ticket title")
    content: str = Field(..., min_length=20, max_length=4000, description="First message")

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "company_id": 42,
                "title": "Need clarification on role",
                "content": "Could you tell me more about the on-call expectations?",
            }
        }


class SendTicketMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class UpdateTicketStatusRequest(BaseModel):
    status: TicketStatus


class TicketMessageResponse(BaseModel):
    id: int
    ticket_id: int
    sender_id: int
    content: str
    created_at: datetime
    updated_at: datetime
    sender: UserSummary


class TicketResponse(BaseModel):
    id: int
    title: str
    status: TicketStatus
    company: CompanySummary
    applicant: UserSummary
    applicant_last_viewed_at: Optional[datetime] = None
    company_last_viewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    last_message: Optional[TicketMessageResponse] = None
    has_unread: bool = Field(
        default=False,
        description="The other side wrote since this side last opened the ticket",
    )


class TicketListResponse(BaseModel):
    tickets: list[TicketResponse]
    pagination: PaginationMeta
    scope: TicketScope


class TicketMessagesResponse(BaseModel):
    ticket: TicketResponse
    access_role: str = Field(description='"applicant" or the caller\'s company role')
    messages: list[TicketMessageResponse]
    pagination: PaginationMeta
