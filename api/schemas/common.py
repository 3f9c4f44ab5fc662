"""Common Pydantic schemas shared across the API."""

from typing import Optional
from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Paging block returned with every list."""

    page: int = Field(ge=1, description="Current page number (1-indexed)")
    limit: int = Field(ge=1, description="Items per page")
    total: int = Field(ge=0, description="Total number of items across all pages")
    total_pages: int = Field(ge=0, description="Total number of pages")


class UserSummary(BaseModel):
    """Display identity of a user."""

    id: int
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class CompanySummary(BaseModel):
    id: int
    name: str
    slug: str
    logo_url: Optional[str] = None
    location: Optional[str] = None


class JobSummary(BaseModel):
    id: int
    title: str
    company: CompanySummary


class ErrorDetail(BaseModel):
    code: str = Field(description="Error code for programmatic handling")
    message: str = Field(description="Human readable error message")
    path: str
    method: str


class ErrorResponse(BaseModel):
    """Error response model."""

    error: ErrorDetail
