"""
Support ticket models.

A ticket is a single thread between one applicant and one company,
independent of any job. Read tracking is one last-viewed timestamp per side.
"""

from typing import TYPE_CHECKING
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    BigInteger,
    DateTime,
    func,
    Text,
    Enum as SQLEnum,
    Index,
)

from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.users import User
    from database.models.organizations import Company


class TicketStatus(str, PyEnum):
    """Lifecycle status of a support ticket."""

    OPEN = "OPEN"  # waiting on the company
    RESPONDED = "RESPONDED"  # waiting on the applicant
    CLOSED = "CLOSED"


# Statuses that count against the per-company open ticket quota
ACTIVE_TICKET_STATUSES: tuple[TicketStatus, ...] = (
    TicketStatus.OPEN,
    TicketStatus.RESPONDED,
)


class CompanyTicket(Base):
    """
    Applicant to company support thread.
    """

    __tablename__: str = "company_tickets"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    applicant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        SQLEnum(TicketStatus, native_enum=False, length=20),
        nullable=False,
        default=TicketStatus.OPEN,
    )
    applicant_last_viewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    company_last_viewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company")
    applicant: Mapped["User"] = relationship("User")
    messages: Mapped[list["CompanyTicketMessage"]] = relationship(
        "CompanyTicketMessage",
        back_populates="ticket",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_tickets_company_status", "company_id", "status"),
        Index("idx_tickets_applicant_company_status", "applicant_id", "company_id", "status"),
        Index("idx_tickets_applicant_created", "applicant_id", "created_at"),
        Index("idx_tickets_updated_at", "updated_at"),
    )


class CompanyTicketMessage(Base):
    """
    Append-only message inside a ticket.
    """

    __tablename__: str = "company_ticket_messages"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    ticket_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("company_tickets.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    ticket: Mapped["CompanyTicket"] = relationship(
        "CompanyTicket", back_populates="messages"
    )
    sender: Mapped["User"] = relationship("User")

    __table_args__ = (
        Index("idx_ticket_messages_ticket_created", "ticket_id", "created_at"),
    )
