"""
Application Models

A job application anchors exactly one conversation between the applicant
and the hiring company. There is no conversation table: the conversation is
the application plus its messages.
"""

from typing import TYPE_CHECKING
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    BigInteger,
    DateTime,
    func,
    Text,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)

from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.users import User
    from database.models.jobs import Job


# ==================== Application Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """Recruiting status of an application."""

    PENDING = "PENDING"
    REVIEWING = "REVIEWING"
    SHORTLISTED = "SHORTLISTED"
    REJECTED = "REJECTED"
    HIRED = "HIRED"


class MessageType(str, PyEnum):
    """Kind of payload carried by an application message."""

    TEXT = "TEXT"
    FILE = "FILE"
    IMAGE = "IMAGE"


# ==================== Application Model ===================== #
class Application(Base):
    """
    A user's submission to a job posting.

    Created by the recruiting flow, never deleted or modified by the inbox.
    """

    __tablename__: str = "applications"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    user: Mapped["User"] = relationship("User")
    job: Mapped["Job"] = relationship("Job")
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="application", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="uq_application_user_job"),
        Index("idx_applications_user", "user_id"),
        Index("idx_applications_job", "job_id"),
        Index("idx_applications_applied_at", "applied_at"),
    )


# ==================== Message Model ===================== #
class Message(Base):
    """
    Message in an application conversation.

    Immutable once written except for ``is_read``, which only the
    counterparty of the sender may flip.
    """

    __tablename__: str = "messages"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    application_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[MessageType] = mapped_column(
        SQLEnum(MessageType, native_enum=False, length=20),
        nullable=False,
        default=MessageType.TEXT,
    )
    file_url: Mapped[str | None] = mapped_column(String(2048))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
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
    application: Mapped["Application"] = relationship(
        "Application", back_populates="messages"
    )
    sender: Mapped["User"] = relationship("User")

    __table_args__ = (
        Index("idx_messages_application_created", "application_id", "created_at"),
        Index("idx_messages_unread", "application_id", "is_read", "sender_id"),
    )
