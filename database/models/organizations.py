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
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)

from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.users import User
    from database.models.jobs import Job


# ==================== Enums ===================== #
class CompanyRole(str, PyEnum):
    """
    Roles a user can hold within a company.
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Company(Base):
    """
    Company page. Jobs, applications and support tickets hang off it.
    """

    __tablename__: str = "companies"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String(1024))
    location: Mapped[str | None] = mapped_column(String(255))

    # Timestamps
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
    members: Mapped[list["CompanyMember"]] = relationship(
        "CompanyMember", back_populates="company", cascade="all, delete-orphan"
    )
    jobs: Mapped[list["Job"]] = relationship(
        "Job", back_populates="company", cascade="all, delete-orphan"
    )

    # Indexes
    __table_args__ = (Index("idx_company_slug", "slug"),)


class CompanyMember(Base):
    """
    Association of users with companies.

    This table is the only source of truth for acting on behalf of a company.
    """

    __tablename__: str = "company_members"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[CompanyRole] = mapped_column(
        SQLEnum(CompanyRole, native_enum=False, length=20),
        nullable=False,
        default=CompanyRole.MEMBER,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="members")
    user: Mapped["User"] = relationship("User")

    # Indexes
    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_company_member_user_company"),
        Index("idx_company_members_company", "company_id"),
        Index("idx_company_members_user", "user_id"),
        Index("idx_company_members_company_role", "company_id", "role"),
    )
