from typing import TYPE_CHECKING
from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, ForeignKey, BigInteger, DateTime, func, Index

from database.engine import Base, BigIntPK

if TYPE_CHECKING:
    from database.models.organizations import Company


class Job(Base):
    """
    Job posting. Owned by the recruiting subsystem; read-only here.
    """

    __tablename__: str = "jobs"
    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    company_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="jobs")

    __table_args__ = (Index("idx_jobs_company", "company_id"),)
