"""
Company membership lookups.

The company_members table is the only source of truth for whether a user may
act on behalf of a company. Every authorization decision in the inbox and
ticket services goes through this resolver.
"""

import logging
from typing import Optional

from sqlalchemy import select, exists, and_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models.organizations import CompanyMember, CompanyRole
from database.models.users import User

logger = logging.getLogger(__name__)


class MembershipResolver:
    """Resolves a user's role within a company."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def resolve_role(
        self,
        user_id: int,
        company_id: int,
        session: Optional[AsyncSession] = None,
    ) -> Optional[CompanyRole]:
        """
        Look up the user's role in the company.

        Args:
            user_id: User to check
            company_id: Company to check against
            session: Optional session to run the lookup in

        Returns:
            The role, or None if the user is not a member
        """
        query = select(CompanyMember.role).where(
            and_(
                CompanyMember.user_id == user_id,
                CompanyMember.company_id == company_id,
            )
        )
        if session is not None:
            return (await session.execute(query)).scalar_one_or_none()

        async with self.session_factory() as own_session:
            return (await own_session.execute(query)).scalar_one_or_none()

    @staticmethod
    def is_member_clause(user_id: int, company_id_column):
        """
        EXISTS predicate matching rows whose company has the user as a member.

        Used by list and count queries so visibility is decided per row
        without enumerating the user's companies first.
        """
        return exists().where(
            and_(
                CompanyMember.user_id == user_id,
                CompanyMember.company_id == company_id_column,
            )
        )

    async def list_members(
        self,
        company_id: int,
        role: Optional[CompanyRole] = None,
        session: Optional[AsyncSession] = None,
    ) -> list[tuple[CompanyMember, User]]:
        """
        List members of a company with their user rows.

        Args:
            company_id: Company ID
            role: Only return members holding this role
            session: Optional session to run the query in
        """
        query = (
            select(CompanyMember, User)
            .join(User, User.id == CompanyMember.user_id)
            .where(CompanyMember.company_id == company_id)
            .order_by(CompanyMember.id)
        )
        if role is not None:
            query = query.where(CompanyMember.role == role)

        if session is not None:
            result = await session.execute(query)
            return [(member, user) for member, user in result.all()]

        async with self.session_factory() as own_session:
            result = await own_session.execute(query)
            return [(member, user) for member, user in result.all()]
