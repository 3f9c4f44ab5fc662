"""
Support tickets between applicants and companies.

A ticket is one continuous thread. Status follows the last speaker: an
applicant message sets OPEN, a company message sets RESPONDED. Read tracking
is a last-viewed timestamp per side rather than per-message flags.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union
import logging

from sqlalchemy import select, func, and_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.services.membership import MembershipResolver
from api.services.notifications import NotificationDispatcher
from api.services.pagination import get_pagination_params, pagination_meta
from api.services.serializers import serialize_ticket, serialize_ticket_message
from core.exceptions import NotFound, Forbidden, RateLimited, ValidationFailed
from core.integrations.email import (
    EmailTemplates,
    owner_ticket_url,
    applicant_ticket_url,
)
from core.middleware.authorization import (
    Permission,
    ensure_permission,
    can_view_company_tickets,
    can_reply_to_ticket,
    can_update_ticket_status,
    receives_ticket_notifications,
)
from database.engine import utc_now
from database.models.organizations import Company, CompanyRole
from database.models.tickets import (
    ACTIVE_TICKET_STATUSES,
    CompanyTicket,
    CompanyTicketMessage,
    TicketStatus,
)
from database.models.users import User

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 120
CONTENT_MIN_LENGTH = 20
CONTENT_MAX_LENGTH = 4000
MESSAGE_MAX_LENGTH = 4000

SCOPE_COMPANY = "company"
SCOPE_APPLICANT = "applicant"


def _parse_status(status: Union[str, TicketStatus]) -> TicketStatus:
    try:
        return TicketStatus(status)
    except ValueError:
        raise ValidationFailed(f"Invalid ticket status: {status}", code="INVALID_STATUS")


def _check_length(value: str, field: str, min_length: int, max_length: int) -> str:
    value = (value or "").strip()
    if not min_length <= len(value) <= max_length:
        raise ValidationFailed(
            f"{field} must be between {min_length} and {max_length} characters"
        )
    return value


class TicketService:
    """Create, list, reply to and close support tickets."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        membership: MembershipResolver,
        notifier: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now,
        platform_support_company_id: Optional[int] = None,
        max_open_tickets_per_company: int = 3,
        max_tickets_per_day: int = 5,
        rate_window: timedelta = timedelta(hours=24),
        list_page_size: int = 10,
        list_max_page_size: int = 50,
        messages_page_size: int = 20,
        messages_max_page_size: int = 100,
    ):
        self.session_factory = session_factory
        self.membership = membership
        self.notifier = notifier
        self.clock = clock
        self.platform_support_company_id = platform_support_company_id
        self.max_open_tickets_per_company = max_open_tickets_per_company
        self.max_tickets_per_day = max_tickets_per_day
        self.rate_window = rate_window
        self.list_page_size = list_page_size
        self.list_max_page_size = list_max_page_size
        self.messages_page_size = messages_page_size
        self.messages_max_page_size = messages_max_page_size

    # ------------------------------------------------------------------ #
    # Access checks
    # ------------------------------------------------------------------ #

    async def _get_ticket(self, session: AsyncSession, ticket_id: int) -> CompanyTicket:
        result = await session.execute(
            select(CompanyTicket)
            .options(
                selectinload(CompanyTicket.company),
                selectinload(CompanyTicket.applicant),
            )
            .where(CompanyTicket.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        ticket = result.scalar_one_or_none()
        if ticket is None:
            raise NotFound("Ticket not found", code="TICKET_NOT_FOUND")
        return ticket

    async def _ensure_access(
        self,
        session: AsyncSession,
        user_id: int,
        ticket: CompanyTicket,
        predicate: Callable[[Optional[CompanyRole]], bool] = can_view_company_tickets,
    ) -> tuple[bool, Optional[CompanyRole]]:
        """
        Check that the user is the ticket's applicant or a member of its company.

        Returns:
            (is_applicant, role in the ticket's company)
        """
        is_applicant = ticket.applicant_id == user_id
        role = await self.membership.resolve_role(
            user_id, ticket.company_id, session=session
        )
        if not is_applicant and not predicate(role):
            logger.warning(f"User {user_id} denied access to ticket {ticket.id}")
            raise Forbidden("You do not have access to this ticket")
        return is_applicant, role

    async def _last_messages(
        self, session: AsyncSession, ticket_ids: list[int]
    ) -> dict[int, CompanyTicketMessage]:
        if not ticket_ids:
            return {}

        ranked = (
            select(
                CompanyTicketMessage.id.label("message_id"),
                func.row_number()
                .over(
                    partition_by=CompanyTicketMessage.ticket_id,
                    order_by=(
                        CompanyTicketMessage.created_at.desc(),
                        CompanyTicketMessage.id.desc(),
                    ),
                )
                .label("position"),
            )
            .where(CompanyTicketMessage.ticket_id.in_(ticket_ids))
            .subquery()
        )
        result = await session.execute(
            select(CompanyTicketMessage)
            .options(selectinload(CompanyTicketMessage.sender))
            .join(ranked, ranked.c.message_id == CompanyTicketMessage.id)
            .where(ranked.c.position == 1)
        )
        return {m.ticket_id: m for m in result.scalars().all()}

    @staticmethod
    def _has_unread(
        ticket: CompanyTicket,
        last_message: Optional[CompanyTicketMessage],
        as_company: bool,
    ) -> bool:
        """Whether the other side spoke after this side last viewed the ticket."""
        if last_message is None:
            return False
        from_applicant = last_message.sender_id == ticket.applicant_id
        if as_company:
            if not from_applicant:
                return False
            last_viewed = ticket.company_last_viewed_at
        else:
            if from_applicant:
                return False
            last_viewed = ticket.applicant_last_viewed_at
        return last_viewed is None or last_message.created_at > last_viewed

    # ------------------------------------------------------------------ #
    # Notifications
    # ------------------------------------------------------------------ #

    async def _notify_owners(
        self,
        ticket_id: int,
        company: Company,
        applicant: User,
        title: str,
        content: str,
        is_reply: bool,
    ) -> None:
        """Email every owner of the company. Failures are logged and dropped."""
        try:
            members = await self.membership.list_members(
                company.id, role=CompanyRole.OWNER
            )
        except Exception:
            logger.warning(
                f"Could not load owners of company {company.id} for ticket {ticket_id}",
                exc_info=True,
            )
            return

        ticket_url = owner_ticket_url(ticket_id, company.slug)
        for member, user in members:
            if not receives_ticket_notifications(member.role) or not user.email:
                continue
            email = EmailTemplates.ticket_created_for_owner(
                owner_name=user.name,
                applicant_name=applicant.name,
                applicant_email=applicant.email,
                title=title,
                content=content,
                ticket_url=ticket_url,
                is_reply=is_reply,
            )
            try:
                self.notifier.notify_company_owner(
                    user.email, email["subject"], email["body"], email["html_body"]
                )
            except Exception:
                logger.warning(
                    f"Failed to notify owner {user.id} about ticket {ticket_id}",
                    exc_info=True,
                )

    def _notify_applicant(
        self, ticket_id: int, company: Company, applicant: User, title: str, content: str
    ) -> None:
        """Email the applicant about a company reply. Failures are logged and dropped."""
        if not applicant.email:
            return
        email = EmailTemplates.ticket_reply_for_applicant(
            company_name=company.name,
            title=title,
            content=content,
            ticket_url=applicant_ticket_url(ticket_id),
        )
        try:
            self.notifier.notify_ticket_applicant(
                applicant.email, email["subject"], email["body"], email["html_body"]
            )
        except Exception:
            logger.warning(
                f"Failed to notify applicant {applicant.id} about ticket {ticket_id}",
                exc_info=True,
            )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def create_ticket(
        self,
        user_id: int,
        company_id: int,
        title: str,
        content: str,
    ) -> dict[str, Any]:
        """
        Open a support ticket against a company.

        Checks, in order: company and user exist, caller is not a member of
        the company (the platform support company excepted), fewer than the
        allowed active tickets against this company, fewer than the allowed
        tickets in the trailing window. The quota checks are not atomic with
        the insert; concurrent creations may exceed a quota by one.

        Args:
            user_id: Applicant opening the ticket
            company_id: Target company
            title: Ticket title
            content: First message

        Returns:
            The ticket with its first message as ``last_message``

        Raises:
            NotFound: Company or user does not exist
            Forbidden: Caller is a member of the target company
            RateLimited: A ticket quota is exhausted
        """
        title = _check_length(title, "Title", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)
        content = _check_length(content, "Content", CONTENT_MIN_LENGTH, CONTENT_MAX_LENGTH)

        async with self.session_factory() as session:
            company = await session.get(Company, company_id)
            if company is None:
                raise NotFound("Company not found", code="COMPANY_NOT_FOUND")

            applicant = await session.get(User, user_id)
            if applicant is None:
                raise NotFound("User not found", code="USER_NOT_FOUND")

            role = await self.membership.resolve_role(user_id, company_id, session=session)
            is_support_company = (
                self.platform_support_company_id is not None
                and company_id == self.platform_support_company_id
            )
            if role is not None and not is_support_company:
                logger.warning(
                    f"User {user_id} tried to open a ticket against own company {company_id}"
                )
                raise Forbidden(
                    "You cannot open a ticket against your own company",
                    code="TICKET_SELF_TARGET",
                )

            now = self.clock()

            open_result = await session.execute(
                select(func.count(CompanyTicket.id)).where(
                    CompanyTicket.company_id == company_id,
                    CompanyTicket.applicant_id == user_id,
                    CompanyTicket.status.in_(ACTIVE_TICKET_STATUSES),
                )
            )
            if (open_result.scalar() or 0) >= self.max_open_tickets_per_company:
                logger.warning(
                    f"User {user_id} hit the open ticket limit for company {company_id}"
                )
                raise RateLimited(
                    "You already have too many open tickets with this company. "
                    "Wait for a reply or close an existing ticket first.",
                    code="TICKET_LIMIT_PER_COMPANY",
                )

            daily_result = await session.execute(
                select(func.count(CompanyTicket.id)).where(
                    CompanyTicket.applicant_id == user_id,
                    CompanyTicket.created_at >= now - self.rate_window,
                )
            )
            if (daily_result.scalar() or 0) >= self.max_tickets_per_day:
                logger.warning(f"User {user_id} hit the daily ticket limit")
                raise RateLimited(
                    "You have reached the ticket limit for the last 24 hours. "
                    "Please try again later.",
                    code="TICKET_DAILY_LIMIT",
                )

            first_message = CompanyTicketMessage(
                sender_id=user_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
            ticket = CompanyTicket(
                company_id=company_id,
                applicant_id=user_id,
                title=title,
                status=TicketStatus.OPEN,
                created_at=now,
                updated_at=now,
                messages=[first_message],
            )
            session.add(ticket)
            await session.commit()

            ticket = await self._get_ticket(session, ticket.id)
            last_messages = await self._last_messages(session, [ticket.id])
            data = serialize_ticket(ticket, last_message=last_messages.get(ticket.id))

        logger.info(f"User {user_id} opened ticket {ticket.id} with company {company_id}")

        await self._notify_owners(
            ticket.id, company, applicant, title, content, is_reply=False
        )
        return data

    async def list_tickets(
        self,
        user_id: int,
        company_id: Optional[int] = None,
        status: Optional[Union[str, TicketStatus]] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        List tickets, most recently active first.

        With ``company_id`` the caller must be a member of that company and
        sees all of its tickets; without it the caller sees the tickets they
        opened. The scope used is reported back.
        """
        paging = get_pagination_params(
            page, limit, self.list_page_size, self.list_max_page_size
        )
        status = _parse_status(status) if status is not None else None

        async with self.session_factory() as session:
            if company_id is not None:
                role = await self.membership.resolve_role(
                    user_id, company_id, session=session
                )
                ensure_permission(
                    role,
                    Permission.TICKET_READ,
                    user_id,
                    company_id,
                    message="You do not have access to this company's tickets",
                )
                scope = SCOPE_COMPANY
                conditions = [CompanyTicket.company_id == company_id]
            else:
                scope = SCOPE_APPLICANT
                conditions = [CompanyTicket.applicant_id == user_id]

            if status is not None:
                conditions.append(CompanyTicket.status == status)
            where = and_(*conditions)

            total_result = await session.execute(
                select(func.count(CompanyTicket.id)).where(where)
            )
            total = total_result.scalar() or 0

            result = await session.execute(
                select(CompanyTicket)
                .options(
                    selectinload(CompanyTicket.company),
                    selectinload(CompanyTicket.applicant),
                )
                .where(where)
                .order_by(CompanyTicket.updated_at.desc(), CompanyTicket.id.desc())
                .offset(paging["offset"])
                .limit(paging["limit"])
            )
            tickets = result.scalars().all()
            last_messages = await self._last_messages(session, [t.id for t in tickets])

            as_company = scope == SCOPE_COMPANY
            return {
                "tickets": [
                    serialize_ticket(
                        ticket,
                        last_message=last_messages.get(ticket.id),
                        has_unread=self._has_unread(
                            ticket, last_messages.get(ticket.id), as_company
                        ),
                    )
                    for ticket in tickets
                ],
                "pagination": pagination_meta(paging["page"], paging["limit"], total),
                "scope": scope,
            }

    async def get_messages(
        self,
        user_id: int,
        ticket_id: int,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Read a ticket's messages in chronological order.

        Records the read on the caller's side of the ticket.
        """
        paging = get_pagination_params(
            page, limit, self.messages_page_size, self.messages_max_page_size
        )

        async with self.session_factory() as session:
            ticket = await self._get_ticket(session, ticket_id)
            is_applicant, role = await self._ensure_access(session, user_id, ticket)

            total_result = await session.execute(
                select(func.count(CompanyTicketMessage.id)).where(
                    CompanyTicketMessage.ticket_id == ticket.id
                )
            )
            total = total_result.scalar() or 0

            result = await session.execute(
                select(CompanyTicketMessage)
                .options(selectinload(CompanyTicketMessage.sender))
                .where(CompanyTicketMessage.ticket_id == ticket.id)
                .order_by(CompanyTicketMessage.created_at.asc(), CompanyTicketMessage.id.asc())
                .offset(paging["offset"])
                .limit(paging["limit"])
            )
            messages = result.scalars().all()

            now = self.clock()
            if is_applicant:
                ticket.applicant_last_viewed_at = now
            else:
                ticket.company_last_viewed_at = now
            await session.commit()

            return {
                "ticket": serialize_ticket(ticket),
                "access_role": SCOPE_APPLICANT if is_applicant else role.value,
                "messages": [serialize_ticket_message(m) for m in messages],
                "pagination": pagination_meta(paging["page"], paging["limit"], total),
            }

    async def send_message(
        self, user_id: int, ticket_id: int, content: str
    ) -> dict[str, Any]:
        """
        Append a message to a ticket.

        An applicant message sets the ticket OPEN and notifies the company
        owners; a company message sets it RESPONDED and notifies the applicant.
        This applies to closed tickets too.
        """
        content = _check_length(content, "Content", 1, MESSAGE_MAX_LENGTH)

        async with self.session_factory() as session:
            ticket = await self._get_ticket(session, ticket_id)
            is_applicant, _ = await self._ensure_access(
                session, user_id, ticket, predicate=can_reply_to_ticket
            )

            now = self.clock()
            message = CompanyTicketMessage(
                ticket_id=ticket.id,
                sender_id=user_id,
                content=content,
                created_at=now,
                updated_at=now,
            )
            session.add(message)

            ticket.updated_at = now
            if is_applicant:
                ticket.status = TicketStatus.OPEN
                ticket.applicant_last_viewed_at = now
            else:
                ticket.status = TicketStatus.RESPONDED
                ticket.company_last_viewed_at = now
            await session.commit()

            result = await session.execute(
                select(CompanyTicketMessage)
                .options(selectinload(CompanyTicketMessage.sender))
                .where(CompanyTicketMessage.id == message.id)
                .execution_options(populate_existing=True)
            )
            data = serialize_ticket_message(result.scalar_one())

        logger.info(
            f"User {user_id} replied to ticket {ticket.id}, status now {ticket.status.value}"
        )

        if is_applicant:
            await self._notify_owners(
                ticket.id, ticket.company, ticket.applicant, ticket.title, content,
                is_reply=True,
            )
        else:
            self._notify_applicant(
                ticket.id, ticket.company, ticket.applicant, ticket.title, content
            )
        return data

    async def update_ticket_status(
        self,
        user_id: int,
        ticket_id: int,
        status: Union[str, TicketStatus],
    ) -> dict[str, Any]:
        """
        Set a ticket's status explicitly.

        The applicant may only close their ticket; company members may set
        any status.
        """
        status = _parse_status(status)

        async with self.session_factory() as session:
            ticket = await self._get_ticket(session, ticket_id)
            is_applicant, role = await self._ensure_access(session, user_id, ticket)

            applicant_closing = is_applicant and status == TicketStatus.CLOSED
            if not applicant_closing and not can_update_ticket_status(role):
                logger.warning(
                    f"User {user_id} may not set ticket {ticket.id} to {status.value}"
                )
                raise Forbidden("You do not have permission to change this ticket's status")

            ticket.status = status
            ticket.updated_at = self.clock()
            await session.commit()

            last_messages = await self._last_messages(session, [ticket.id])
            data = serialize_ticket(ticket, last_message=last_messages.get(ticket.id))

        logger.info(f"User {user_id} set ticket {ticket.id} to {status.value}")
        return data
