"""
Application conversations.

Every job application carries exactly one conversation between the applicant
and the members of the hiring company. Conversations are computed from the
applications and messages tables; unread counts are always recomputed from
the ``is_read`` flags and are specific to the viewer.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Union
import logging

from sqlalchemy import select, update, func, or_, and_
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.services.membership import MembershipResolver
from api.services.pagination import get_pagination_params, pagination_meta
from api.services.serializers import (
    serialize_user,
    serialize_job,
    serialize_message,
)
from core.exceptions import NotFound, Forbidden, ValidationFailed
from core.middleware.authorization import (
    can_access_company_conversations,
    can_message_as_company,
)
from database.engine import utc_now
from database.models.applications import Application, Message, MessageType
from database.models.jobs import Job
from database.models.organizations import CompanyRole

logger = logging.getLogger(__name__)

APPLICANT = "applicant"


class ConversationService:
    """Send, list and read-track messages on application conversations."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        membership: MembershipResolver,
        clock: Callable[[], datetime] = utc_now,
        default_page_size: int = 20,
        max_page_size: int = 50,
    ):
        self.session_factory = session_factory
        self.membership = membership
        self.clock = clock
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # ------------------------------------------------------------------ #
    # Access checks
    # ------------------------------------------------------------------ #

    async def _get_application(
        self, session: AsyncSession, application_id: int
    ) -> Application:
        result = await session.execute(
            select(Application)
            .options(
                selectinload(Application.job).selectinload(Job.company),
                selectinload(Application.user),
            )
            .where(Application.id == application_id)
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFound("Application not found", code="APPLICATION_NOT_FOUND")
        return application

    async def _authorize(
        self,
        session: AsyncSession,
        user_id: int,
        application: Application,
        predicate: Callable[[Optional[CompanyRole]], bool] = can_access_company_conversations,
    ) -> Union[str, CompanyRole]:
        """
        Check that the user is a party to the application's conversation.

        Returns:
            "applicant", or the caller's role in the hiring company

        Raises:
            Forbidden: If the user is neither the applicant nor a company member
        """
        if application.user_id == user_id:
            return APPLICANT

        role = await self.membership.resolve_role(
            user_id, application.job.company_id, session=session
        )
        if not predicate(role):
            logger.warning(
                f"User {user_id} denied access to conversation {application.id}"
            )
            raise Forbidden(
                "You do not have permission to access this conversation"
            )
        return role

    def _visible_to(self, user_id: int):
        """Applications whose conversation the user is a party to."""
        return or_(
            Application.user_id == user_id,
            self.membership.is_member_clause(user_id, Job.company_id),
        )

    @staticmethod
    def _unread_from_others(user_id: int):
        return and_(Message.is_read.is_(False), Message.sender_id != user_id)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def send_message(
        self,
        user_id: int,
        application_id: int,
        content: str,
        message_type: Union[str, MessageType] = MessageType.TEXT,
        file_url: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Post a message to an application conversation.

        Args:
            user_id: Authenticated sender
            application_id: Application the conversation belongs to
            content: Message text
            message_type: TEXT, FILE or IMAGE
            file_url: Attachment location for FILE and IMAGE messages

        Returns:
            The stored message with sender and application context
        """
        content = (content or "").strip()
        if not content:
            raise ValidationFailed("Message content is required")
        try:
            message_type = MessageType(message_type)
        except ValueError:
            raise ValidationFailed(f"Invalid message type: {message_type}")

        async with self.session_factory() as session:
            application = await self._get_application(session, application_id)
            await self._authorize(
                session, user_id, application, predicate=can_message_as_company
            )

            now = self.clock()
            message = Message(
                application_id=application.id,
                sender_id=user_id,
                content=content,
                message_type=message_type,
                file_url=file_url,
                is_read=False,
                created_at=now,
                updated_at=now,
            )
            session.add(message)
            await session.commit()

            result = await session.execute(
                select(Message)
                .options(selectinload(Message.sender))
                .where(Message.id == message.id)
                .execution_options(populate_existing=True)
            )
            message = result.scalar_one()

            logger.info(
                f"User {user_id} sent message {message.id} on application {application.id}"
            )

            data = serialize_message(message)
            data["application"] = {
                "id": application.id,
                "status": application.status.value,
                "applied_at": application.applied_at,
                "job": serialize_job(application.job),
                "applicant": serialize_user(application.user),
            }
            return data

    async def list_messages(
        self,
        user_id: int,
        application_id: int,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        List messages in a conversation, newest first.
        """
        paging = get_pagination_params(
            page, limit, self.default_page_size, self.max_page_size
        )

        async with self.session_factory() as session:
            application = await self._get_application(session, application_id)
            await self._authorize(session, user_id, application)

            total_result = await session.execute(
                select(func.count(Message.id)).where(
                    Message.application_id == application.id
                )
            )
            total = total_result.scalar() or 0

            result = await session.execute(
                select(Message)
                .options(selectinload(Message.sender))
                .where(Message.application_id == application.id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .offset(paging["offset"])
                .limit(paging["limit"])
            )
            messages = result.scalars().all()

            return {
                "messages": [serialize_message(m) for m in messages],
                "pagination": pagination_meta(paging["page"], paging["limit"], total),
            }

    async def list_conversations(
        self,
        user_id: int,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        List every conversation the user is a party to, most recent application first.

        Each conversation carries its last message and the unread count for
        this viewer only.
        """
        paging = get_pagination_params(
            page, limit, self.default_page_size, self.max_page_size
        )
        visible = self._visible_to(user_id)

        async with self.session_factory() as session:
            total_result = await session.execute(
                select(func.count(Application.id))
                .join(Job, Job.id == Application.job_id)
                .where(visible)
            )
            total = total_result.scalar() or 0

            result = await session.execute(
                select(Application)
                .join(Job, Job.id == Application.job_id)
                .options(
                    selectinload(Application.job).selectinload(Job.company),
                    selectinload(Application.user),
                )
                .where(visible)
                .order_by(Application.applied_at.desc(), Application.id.desc())
                .offset(paging["offset"])
                .limit(paging["limit"])
            )
            applications = result.scalars().all()
            application_ids = [a.id for a in applications]

            last_messages = await self._last_messages(session, application_ids)
            unread_counts = await self._unread_counts(session, user_id, application_ids)

            conversations = []
            for application in applications:
                last_message = last_messages.get(application.id)
                conversations.append({
                    "id": application.id,
                    "application_id": application.id,
                    "last_message": (
                        serialize_message(last_message) if last_message else None
                    ),
                    "unread_count": unread_counts.get(application.id, 0),
                    "job": serialize_job(application.job),
                    "applicant": serialize_user(application.user),
                    "application": {
                        "id": application.id,
                        "status": application.status.value,
                        "applied_at": application.applied_at,
                    },
                })

            return {
                "conversations": conversations,
                "pagination": pagination_meta(paging["page"], paging["limit"], total),
            }

    async def _last_messages(
        self, session: AsyncSession, application_ids: list[int]
    ) -> dict[int, Message]:
        """Most recent message per application; ties on created_at go to the later insert."""
        if not application_ids:
            return {}

        ranked = (
            select(
                Message.id.label("message_id"),
                func.row_number()
                .over(
                    partition_by=Message.application_id,
                    order_by=(Message.created_at.desc(), Message.id.desc()),
                )
                .label("position"),
            )
            .where(Message.application_id.in_(application_ids))
            .subquery()
        )
        result = await session.execute(
            select(Message)
            .options(selectinload(Message.sender))
            .join(ranked, ranked.c.message_id == Message.id)
            .where(ranked.c.position == 1)
        )
        return {m.application_id: m for m in result.scalars().all()}

    async def _unread_counts(
        self, session: AsyncSession, user_id: int, application_ids: list[int]
    ) -> dict[int, int]:
        if not application_ids:
            return {}

        result = await session.execute(
            select(Message.application_id, func.count(Message.id))
            .where(
                Message.application_id.in_(application_ids),
                self._unread_from_others(user_id),
            )
            .group_by(Message.application_id)
        )
        return {application_id: count for application_id, count in result.all()}

    async def mark_message_read(self, user_id: int, message_id: int) -> dict[str, Any]:
        """
        Mark one message as read.

        Messages sent by the caller are never flipped; re-marking a read
        message is a no-op.
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(Message).where(Message.id == message_id)
            )
            message = result.scalar_one_or_none()
            if message is None:
                raise NotFound("Message not found", code="MESSAGE_NOT_FOUND")

            application = await self._get_application(session, message.application_id)
            await self._authorize(session, user_id, application)

            result = await session.execute(
                update(Message)
                .where(
                    Message.id == message_id,
                    self._unread_from_others(user_id),
                )
                .values(is_read=True, updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            await session.commit()

            return {"message_id": message_id, "updated": result.rowcount > 0}

    async def mark_conversation_read(
        self, user_id: int, application_id: int
    ) -> dict[str, Any]:
        """
        Mark every message from the other party in a conversation as read.

        Returns:
            Number of messages flipped; 0 on a repeat call
        """
        async with self.session_factory() as session:
            application = await self._get_application(session, application_id)
            await self._authorize(session, user_id, application)

            result = await session.execute(
                update(Message)
                .where(
                    Message.application_id == application.id,
                    self._unread_from_others(user_id),
                )
                .values(is_read=True, updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            await session.commit()

            logger.info(
                f"User {user_id} marked {result.rowcount} messages read "
                f"on application {application.id}"
            )
            return {"application_id": application.id, "updated": result.rowcount}

    async def get_unread_count(
        self, user_id: int, application_id: Optional[int] = None
    ) -> dict[str, int]:
        """
        Count unread messages from others for one conversation, or across all of them.
        """
        async with self.session_factory() as session:
            if application_id is not None:
                application = await self._get_application(session, application_id)
                await self._authorize(session, user_id, application)
                application_ids = [application.id]
            else:
                result = await session.execute(
                    select(Application.id)
                    .join(Job, Job.id == Application.job_id)
                    .where(self._visible_to(user_id))
                )
                application_ids = list(result.scalars().all())

            if not application_ids:
                return {"unread_count": 0}

            result = await session.execute(
                select(func.count(Message.id)).where(
                    Message.application_id.in_(application_ids),
                    self._unread_from_others(user_id),
                )
            )
            return {"unread_count": result.scalar() or 0}
