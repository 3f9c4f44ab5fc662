"""Shared fixtures and utilities for tests."""

import os

# Settings are read at import time, so the environment must be set first
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("FRONTEND_ORIGIN", "https://jobs.example.com")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import Mock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from api.services.inbox import ConversationService
from api.services.membership import MembershipResolver
from api.services.tickets import TicketService
from database.engine import Base
from database.models import (
    Application,
    Company,
    CompanyMember,
    CompanyRole,
    Job,
    User,
)


class FrozenClock:
    """Controllable clock. Each reading advances time by ``tick``."""

    def __init__(
        self,
        start: datetime = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        tick: timedelta = timedelta(seconds=1),
    ):
        self.now = start
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.tick
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class Seeder:
    """Inserts the read-model rows the services depend on."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _add(self, obj):
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def user(self, name: Optional[str] = None, email: Optional[str] = None) -> User:
        n = self._next()
        return await self._add(
            User(email=email or f"user{n}@example.com", name=name)
        )

    async def company(self, name: Optional[str] = None) -> Company:
        n = self._next()
        return await self._add(
            Company(name=name or f"Company {n}", slug=f"company-{n}")
        )

    async def member(
        self, user: User, company: Company, role: CompanyRole = CompanyRole.MEMBER
    ) -> CompanyMember:
        return await self._add(
            CompanyMember(user_id=user.id, company_id=company.id, role=role)
        )

    async def job(self, company: Company, title: str = "Backend Engineer") -> Job:
        return await self._add(Job(company_id=company.id, title=title))

    async def application(
        self, applicant: User, job: Job, applied_at: Optional[datetime] = None
    ) -> Application:
        applied_at = applied_at or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        return await self._add(
            Application(
                user_id=applicant.id,
                job_id=job.id,
                applied_at=applied_at,
                updated_at=applied_at,
            )
        )


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def membership(session_factory):
    return MembershipResolver(session_factory)


@pytest.fixture
def notifier():
    """Notification dispatcher double."""
    return Mock(spec=["notify_company_owner", "notify_ticket_applicant"])


@pytest.fixture
def conversation_service(session_factory, membership, clock):
    return ConversationService(session_factory, membership, clock=clock)


@pytest.fixture
def ticket_service(session_factory, membership, notifier, clock):
    return TicketService(session_factory, membership, notifier, clock=clock)
