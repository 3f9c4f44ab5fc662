"""
Unit tests for application conversations.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from core.exceptions import Forbidden, NotFound, ValidationFailed
from database.models import CompanyRole, MessageType


@pytest_asyncio.fixture
async def hiring(seed):
    """Applicant with one application to a company that has a recruiter."""
    applicant = await seed.user(name="Ada Applicant")
    recruiter = await seed.user(name="Rita Recruiter")
    outsider = await seed.user(name="Otto Outsider")
    company = await seed.company(name="Acme")
    await seed.member(recruiter, company, CompanyRole.MEMBER)
    job = await seed.job(company, title="Platform Engineer")
    application = await seed.application(applicant, job)
    return {
        "applicant": applicant,
        "recruiter": recruiter,
        "outsider": outsider,
        "company": company,
        "job": job,
        "application": application,
    }


class TestSendMessage:
    """Test posting to a conversation."""

    @pytest.mark.asyncio
    async def test_applicant_sends_message(self, conversation_service, hiring):
        """Test the stored message carries sender and application context."""
        result = await conversation_service.send_message(
            hiring["applicant"].id, hiring["application"].id, "  Hello there  "
        )

        assert result["content"] == "Hello there"
        assert result["is_read"] is False
        assert result["message_type"] == "TEXT"
        assert result["sender_id"] == hiring["applicant"].id
        assert result["sender"]["name"] == "Ada Applicant"
        assert result["application"]["id"] == hiring["application"].id
        assert result["application"]["status"] == "PENDING"
        assert result["application"]["job"]["title"] == "Platform Engineer"
        assert result["application"]["job"]["company"]["name"] == "Acme"
        assert result["application"]["applicant"]["id"] == hiring["applicant"].id

    @pytest.mark.asyncio
    async def test_company_member_sends_message(self, conversation_service, hiring):
        result = await conversation_service.send_message(
            hiring["recruiter"].id, hiring["application"].id, "Thanks for applying"
        )
        assert result["sender_id"] == hiring["recruiter"].id

    @pytest.mark.asyncio
    async def test_file_message(self, conversation_service, hiring):
        result = await conversation_service.send_message(
            hiring["applicant"].id,
            hiring["application"].id,
            "My portfolio",
            message_type=MessageType.FILE,
            file_url="https://files.example.com/portfolio.pdf",
        )
        assert result["message_type"] == "FILE"
        assert result["file_url"] == "https://files.example.com/portfolio.pdf"

    @pytest.mark.asyncio
    async def test_outsider_is_forbidden(self, conversation_service, hiring):
        with pytest.raises(Forbidden):
            await conversation_service.send_message(
                hiring["outsider"].id, hiring["application"].id, "Hi"
            )

    @pytest.mark.asyncio
    async def test_member_of_another_company_is_forbidden(
        self, conversation_service, hiring, seed
    ):
        other_company = await seed.company()
        await seed.member(hiring["outsider"], other_company, CompanyRole.OWNER)

        with pytest.raises(Forbidden):
            await conversation_service.send_message(
                hiring["outsider"].id, hiring["application"].id, "Hi"
            )

    @pytest.mark.asyncio
    async def test_unknown_application(self, conversation_service, hiring):
        with pytest.raises(NotFound) as exc_info:
            await conversation_service.send_message(hiring["applicant"].id, 9999, "Hi")
        assert exc_info.value.code == "APPLICATION_NOT_FOUND"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", None])
    async def test_empty_content_rejected(self, conversation_service, hiring, content):
        with pytest.raises(ValidationFailed):
            await conversation_service.send_message(
                hiring["applicant"].id, hiring["application"].id, content
            )

    @pytest.mark.asyncio
    async def test_invalid_message_type_rejected(self, conversation_service, hiring):
        with pytest.raises(ValidationFailed):
            await conversation_service.send_message(
                hiring["applicant"].id,
                hiring["application"].id,
                "Hi",
                message_type="VIDEO",
            )


class TestListMessages:
    """Test reading a conversation."""

    @pytest.mark.asyncio
    async def test_newest_first(self, conversation_service, hiring):
        app_id = hiring["application"].id
        for text in ("first", "second", "third"):
            await conversation_service.send_message(hiring["applicant"].id, app_id, text)

        result = await conversation_service.list_messages(hiring["recruiter"].id, app_id)

        assert [m["content"] for m in result["messages"]] == ["third", "second", "first"]
        assert result["pagination"] == {
            "page": 1, "limit": 20, "total": 3, "total_pages": 1,
        }

    @pytest.mark.asyncio
    async def test_equal_timestamps_ordered_by_insertion(
        self, conversation_service, hiring, clock
    ):
        clock.tick = timedelta(0)
        app_id = hiring["application"].id
        await conversation_service.send_message(hiring["applicant"].id, app_id, "one")
        await conversation_service.send_message(hiring["recruiter"].id, app_id, "two")

        result = await conversation_service.list_messages(hiring["applicant"].id, app_id)

        assert [m["content"] for m in result["messages"]] == ["two", "one"]

    @pytest.mark.asyncio
    async def test_pagination(self, conversation_service, hiring):
        app_id = hiring["application"].id
        for i in range(5):
            await conversation_service.send_message(hiring["applicant"].id, app_id, f"m{i}")

        result = await conversation_service.list_messages(
            hiring["applicant"].id, app_id, page=2, limit=2
        )

        assert [m["content"] for m in result["messages"]] == ["m2", "m1"]
        assert result["pagination"]["total_pages"] == 3

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, conversation_service, hiring):
        result = await conversation_service.list_messages(
            hiring["applicant"].id, hiring["application"].id, limit=500
        )
        assert result["pagination"]["limit"] == 50

    @pytest.mark.asyncio
    async def test_invalid_page_rejected(self, conversation_service, hiring):
        with pytest.raises(ValidationFailed):
            await conversation_service.list_messages(
                hiring["applicant"].id, hiring["application"].id, page=0
            )

    @pytest.mark.asyncio
    async def test_outsider_is_forbidden(self, conversation_service, hiring):
        with pytest.raises(Forbidden):
            await conversation_service.list_messages(
                hiring["outsider"].id, hiring["application"].id
            )


class TestConversations:
    """Test the conversation inbox and per-viewer unread counts."""

    @pytest.mark.asyncio
    async def test_unread_counts_are_per_viewer(self, conversation_service, hiring):
        """Applicant writes, recruiter reads, recruiter replies."""
        applicant_id = hiring["applicant"].id
        recruiter_id = hiring["recruiter"].id
        app_id = hiring["application"].id

        sent = await conversation_service.send_message(
            applicant_id, app_id, "Is the role remote?"
        )

        recruiter_view = await conversation_service.list_conversations(recruiter_id)
        conversation = recruiter_view["conversations"][0]
        assert conversation["application_id"] == app_id
        assert conversation["unread_count"] == 1
        assert conversation["last_message"]["id"] == sent["id"]

        applicant_view = await conversation_service.list_conversations(applicant_id)
        assert applicant_view["conversations"][0]["unread_count"] == 0

        marked = await conversation_service.mark_conversation_read(recruiter_id, app_id)
        assert marked == {"application_id": app_id, "updated": 1}

        recruiter_view = await conversation_service.list_conversations(recruiter_id)
        assert recruiter_view["conversations"][0]["unread_count"] == 0

        reply = await conversation_service.send_message(recruiter_id, app_id, "Yes, fully")

        applicant_view = await conversation_service.list_conversations(applicant_id)
        assert applicant_view["conversations"][0]["unread_count"] == 1
        assert applicant_view["conversations"][0]["last_message"]["id"] == reply["id"]

        recruiter_view = await conversation_service.list_conversations(recruiter_id)
        assert recruiter_view["conversations"][0]["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_conversation_context(self, conversation_service, hiring):
        result = await conversation_service.list_conversations(hiring["applicant"].id)

        conversation = result["conversations"][0]
        assert conversation["last_message"] is None
        assert conversation["unread_count"] == 0
        assert conversation["job"]["company"]["slug"] == hiring["company"].slug
        assert conversation["applicant"]["email"] == hiring["applicant"].email
        assert conversation["application"]["status"] == "PENDING"

    @pytest.mark.asyncio
    async def test_outsider_sees_nothing(self, conversation_service, hiring):
        result = await conversation_service.list_conversations(hiring["outsider"].id)

        assert result["conversations"] == []
        assert result["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_most_recent_application_first(self, conversation_service, hiring, seed):
        second_job = await seed.job(hiring["company"], title="Data Engineer")
        later = await seed.application(
            hiring["applicant"],
            second_job,
            applied_at=datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc),
        )

        result = await conversation_service.list_conversations(hiring["recruiter"].id)

        assert [c["application_id"] for c in result["conversations"]] == [
            later.id,
            hiring["application"].id,
        ]

    @pytest.mark.asyncio
    async def test_last_message_tie_goes_to_later_insert(
        self, conversation_service, hiring, clock
    ):
        clock.tick = timedelta(0)
        app_id = hiring["application"].id
        await conversation_service.send_message(hiring["applicant"].id, app_id, "one")
        second = await conversation_service.send_message(hiring["recruiter"].id, app_id, "two")

        result = await conversation_service.list_conversations(hiring["applicant"].id)

        assert result["conversations"][0]["last_message"]["id"] == second["id"]


class TestReadTracking:
    """Test marking messages read."""

    @pytest.mark.asyncio
    async def test_mark_message_read(self, conversation_service, hiring):
        sent = await conversation_service.send_message(
            hiring["applicant"].id, hiring["application"].id, "Hello"
        )

        first = await conversation_service.mark_message_read(
            hiring["recruiter"].id, sent["id"]
        )
        second = await conversation_service.mark_message_read(
            hiring["recruiter"].id, sent["id"]
        )

        assert first == {"message_id": sent["id"], "updated": True}
        assert second == {"message_id": sent["id"], "updated": False}

    @pytest.mark.asyncio
    async def test_own_message_never_marked(self, conversation_service, hiring):
        sent = await conversation_service.send_message(
            hiring["applicant"].id, hiring["application"].id, "Hello"
        )

        result = await conversation_service.mark_message_read(
            hiring["applicant"].id, sent["id"]
        )
        assert result["updated"] is False

        unread = await conversation_service.get_unread_count(hiring["recruiter"].id)
        assert unread == {"unread_count": 1}

    @pytest.mark.asyncio
    async def test_mark_conversation_read_skips_own_messages(
        self, conversation_service, hiring
    ):
        app_id = hiring["application"].id
        await conversation_service.send_message(hiring["applicant"].id, app_id, "a")
        await conversation_service.send_message(hiring["recruiter"].id, app_id, "b")
        await conversation_service.send_message(hiring["applicant"].id, app_id, "c")

        result = await conversation_service.mark_conversation_read(
            hiring["recruiter"].id, app_id
        )
        assert result["updated"] == 2

        repeat = await conversation_service.mark_conversation_read(
            hiring["recruiter"].id, app_id
        )
        assert repeat["updated"] == 0

        listing = await conversation_service.list_messages(hiring["applicant"].id, app_id)
        read_flags = {m["content"]: m["is_read"] for m in listing["messages"]}
        assert read_flags == {"a": True, "b": False, "c": True}

    @pytest.mark.asyncio
    async def test_unknown_message(self, conversation_service, hiring):
        with pytest.raises(NotFound) as exc_info:
            await conversation_service.mark_message_read(hiring["applicant"].id, 12345)
        assert exc_info.value.code == "MESSAGE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_outsider_cannot_mark_read(self, conversation_service, hiring):
        sent = await conversation_service.send_message(
            hiring["applicant"].id, hiring["application"].id, "Hello"
        )
        with pytest.raises(Forbidden):
            await conversation_service.mark_message_read(hiring["outsider"].id, sent["id"])


class TestUnreadCount:
    """Test unread totals."""

    @pytest.mark.asyncio
    async def test_total_across_conversations(self, conversation_service, hiring, seed):
        other_applicant = await seed.user()
        other_application = await seed.application(other_applicant, hiring["job"])

        await conversation_service.send_message(
            hiring["applicant"].id, hiring["application"].id, "one"
        )
        await conversation_service.send_message(
            other_applicant.id, other_application.id, "two"
        )
        await conversation_service.send_message(
            other_applicant.id, other_application.id, "three"
        )

        total = await conversation_service.get_unread_count(hiring["recruiter"].id)
        single = await conversation_service.get_unread_count(
            hiring["recruiter"].id, application_id=other_application.id
        )

        assert total == {"unread_count": 3}
        assert single == {"unread_count": 2}

    @pytest.mark.asyncio
    async def test_no_conversations(self, conversation_service, hiring):
        result = await conversation_service.get_unread_count(hiring["outsider"].id)
        assert result == {"unread_count": 0}

    @pytest.mark.asyncio
    async def test_single_conversation_requires_access(self, conversation_service, hiring):
        with pytest.raises(Forbidden):
            await conversation_service.get_unread_count(
                hiring["outsider"].id, application_id=hiring["application"].id
            )
