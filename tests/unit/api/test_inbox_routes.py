"""
Tests for the application conversation endpoints.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from api.dependencies import get_conversation_service
from api.main import app
from api.services.inbox import ConversationService
from core.exceptions import Forbidden, NotFound, ValidationFailed
from core.security import create_access_token
from database.models import MessageType

NOW = "2026-03-02T09:00:00+00:00"

USER = {"id": 3, "email": "ada@example.com", "name": "Ada", "avatar_url": None}
COMPANY = {"id": 2, "name": "Acme", "slug": "acme", "logo_url": None, "location": None}
JOB = {"id": 5, "title": "Platform Engineer", "company": COMPANY}
MESSAGE = {
    "id": 11,
    "application_id": 1,
    "sender_id": 3,
    "content": "Is the role remote?",
    "message_type": "TEXT",
    "file_url": None,
    "is_read": False,
    "created_at": NOW,
    "updated_at": NOW,
    "sender": USER,
}
PAGINATION = {"page": 1, "limit": 20, "total": 1, "total_pages": 1}


def auth_headers(user_id: int = 3) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def service():
    return AsyncMock(spec=ConversationService)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_conversation_service] = lambda: service
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestAuthentication:
    """Test bearer token handling."""

    def test_missing_token(self, client, service):
        response = client.get("/api/v1/inbox/conversations")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        service.list_conversations.assert_not_called()

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/inbox/conversations",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_non_numeric_subject(self, client):
        token = create_access_token("someone")
        response = client.get(
            "/api/v1/inbox/conversations",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


class TestSendMessage:
    """Test POST /api/v1/inbox/messages."""

    def test_send_message(self, client, service):
        service.send_message.return_value = {
            **MESSAGE,
            "application": {
                "id": 1,
                "status": "PENDING",
                "applied_at": NOW,
                "job": JOB,
                "applicant": USER,
            },
        }

        response = client.post(
            "/api/v1/inbox/messages",
            json={"application_id": 1, "content": "  Is the role remote?  "},
            headers=auth_headers(),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == 11
        assert data["application"]["job"]["company"]["slug"] == "acme"
        service.send_message.assert_awaited_once_with(
            3, 1, "Is the role remote?", message_type=MessageType.TEXT, file_url=None
        )

    @pytest.mark.parametrize("payload", [
        {"application_id": 1, "content": ""},
        {"application_id": 0, "content": "Hi"},
        {"application_id": 1, "content": "x" * 2001},
        {"application_id": 1, "content": "Hi", "message_type": "VIDEO"},
    ])
    def test_invalid_payload(self, client, service, payload):
        response = client.post(
            "/api/v1/inbox/messages", json=payload, headers=auth_headers()
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        service.send_message.assert_not_called()

    def test_forbidden(self, client, service):
        service.send_message.side_effect = Forbidden(
            "You do not have permission to access this conversation"
        )

        response = client.post(
            "/api/v1/inbox/messages",
            json={"application_id": 1, "content": "Hi"},
            headers=auth_headers(9),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestReadEndpoints:
    """Test listing and read tracking."""

    def test_list_messages(self, client, service):
        service.list_messages.return_value = {
            "messages": [MESSAGE], "pagination": PAGINATION,
        }

        response = client.get(
            "/api/v1/inbox/applications/1/messages?page=2&limit=5",
            headers=auth_headers(),
        )

        assert response.status_code == 200
        assert response.json()["messages"][0]["content"] == "Is the role remote?"
        service.list_messages.assert_awaited_once_with(3, 1, page=2, limit=5)

    def test_list_messages_not_found(self, client, service):
        service.list_messages.side_effect = NotFound(
            "Application not found", code="APPLICATION_NOT_FOUND"
        )

        response = client.get(
            "/api/v1/inbox/applications/99/messages", headers=auth_headers()
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "APPLICATION_NOT_FOUND"

    def test_page_must_be_positive(self, client, service):
        response = client.get(
            "/api/v1/inbox/conversations?page=0", headers=auth_headers()
        )
        assert response.status_code == 422

    def test_list_conversations(self, client, service):
        service.list_conversations.return_value = {
            "conversations": [{
                "id": 1,
                "application_id": 1,
                "last_message": MESSAGE,
                "unread_count": 1,
                "job": JOB,
                "applicant": USER,
                "application": {"id": 1, "status": "PENDING", "applied_at": NOW},
            }],
            "pagination": PAGINATION,
        }

        response = client.get("/api/v1/inbox/conversations", headers=auth_headers(4))

        assert response.status_code == 200
        assert response.json()["conversations"][0]["unread_count"] == 1
        service.list_conversations.assert_awaited_once_with(4, page=1, limit=None)

    def test_mark_message_read(self, client, service):
        service.mark_message_read.return_value = {"message_id": 11, "updated": True}

        response = client.patch("/api/v1/inbox/messages/11/read", headers=auth_headers(4))

        assert response.status_code == 200
        assert response.json() == {"message_id": 11, "updated": True}
        service.mark_message_read.assert_awaited_once_with(4, 11)

    def test_mark_conversation_read(self, client, service):
        service.mark_conversation_read.return_value = {"application_id": 1, "updated": 2}

        response = client.patch(
            "/api/v1/inbox/applications/1/read", headers=auth_headers(4)
        )

        assert response.status_code == 200
        assert response.json()["updated"] == 2

    def test_unread_count(self, client, service):
        service.get_unread_count.return_value = {"unread_count": 3}

        response = client.get(
            "/api/v1/inbox/unread-count?application_id=1", headers=auth_headers()
        )

        assert response.status_code == 200
        assert response.json() == {"unread_count": 3}
        service.get_unread_count.assert_awaited_once_with(3, application_id=1)

    def test_service_validation_error(self, client, service):
        service.list_conversations.side_effect = ValidationFailed(
            "Limit must be >= 1", code="INVALID_LIMIT"
        )

        response = client.get("/api/v1/inbox/conversations", headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_LIMIT"
