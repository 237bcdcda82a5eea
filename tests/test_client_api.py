# tests/test_client_api.py
"""Tests for the messaging HTTP client."""

import httpx
import pytest

from bhromonbondhu.client import (
    MessagingApi,
    MessagingClientError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    UserSession,
    ValidationError,
)
from bhromonbondhu.core.security import create_access_token


def _transport_client(handler) -> httpx.Client:
    return httpx.Client(base_url="http://test/api", transport=httpx.MockTransport(handler))


def test_list_conversations(traveler_api, conversation, second_conversation) -> None:
    conversations = traveler_api.list_conversations()
    assert {c.id for c in conversations} == {conversation.id, second_conversation.id}
    assert {c.counterpart_name for c in conversations} == {"Karim Ahmed", "Riya Rahman"}


def test_send_and_fetch_messages(traveler_api, host_api, conversation, host) -> None:
    sent = traveler_api.send_message(conversation.id, "Is breakfast included?")
    assert sent.message.content == "Is breakfast included?"
    assert sent.conversation.counterpart_id == host.id

    page = host_api.get_messages(conversation.id)
    assert [m.content for m in page.messages] == ["Is breakfast included?"]
    assert page.has_more is False
    assert page.next_cursor is None
    assert page.conversation.unread == 0


def test_get_messages_pages_with_cursor(traveler_api, host_api, conversation) -> None:
    for i in range(3):
        traveler_api.send_message(conversation.id, f"message {i}")

    latest = host_api.get_messages(conversation.id, limit=2)
    assert [m.content for m in latest.messages] == ["message 1", "message 2"]
    assert latest.has_more is True

    older = host_api.get_messages(conversation.id, before=latest.next_cursor, limit=2)
    assert [m.content for m in older.messages] == ["message 0"]
    assert older.has_more is False


def test_start_conversation(traveler_api, second_host) -> None:
    result = traveler_api.start_conversation(second_host.id, "Hello Riya")
    assert result.conversation.host_id == second_host.id
    assert [c.id for c in traveler_api.list_conversations()] == [result.conversation.id]


def test_send_payment_and_mark_read(traveler_api, host_api, conversation) -> None:
    result = traveler_api.send_payment(conversation.id, 1200, "one night")
    assert result.message.type == "payment"
    assert result.message.amount == 1200.0

    assert host_api.mark_read(conversation.id) == 1
    assert host_api.mark_read(conversation.id) == 0


@pytest.mark.parametrize("content", ["", "   "])
def test_blank_message_never_reaches_server(traveler, content) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"success": True})

    api = MessagingApi(
        UserSession(token="unused", user_id=traveler.id),
        http_client=_transport_client(handler),
    )
    with pytest.raises(ValidationError):
        api.send_message(1, content)
    with pytest.raises(ValidationError):
        api.start_conversation(2, content)
    assert calls == []


@pytest.mark.parametrize("amount", [0, -10, float("nan"), float("inf")])
def test_invalid_payment_rejected_locally(traveler_api, conversation, amount) -> None:
    with pytest.raises(ValidationError, match="valid amount"):
        traveler_api.send_payment(conversation.id, amount)


def test_not_participant_maps_to_not_found(api_http, outsider, conversation) -> None:
    api = MessagingApi(
        UserSession(token=create_access_token(outsider.id), user_id=outsider.id),
        http_client=api_http,
    )
    with pytest.raises(NotFoundError) as exc_info:
        api.get_messages(conversation.id)
    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "Conversation not found"


def test_bad_token_maps_to_unauthorized(api_http, traveler) -> None:
    api = MessagingApi(UserSession(token="garbage", user_id=traveler.id), http_client=api_http)
    with pytest.raises(UnauthorizedError) as exc_info:
        api.list_conversations()
    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Invalid token"


def test_server_validation_maps_to_validation_error(traveler_api, conversation) -> None:
    with pytest.raises(ValidationError) as exc_info:
        traveler_api.get_messages(conversation.id, limit=0)
    assert exc_info.value.status_code == 400


def test_update_session_switches_identity(traveler_api, outsider, conversation) -> None:
    assert len(traveler_api.list_conversations()) == 1

    traveler_api.update_session(
        UserSession(token=create_access_token(outsider.id), user_id=outsider.id)
    )
    assert traveler_api.session.user_id == outsider.id
    assert traveler_api.list_conversations() == []


def test_transport_failure_raises_network_error(traveler) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = MessagingApi(
        UserSession(token="t", user_id=traveler.id),
        http_client=_transport_client(handler),
    )
    with pytest.raises(NetworkError) as exc_info:
        api.list_conversations()
    assert exc_info.value.status_code is None


def test_unexpected_status_is_generic_error(traveler) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"success": False, "message": "Down for maintenance"})

    api = MessagingApi(
        UserSession(token="t", user_id=traveler.id),
        http_client=_transport_client(handler),
    )
    with pytest.raises(MessagingClientError) as exc_info:
        api.list_conversations()
    assert exc_info.value.status_code == 503
    assert "Down for maintenance" in str(exc_info.value)
    assert not isinstance(exc_info.value, (NetworkError, NotFoundError, ValidationError))


def test_auth_header_is_sent(traveler) -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"success": True, "conversations": []})

    session = UserSession(token="abc123", user_id=traveler.id)
    with MessagingApi(session, http_client=_transport_client(handler)) as api:
        assert api.list_conversations() == []

    assert seen == {"auth": "Bearer abc123", "path": "/api/messages/conversations"}
