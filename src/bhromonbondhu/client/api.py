"""HTTP client for the messaging API.

The client is built around an explicit :class:`UserSession`; nothing is read
from global state. Each call is a single request: there is no retry policy,
and no timeout unless ``CLIENT_TIMEOUT_SECONDS`` is set.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from bhromonbondhu.core.settings import settings
from bhromonbondhu.schemas.messaging import (
    ConversationListResponse,
    ConversationSummary,
    MarkReadResponse,
    MessageListResponse,
    MessageOut,
    SendMessageResponse,
)

from .errors import (
    MessagingClientError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .session import UserSession

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE_ENTITY = 422


@dataclass(frozen=True)
class MessagesPage:
    """Messages of one conversation, oldest first, with the paging cursor."""

    conversation: ConversationSummary
    messages: list[MessageOut]
    has_more: bool
    next_cursor: int | None


class MessagingApi:
    """Synchronous wrapper around the ``/messages`` endpoints."""

    def __init__(
        self,
        session: UserSession,
        *,
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._session = session
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(
                base_url=base_url or settings.api_base_url,
                timeout=httpx.Timeout(settings.client_timeout_seconds),
                headers={"Content-Type": "application/json"},
            )
        self._client = http_client

    @property
    def session(self) -> UserSession:
        return self._session

    def update_session(self, session: UserSession) -> None:
        """Swap the credential used for subsequent requests (login, token refresh)."""
        self._session = session

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> MessagingApi:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = self._client.request(
                method,
                path,
                json=json_data,
                params=params,
                headers=self._session.auth_headers(),
            )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"Network error: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.is_success and payload.get("success", True):
            return payload

        message = payload.get("message") or payload.get("detail") or response.reason_phrase
        raise self._error_for(response.status_code, str(message))

    @staticmethod
    def _error_for(status_code: int, message: str) -> MessagingClientError:
        if status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            return UnauthorizedError(message, status_code)
        if status_code == HTTP_NOT_FOUND:
            return NotFoundError(message, status_code)
        if status_code in (HTTP_BAD_REQUEST, HTTP_UNPROCESSABLE_ENTITY):
            return ValidationError(message, status_code)
        return MessagingClientError(f"Request failed ({status_code}): {message}", status_code)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def list_conversations(self) -> list[ConversationSummary]:
        """Return the viewer's conversations, newest activity first."""
        payload = self._request("GET", "/messages/conversations")
        return ConversationListResponse.model_validate(payload).conversations

    def get_messages(
        self,
        conversation_id: int,
        *,
        before: int | None = None,
        limit: int | None = None,
    ) -> MessagesPage:
        """Fetch a page of messages; the server marks them read for the viewer."""
        params: dict[str, Any] = {}
        if before is not None:
            params["before"] = before
        if limit is not None:
            params["limit"] = limit
        payload = self._request(
            "GET",
            f"/messages/conversations/{conversation_id}",
            params=params or None,
        )
        body = MessageListResponse.model_validate(payload)
        return MessagesPage(
            conversation=body.conversation,
            messages=body.messages,
            has_more=body.pagination.has_more,
            next_cursor=body.pagination.next_cursor,
        )

    def send_message(
        self,
        conversation_id: int,
        content: str,
        message_type: str = "text",
    ) -> SendMessageResponse:
        """Post a message; blank content is rejected without contacting the server."""
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")
        payload = self._request(
            "POST",
            "/messages/send",
            json_data={
                "conversationId": conversation_id,
                "content": content,
                "type": message_type,
            },
        )
        return SendMessageResponse.model_validate(payload)

    def start_conversation(self, receiver_id: int, content: str) -> SendMessageResponse:
        """Send a first message to a user, creating the conversation if needed."""
        if not content or not content.strip():
            raise ValidationError("Message content cannot be empty")
        payload = self._request(
            "POST",
            "/messages/send",
            json_data={"receiverId": receiver_id, "content": content.strip(), "type": "text"},
        )
        return SendMessageResponse.model_validate(payload)

    def send_payment(
        self,
        conversation_id: int,
        amount: float,
        description: str = "",
    ) -> SendMessageResponse:
        """Post a payment notice into a conversation."""
        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise ValidationError("Please enter a valid amount")
        payload = self._request(
            "POST",
            "/messages/send-payment",
            json_data={
                "conversationId": conversation_id,
                "amount": amount,
                "description": description,
            },
        )
        return SendMessageResponse.model_validate(payload)

    def mark_read(self, conversation_id: int) -> int:
        """Mark the viewer's incoming messages read; return the number updated."""
        payload = self._request("PUT", f"/messages/read/{conversation_id}")
        return MarkReadResponse.model_validate(payload).updated
