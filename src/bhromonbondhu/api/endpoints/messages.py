# src/bhromonbondhu/api/endpoints/messages.py
"""Conversation and message endpoints for the Bhromonbondhu API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from bhromonbondhu.api.dependencies import CurrentUserDep, StoreDep
from bhromonbondhu.core.settings import settings
from bhromonbondhu.schemas.messaging import (
    ConversationListResponse,
    MarkReadResponse,
    MessageListResponse,
    Pagination,
    SendMessageRequest,
    SendMessageResponse,
    SendPaymentRequest,
)
from bhromonbondhu.services.conversation_store import (
    ConversationNotFoundError,
    MessageValidationError,
    MessagingError,
    UserNotFoundError,
    to_message_out,
    to_summary,
)

router = APIRouter(prefix="/messages", tags=["messages"])


def _http_error(err: MessagingError) -> HTTPException:
    """Translate a store exception into the matching HTTP error."""
    if isinstance(err, ConversationNotFoundError | UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err))
    if isinstance(err, MessageValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))
    return HTTPException(  # pragma: no cover - every store error is mapped above
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Messaging operation failed",
    )


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    current_user: CurrentUserDep,
    store: StoreDep,
) -> ConversationListResponse:
    """List the viewer's conversations, newest activity first."""
    conversations = store.list_conversations(current_user.id)
    return ConversationListResponse(
        conversations=[to_summary(conv, current_user.id) for conv in conversations],
    )


@router.get("/conversations/{conversation_id}", response_model=MessageListResponse)
async def get_messages(
    conversation_id: int,
    current_user: CurrentUserDep,
    store: StoreDep,
    before: int | None = Query(None, description="Return messages older than this message id"),
    limit: int | None = Query(None, ge=1, le=settings.message_page_size_max),
) -> MessageListResponse:
    """Return a conversation's messages oldest first and mark them read for the viewer."""
    try:
        page = store.get_messages(conversation_id, current_user.id, before=before, limit=limit)
    except MessagingError as err:
        raise _http_error(err) from err

    return MessageListResponse(
        conversation=to_summary(page.conversation, current_user.id),
        messages=[to_message_out(message) for message in page.messages],
        pagination=Pagination(has_more=page.has_more, next_cursor=page.next_cursor),
    )


@router.post(
    "/send",
    status_code=status.HTTP_201_CREATED,
    response_model=SendMessageResponse,
)
async def send_message(
    payload: SendMessageRequest,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> SendMessageResponse:
    """Post a message into a conversation, creating it when addressed by receiver id."""
    try:
        message, conversation = store.send_message(
            current_user,
            payload.content,
            conversation_id=payload.conversation_id,
            receiver_id=payload.receiver_id,
            message_type=payload.type,
            amount=payload.amount,
        )
    except MessagingError as err:
        raise _http_error(err) from err

    return SendMessageResponse(
        message=to_message_out(message),
        conversation=to_summary(conversation, current_user.id),
    )


@router.post(
    "/send-payment",
    status_code=status.HTTP_201_CREATED,
    response_model=SendMessageResponse,
)
async def send_payment(
    payload: SendPaymentRequest,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> SendMessageResponse:
    """Post a payment notice into a conversation."""
    try:
        message, conversation = store.send_payment(
            current_user,
            payload.conversation_id,
            payload.amount,
            payload.description,
        )
    except MessagingError as err:
        raise _http_error(err) from err

    return SendMessageResponse(
        message=to_message_out(message),
        conversation=to_summary(conversation, current_user.id),
    )


@router.put("/read/{conversation_id}", response_model=MarkReadResponse)
async def mark_conversation_read(
    conversation_id: int,
    current_user: CurrentUserDep,
    store: StoreDep,
) -> MarkReadResponse:
    """Mark every message the viewer received in a conversation as read."""
    try:
        updated = store.mark_read(conversation_id, current_user.id)
    except MessagingError as err:
        raise _http_error(err) from err
    return MarkReadResponse(updated=updated)
