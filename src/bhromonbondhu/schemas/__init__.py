"""Pydantic schemas shared by the API and the client."""

from .messaging import (
    ConversationListResponse,
    ConversationSummary,
    ErrorResponse,
    MarkReadResponse,
    MessageListResponse,
    MessageOut,
    Pagination,
    SendMessageRequest,
    SendMessageResponse,
    SendPaymentRequest,
)

__all__ = [
    "ConversationListResponse",
    "ConversationSummary",
    "ErrorResponse",
    "MarkReadResponse",
    "MessageListResponse",
    "MessageOut",
    "Pagination",
    "SendMessageRequest",
    "SendMessageResponse",
    "SendPaymentRequest",
]
