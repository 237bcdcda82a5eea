"""Client-side data layer for the messaging API."""

from .api import MessagesPage, MessagingApi
from .errors import (
    MessagingClientError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .inbox import DeliveryStatus, DisplayMessage, MessagingInbox, filter_conversations
from .session import UserSession

__all__ = [
    "MessagingApi",
    "MessagesPage",
    "MessagingInbox",
    "DisplayMessage",
    "DeliveryStatus",
    "filter_conversations",
    "UserSession",
    "MessagingClientError",
    "UnauthorizedError",
    "NotFoundError",
    "ValidationError",
    "NetworkError",
]
