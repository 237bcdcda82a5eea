# src/bhromonbondhu/services/__init__.py
"""Business logic services for the messaging application."""

from .conversation_store import (
    ConversationNotFoundError,
    ConversationStore,
    MessageValidationError,
    MessagingError,
    UserNotFoundError,
)

__all__ = [
    "ConversationStore",
    "MessagingError",
    "ConversationNotFoundError",
    "MessageValidationError",
    "UserNotFoundError",
]
