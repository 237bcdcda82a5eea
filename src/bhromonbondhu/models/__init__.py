"""SQLAlchemy models for the Bhromonbondhu messaging service."""

from .conversation import MESSAGE_TYPE_PAYMENT, MESSAGE_TYPE_TEXT, Conversation, Message
from .user import ROLE_ADMIN, ROLE_HOST, ROLE_TRAVELER, User

__all__ = [
    "Conversation", "Message",
    "MESSAGE_TYPE_TEXT", "MESSAGE_TYPE_PAYMENT",
    "User",
    "ROLE_TRAVELER", "ROLE_HOST", "ROLE_ADMIN",
]
