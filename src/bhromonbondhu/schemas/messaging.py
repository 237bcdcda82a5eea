# src/bhromonbondhu/schemas/messaging.py
"""Messaging-related Pydantic schemas.

Payloads use camelCase keys on the wire; Python code uses the snake_case
field names.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MessageType = Literal["text", "payment"]


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ConversationSummary(CamelModel):
    """A conversation as seen by one viewer."""

    id: int
    traveler_id: int
    host_id: int
    counterpart_id: int
    counterpart_name: str
    counterpart_avatar: str | None = None
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread: int = 0
    created_at: datetime | None = None

    @field_validator("last_message_at", "created_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class MessageOut(CamelModel):
    """Schema for a persisted message returned by the API."""

    id: int
    conversation_id: int
    sender_id: int
    content: str
    type: MessageType = "text"
    amount: float | None = None
    read: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class Pagination(CamelModel):
    has_more: bool = False
    next_cursor: int | None = Field(
        default=None,
        description="Message id to pass as `before` to fetch the previous page.",
    )


class SendMessageRequest(CamelModel):
    """Schema for posting a message to an existing or a new conversation."""

    conversation_id: int | None = Field(None, description="Existing conversation to post into")
    receiver_id: int | None = Field(
        None, description="Recipient user id; finds or creates the conversation"
    )
    content: str = Field(..., description="Message body")
    type: MessageType = "text"
    amount: float | None = Field(
        None, allow_inf_nan=False, description="Required when type is 'payment'"
    )

    @model_validator(mode="after")
    def _exactly_one_target(self) -> SendMessageRequest:
        if (self.conversation_id is None) == (self.receiver_id is None):
            raise ValueError("Provide exactly one of conversationId or receiverId")
        return self


class SendPaymentRequest(CamelModel):
    """Schema for posting a payment notice into a conversation."""

    conversation_id: int
    amount: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Payment amount, must be positive"
    )
    description: str = Field("", max_length=500)


class ConversationListResponse(CamelModel):
    success: bool = True
    conversations: list[ConversationSummary]


class MessageListResponse(CamelModel):
    success: bool = True
    conversation: ConversationSummary
    messages: list[MessageOut]
    pagination: Pagination


class SendMessageResponse(CamelModel):
    success: bool = True
    message: MessageOut
    conversation: ConversationSummary


class MarkReadResponse(CamelModel):
    success: bool = True
    updated: int


class ErrorResponse(CamelModel):
    """Envelope used for every failed request."""

    success: bool = False
    message: str
