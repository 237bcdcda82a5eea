# src/bhromonbondhu/services/conversation_store.py
"""Durable storage and retrieval of conversations and messages.

The store owns every write to the ``conversation`` and ``message`` tables and
keeps the conversation's denormalized summary (last message preview,
timestamps and per-participant unread counters) in step with its messages.
API handlers translate the exceptions raised here into HTTP errors.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from bhromonbondhu.core.settings import settings
from bhromonbondhu.db.time import utcnow
from bhromonbondhu.models import (
    MESSAGE_TYPE_PAYMENT,
    MESSAGE_TYPE_TEXT,
    Conversation,
    Message,
    User,
)
from bhromonbondhu.schemas.messaging import ConversationSummary, MessageOut

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 96


class MessagingError(Exception):
    """Base exception raised by the conversation store."""


class ConversationNotFoundError(MessagingError):
    """The conversation does not exist or the viewer is not a participant."""


class UserNotFoundError(MessagingError):
    """The addressed user does not exist or is deactivated."""


class MessageValidationError(MessagingError):
    """The submitted message was rejected before reaching the database."""


@dataclass(frozen=True)
class MessagePage:
    """One page of a conversation's messages, oldest first."""

    conversation: Conversation
    messages: list[Message]
    has_more: bool
    next_cursor: int | None


def _valid_amount(amount: float | None) -> bool:
    return amount is not None and math.isfinite(amount) and amount > 0


def preview_text(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Collapse newlines and shorten ``text`` for the conversation list."""
    text = text.replace("\n", " ").strip()
    return text if len(text) <= limit else text[:limit] + "…"


def format_payment(amount: float | Decimal, description: str = "") -> str:
    """Render the body of a payment notice, e.g. ``Payment of ৳1,500.00 for Room``."""
    body = f"Payment of {settings.currency_symbol}{Decimal(str(amount)):,.2f}"
    description = description.strip()
    if description:
        body += f" for {description}"
    return body


def to_summary(conversation: Conversation, viewer_id: int) -> ConversationSummary:
    """Shape a conversation for one viewer."""
    counterpart = conversation.counterpart_of(viewer_id)
    return ConversationSummary(
        id=conversation.id,
        traveler_id=conversation.traveler_id,
        host_id=conversation.host_id,
        counterpart_id=counterpart.id,
        counterpart_name=counterpart.full_name,
        counterpart_avatar=counterpart.avatar_url,
        last_message=conversation.last_message,
        last_message_at=conversation.last_message_at,
        unread=conversation.unread_for(viewer_id),
        created_at=conversation.created_at,
    )


def to_message_out(message: Message) -> MessageOut:
    """Convert a Message ORM instance to an API schema."""
    return MessageOut(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        content=message.content,
        type=message.type,
        amount=float(message.amount) if message.amount is not None else None,
        read=message.read,
        created_at=message.created_at,
    )


class ConversationStore:
    """Conversation and message persistence bound to one database session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active:
            raise UserNotFoundError("User not found")
        return user

    def get_conversation(self, conversation_id: int, viewer_id: int) -> Conversation:
        """Return the conversation if ``viewer_id`` takes part in it.

        A missing conversation and a conversation the viewer is not part of
        are reported identically so ids cannot be probed.
        """
        conversation = (
            self.db.query(Conversation)
            .filter(Conversation.id == conversation_id)
            .first()
        )
        if conversation is None or not conversation.has_participant(viewer_id):
            raise ConversationNotFoundError("Conversation not found")
        return conversation

    def list_conversations(self, viewer_id: int) -> list[Conversation]:
        """Return the viewer's conversations, most recent activity first."""
        activity = func.coalesce(Conversation.last_message_at, Conversation.created_at)
        return (
            self.db.query(Conversation)
            .filter(
                or_(
                    Conversation.traveler_id == viewer_id,
                    Conversation.host_id == viewer_id,
                )
            )
            .order_by(activity.desc(), Conversation.id.desc())
            .all()
        )

    def find_or_create_conversation(self, viewer: User, receiver_id: int) -> Conversation:
        """Return the conversation between ``viewer`` and ``receiver_id``, creating it if needed."""
        receiver = self.get_user(receiver_id)
        if receiver.id == viewer.id:
            raise MessageValidationError("You cannot send a message to yourself")

        existing = (
            self.db.query(Conversation)
            .filter(
                or_(
                    and_(Conversation.traveler_id == viewer.id, Conversation.host_id == receiver.id),
                    and_(Conversation.traveler_id == receiver.id, Conversation.host_id == viewer.id),
                )
            )
            .first()
        )
        if existing is not None:
            return existing

        if viewer.is_host and not receiver.is_host:
            traveler, host = receiver, viewer
        else:
            traveler, host = viewer, receiver

        conversation = Conversation(
            traveler_id=traveler.id,
            host_id=host.id,
            traveler_unread=0,
            host_unread=0,
        )
        self.db.add(conversation)
        self.db.flush()
        self.db.refresh(conversation)
        logger.info(
            "Created conversation %s between traveler %s and host %s",
            conversation.id,
            traveler.id,
            host.id,
        )
        return conversation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_messages(
        self,
        conversation_id: int,
        viewer_id: int,
        *,
        before: int | None = None,
        limit: int | None = None,
    ) -> MessagePage:
        """Return a page of messages oldest first and mark the fetched ones read.

        Args:
            conversation_id: Conversation to read.
            viewer_id: Authenticated participant.
            before: Id of a message; only messages created before it are returned.
            limit: Page size, clamped to the configured maximum.
        """
        conversation = self.get_conversation(conversation_id, viewer_id)
        page_size = max(1, min(limit or settings.message_page_size, settings.message_page_size_max))

        query = self.db.query(Message).filter(Message.conversation_id == conversation.id)
        if before is not None:
            cursor = (
                self.db.query(Message)
                .filter(Message.id == before, Message.conversation_id == conversation.id)
                .first()
            )
            if cursor is None:
                raise MessageValidationError("Invalid pagination cursor")
            query = query.filter(
                or_(
                    Message.created_at < cursor.created_at,
                    and_(Message.created_at == cursor.created_at, Message.id < cursor.id),
                )
            )

        newest_first = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .limit(page_size + 1)
            .all()
        )
        has_more = len(newest_first) > page_size
        messages = list(reversed(newest_first[:page_size]))
        next_cursor = messages[0].id if has_more and messages else None

        newly_read = 0
        for message in messages:
            if message.sender_id != viewer_id and not message.read:
                message.read = True
                newly_read += 1
        if newly_read:
            self.db.flush()
            conversation.set_unread(viewer_id, self._count_unread(conversation.id, viewer_id))
            self.db.commit()
            logger.debug(
                "Marked %d messages read in conversation %s for user %s",
                newly_read,
                conversation.id,
                viewer_id,
            )

        return MessagePage(
            conversation=conversation,
            messages=messages,
            has_more=has_more,
            next_cursor=next_cursor,
        )

    def mark_read(self, conversation_id: int, viewer_id: int) -> int:
        """Mark every incoming message of the conversation read; return how many changed."""
        conversation = self.get_conversation(conversation_id, viewer_id)
        updated = (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation.id,
                Message.sender_id != viewer_id,
                Message.read.is_(False),
            )
            .update({Message.read: True}, synchronize_session="fetch")
        )
        conversation.set_unread(viewer_id, 0)
        self.db.commit()
        return int(updated)

    def _count_unread(self, conversation_id: int, viewer_id: int) -> int:
        return (
            self.db.query(func.count(Message.id))
            .filter(
                Message.conversation_id == conversation_id,
                Message.sender_id != viewer_id,
                Message.read.is_(False),
            )
            .scalar()
            or 0
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def send_message(
        self,
        viewer: User,
        content: str,
        *,
        conversation_id: int | None = None,
        receiver_id: int | None = None,
        message_type: str = MESSAGE_TYPE_TEXT,
        amount: float | None = None,
    ) -> tuple[Message, Conversation]:
        """Persist a message and refresh the conversation summary.

        Exactly one of ``conversation_id`` or ``receiver_id`` must be given.

        Raises:
            MessageValidationError: Empty or oversized body, bad payment amount,
                or a message addressed to the sender.
            ConversationNotFoundError: Unknown conversation or non-participant.
            UserNotFoundError: Unknown receiver.
        """
        body = (content or "").strip()
        if not body:
            raise MessageValidationError("Message content cannot be empty")
        if len(body) > settings.message_max_length:
            raise MessageValidationError(
                f"Message content exceeds {settings.message_max_length} characters"
            )
        if message_type == MESSAGE_TYPE_PAYMENT:
            if not _valid_amount(amount):
                raise MessageValidationError("Payment amount must be greater than zero")
        elif message_type == MESSAGE_TYPE_TEXT:
            amount = None
        else:
            raise MessageValidationError(f"Unsupported message type: {message_type}")

        if (conversation_id is None) == (receiver_id is None):
            raise MessageValidationError("Provide exactly one of conversationId or receiverId")

        if conversation_id is not None:
            conversation = self.get_conversation(conversation_id, viewer.id)
        else:
            conversation = self.find_or_create_conversation(viewer, receiver_id)  # type: ignore[arg-type]

        created_at = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=viewer.id,
            content=body,
            type=message_type,
            amount=Decimal(str(amount)) if amount is not None else None,
            read=False,
            created_at=created_at,
        )
        self.db.add(message)

        recipient_id = conversation.counterpart_of(viewer.id).id
        conversation.last_message = preview_text(body)
        conversation.last_message_at = created_at
        conversation.set_unread(recipient_id, conversation.unread_for(recipient_id) + 1)

        self.db.commit()
        self.db.refresh(message)
        self.db.refresh(conversation)
        logger.debug(
            "User %s sent %s message %s in conversation %s",
            viewer.id,
            message_type,
            message.id,
            conversation.id,
        )
        return message, conversation

    def send_payment(
        self,
        viewer: User,
        conversation_id: int,
        amount: float,
        description: str = "",
    ) -> tuple[Message, Conversation]:
        """Post a payment notice into an existing conversation."""
        if not _valid_amount(amount):
            raise MessageValidationError("Payment amount must be greater than zero")
        return self.send_message(
            viewer,
            format_payment(amount, description),
            conversation_id=conversation_id,
            message_type=MESSAGE_TYPE_PAYMENT,
            amount=amount,
        )
