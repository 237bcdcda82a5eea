"""Inbox state controller driving the messaging screen.

``MessagingInbox`` holds everything the screen renders: the conversation
list, the selected conversation and its messages, the draft being typed and
loading/error flags kept separately for conversations, messages and sending.
State only changes in response to a method call, one at a time.

Messages the viewer submits are shown immediately as ``pending``. When the
server confirms, the entry is replaced with the stored message; when the send
fails it turns ``failed`` and stays on screen until the viewer retries or
discards it, including across refetches and conversation switches. Nothing
is retried automatically.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from bhromonbondhu.schemas.messaging import ConversationSummary, MessageOut

from .api import MessagingApi
from .errors import MessagingClientError

logger = logging.getLogger(__name__)


class DeliveryStatus(Enum):
    """Delivery state of a message shown in the conversation view."""

    SENT = "sent"
    PENDING = "pending"  # optimistic, waiting for the server
    FAILED = "failed"    # the server never stored it


@dataclass
class DisplayMessage:
    """A message as rendered, confirmed or still local."""

    local_id: str
    conversation_id: int
    sender_id: int
    content: str
    created_at: datetime
    type: str = "text"
    amount: float | None = None
    read: bool = False
    server_id: int | None = None
    status: DeliveryStatus = DeliveryStatus.SENT
    error: str | None = field(default=None, compare=False)

    @classmethod
    def from_server(cls, message: MessageOut) -> DisplayMessage:
        return cls(
            local_id=f"srv-{message.id}",
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=message.created_at,
            type=message.type,
            amount=message.amount,
            read=message.read,
            server_id=message.id,
            status=DeliveryStatus.SENT,
        )

    @classmethod
    def optimistic(cls, conversation_id: int, sender_id: int, content: str) -> DisplayMessage:
        return cls(
            local_id=f"local-{uuid.uuid4().hex}",
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            created_at=datetime.now(UTC),
            status=DeliveryStatus.PENDING,
        )

    def is_mine(self, user_id: int) -> bool:
        return self.sender_id == user_id


def filter_conversations(
    conversations: Iterable[ConversationSummary],
    term: str,
) -> list[ConversationSummary]:
    """Case-insensitive substring match on counterpart name and last message."""
    needle = term.strip().lower()
    if not needle:
        return list(conversations)
    return [
        conv
        for conv in conversations
        if needle in conv.counterpart_name.lower()
        or needle in (conv.last_message or "").lower()
    ]


class MessagingInbox:
    """Client-side state for the conversation list and the open conversation."""

    def __init__(self, api: MessagingApi) -> None:
        self.api = api

        self.conversations: list[ConversationSummary] = []
        self.selected_id: int | None = None
        self.messages: list[DisplayMessage] = []
        # Pending and failed entries of every conversation, kept across refetches.
        self.unsent: list[DisplayMessage] = []
        self.draft = ""
        self.search_term = ""

        self.has_more = False
        self.next_cursor: int | None = None

        self.conversations_loading = False
        self.messages_loading = False
        self.sending = False

        self.conversations_error: str | None = None
        self.messages_error: str | None = None
        self.send_error: str | None = None

    @property
    def user_id(self) -> int:
        return self.api.session.user_id

    @property
    def selected(self) -> ConversationSummary | None:
        for conversation in self.conversations:
            if conversation.id == self.selected_id:
                return conversation
        return None

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------
    def load(self) -> None:
        """Initial load: fetch conversations and open the first one if none is open."""
        if self.fetch_conversations() and self.conversations and self.selected_id is None:
            self.select(self.conversations[0].id)

    def fetch_conversations(self) -> bool:
        self.conversations_loading = True
        self.conversations_error = None
        try:
            self.conversations = self.api.list_conversations()
            return True
        except MessagingClientError as exc:
            logger.warning("Error fetching conversations: %s", exc)
            self.conversations_error = str(exc)
            return False
        finally:
            self.conversations_loading = False

    def retry_conversations(self) -> None:
        """Manual "try again" for a failed conversation list load."""
        self.load()

    def filtered_conversations(self) -> list[ConversationSummary]:
        return filter_conversations(self.conversations, self.search_term)

    def _apply_summary(self, summary: ConversationSummary, *, move_to_top: bool = False) -> None:
        remaining = [conv for conv in self.conversations if conv.id != summary.id]
        if move_to_top:
            self.conversations = [summary, *remaining]
            return
        for index, conv in enumerate(self.conversations):
            if conv.id == summary.id:
                self.conversations[index] = summary
                return
        self.conversations = [summary, *remaining]

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------
    def select(self, conversation_id: int) -> None:
        """Open a conversation, replacing the displayed messages with its own.

        Unsent entries of that conversation stay after the fetched messages.
        """
        self.selected_id = conversation_id
        self.messages = self._unsent_for(conversation_id)
        self.has_more = False
        self.next_cursor = None
        self.send_error = None
        self._fetch_messages(conversation_id)

    def load_older(self) -> None:
        """Prepend the previous page of the open conversation, if there is one."""
        if self.selected_id is not None and self.has_more:
            self._fetch_messages(self.selected_id, load_more=True)

    def retry_messages(self) -> None:
        """Manual "try again" for a failed message load."""
        if self.selected_id is not None:
            self.select(self.selected_id)

    def _fetch_messages(self, conversation_id: int, *, load_more: bool = False) -> None:
        self.messages_loading = True
        self.messages_error = None
        try:
            page = self.api.get_messages(
                conversation_id,
                before=self.next_cursor if load_more else None,
            )
        except MessagingClientError as exc:
            logger.warning("Error fetching messages for %s: %s", conversation_id, exc)
            self.messages_error = str(exc)
            return
        finally:
            self.messages_loading = False

        fetched = [DisplayMessage.from_server(message) for message in page.messages]
        if load_more:
            self.messages = [*fetched, *self.messages]
        else:
            self.messages = [*fetched, *self._unsent_for(conversation_id)]
        self.has_more = page.has_more
        self.next_cursor = page.next_cursor
        self._apply_summary(page.conversation)

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------
    def submit(self) -> DisplayMessage | None:
        """Send the draft to the open conversation.

        Returns the displayed entry (sent or failed), or None when the draft is
        blank or no conversation is open; in that case nothing is sent.
        """
        if not self.draft.strip() or self.selected_id is None:
            return None

        entry = DisplayMessage.optimistic(self.selected_id, self.user_id, self.draft)
        self.messages.append(entry)
        self.unsent.append(entry)
        self.draft = ""
        return self._deliver(entry)

    def retry(self, local_id: str) -> DisplayMessage | None:
        """Resend a failed entry."""
        entry = self._find(local_id)
        if entry is None or entry.status is not DeliveryStatus.FAILED:
            return None
        entry.status = DeliveryStatus.PENDING
        entry.error = None
        return self._deliver(entry)

    def discard(self, local_id: str) -> bool:
        """Drop a failed entry from the view."""
        entry = self._find(local_id)
        if entry is None or entry.status is not DeliveryStatus.FAILED:
            return False
        self.messages = [m for m in self.messages if m.local_id != local_id]
        self.unsent.remove(entry)
        if not any(m.status is DeliveryStatus.FAILED for m in self.unsent):
            self.send_error = None
        return True

    def send_payment(self, amount: float, description: str = "") -> DisplayMessage | None:
        """Post a payment notice into the open conversation once the server accepts it."""
        if self.selected_id is None:
            return None
        self.sending = True
        self.send_error = None
        try:
            result = self.api.send_payment(self.selected_id, amount, description)
        except MessagingClientError as exc:
            logger.warning("Error sending payment: %s", exc)
            self.send_error = str(exc)
            return None
        finally:
            self.sending = False

        entry = DisplayMessage.from_server(result.message)
        self.messages.append(entry)
        self._apply_summary(result.conversation, move_to_top=True)
        return entry

    def _deliver(self, entry: DisplayMessage) -> DisplayMessage:
        self.sending = True
        self.send_error = None
        try:
            result = self.api.send_message(entry.conversation_id, entry.content)
        except MessagingClientError as exc:
            logger.warning("Error sending message: %s", exc)
            entry.status = DeliveryStatus.FAILED
            entry.error = str(exc)
            self.send_error = str(exc)
            return entry
        finally:
            self.sending = False

        self.unsent.remove(entry)
        confirmed = DisplayMessage.from_server(result.message)
        for index, message in enumerate(self.messages):
            if message.local_id == entry.local_id:
                self.messages[index] = confirmed
                break
        self._apply_summary(result.conversation, move_to_top=True)
        return confirmed

    def _unsent_for(self, conversation_id: int) -> list[DisplayMessage]:
        return [m for m in self.unsent if m.conversation_id == conversation_id]

    def _find(self, local_id: str) -> DisplayMessage | None:
        for message in self.unsent:
            if message.local_id == local_id:
                return message
        return None
