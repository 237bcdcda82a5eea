# src/bhromonbondhu/models/conversation.py
"""Models describing traveler/host conversations and their messages."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bhromonbondhu.db.session import Base
from bhromonbondhu.db.time import utcnow

from .user import User

MESSAGE_TYPE_TEXT = "text"
MESSAGE_TYPE_PAYMENT = "payment"


class Conversation(Base):
    """Persistent thread between one traveler and one host.

    The last-message and unread columns are denormalized summaries kept in
    step with the newest message on every send.
    """

    __tablename__ = "conversation"
    __table_args__ = (
        UniqueConstraint("traveler_id", "host_id", name="uq_conversation_participants"),
        CheckConstraint("traveler_id <> host_id", name="ck_conversation_distinct_participants"),
        Index("ix_conversation_traveler_id", "traveler_id"),
        Index("ix_conversation_host_id", "host_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    traveler_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_account.id"), nullable=False
    )
    host_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)

    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    traveler_unread: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    host_unread: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    traveler: Mapped[User] = relationship(User, foreign_keys=[traveler_id], lazy="joined")
    host: Mapped[User] = relationship(User, foreign_keys=[host_id], lazy="joined")

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.traveler_id, self.host_id)

    def counterpart_of(self, user_id: int) -> User:
        """Return the participant on the other side from ``user_id``."""
        return self.host if user_id == self.traveler_id else self.traveler

    def unread_for(self, user_id: int) -> int:
        return self.traveler_unread if user_id == self.traveler_id else self.host_unread

    def set_unread(self, user_id: int, value: int) -> None:
        if user_id == self.traveler_id:
            self.traveler_unread = value
        else:
            self.host_unread = value


class Message(Base):
    """Single message inside a conversation; only the read flag ever changes."""

    __tablename__ = "message"
    __table_args__ = (
        CheckConstraint("type IN ('text', 'payment')", name="ck_message_type"),
        Index("ix_message_conversation_created", "conversation_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversation.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=MESSAGE_TYPE_TEXT)
    # Set only for payment notices.
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
