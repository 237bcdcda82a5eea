# src/bhromonbondhu/models/user.py
"""SQLAlchemy model for platform accounts (travelers, hosts and admins)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bhromonbondhu.db.session import Base
from bhromonbondhu.db.time import utcnow

ROLE_TRAVELER = "traveler"
ROLE_HOST = "host"
ROLE_ADMIN = "admin"


class User(Base):
    """A traveler, host or admin account able to take part in conversations."""

    __tablename__ = "user_account"
    __table_args__ = (
        CheckConstraint(
            "role IN ('traveler', 'host', 'admin')",
            name="ck_user_account_role",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_TRAVELER)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def is_host(self) -> bool:
        return self.role == ROLE_HOST
