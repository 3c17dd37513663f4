"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from firmdesk.db.base import Base
from firmdesk.db.enums import ThreadStatus
from firmdesk.db.types import utcnow

if TYPE_CHECKING:
    from firmdesk.db.models import Organization, User


class Thread(Base):
    """
    Discussion thread within an organization.

    open <-> resolved. closed_by/closed_at are set only while resolved.
    last_activity_at tracks the newest message (or creation time).
    """

    __tablename__ = "threads"
    __table_args__ = (
        CheckConstraint("status IN ('open', 'resolved')", name="ck_threads_status_valid"),
        CheckConstraint(
            "(status = 'resolved' AND closed_at IS NOT NULL) "
            "OR (status = 'open' AND closed_at IS NULL AND closed_by_user_id IS NULL)",
            name="ck_threads_closed_matches_status",
        ),
        Index("idx_threads_org_activity", "organization_id", "last_activity_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ThreadStatus.OPEN.value, nullable=False
    )
    closed_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    last_activity_at: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Relationships
    organization: Mapped["Organization"] = relationship(back_populates="threads")
    created_by: Mapped["User | None"] = relationship(foreign_keys=[created_by_user_id])
    closed_by: Mapped["User | None"] = relationship(foreign_keys=[closed_by_user_id])
    messages: Mapped[list["Message"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    """A message in a thread. Bodies are stored sanitized."""

    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_thread_created", "thread_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    thread_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("threads.id", ondelete="CASCADE"), nullable=False
    )
    author_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Relationships
    thread: Mapped["Thread"] = relationship(back_populates="messages")
    author: Mapped["User | None"] = relationship()
