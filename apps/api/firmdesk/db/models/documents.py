"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from firmdesk.db.base import Base
from firmdesk.db.enums import DocumentStatus
from firmdesk.db.types import utcnow

if TYPE_CHECKING:
    from firmdesk.db.models import Organization, User


class Document(Base):
    """
    File record for an organization.

    Raw bytes live with the storage collaborator; this row only keeps the
    validated metadata, review status and category.
    """

    __tablename__ = "documents"
    __table_args__ = (
        CheckConstraint("status IN ('uploaded', 'viewed')", name="ck_documents_status_valid"),
        CheckConstraint(
            "category IS NULL OR category IN ('invoice', 'receipt', 'contract', 'other')",
            name="ck_documents_category_valid",
        ),
        CheckConstraint("file_size > 0", name="ck_documents_file_size_positive"),
        Index("idx_documents_org_created", "organization_id", "created_at"),
        Index("idx_documents_org_status", "organization_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    uploaded_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # File metadata
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Review
    status: Mapped[str] = mapped_column(
        String(20), default=DocumentStatus.UPLOADED.value, nullable=False
    )
    category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    viewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    viewed_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    organization: Mapped["Organization"] = relationship(back_populates="documents")
    uploaded_by: Mapped["User | None"] = relationship(foreign_keys=[uploaded_by_user_id])
    viewed_by: Mapped["User | None"] = relationship(foreign_keys=[viewed_by_user_id])
