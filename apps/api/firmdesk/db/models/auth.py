"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from firmdesk.db.base import Base
from firmdesk.db.types import utcnow

if TYPE_CHECKING:
    from firmdesk.db.models import Document, Thread


class User(Base):
    """
    Application user.

    Created at registration or on first OAuth login. Password hashing is
    done by the caller; only the digest is stored here.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_digest: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Email confirmation (one-way: unconfirmed -> confirmed)
    email_confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    confirmation_token_digest: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    confirmation_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Password reset
    password_reset_token_digest: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    password_reset_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None


class AuthIdentity(Base):
    """
    Links a user to an external identity provider.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_subject", name="uq_auth_identity"),
        Index("idx_auth_identities_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    provider_subject: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="auth_identities")


class Organization(Base):
    """
    A tenant in the two-level hierarchy.

    Single-table inheritance over ``kind``: a Firm has no parent, a Client has
    exactly one parent Firm. All domain entities belong to an organization and
    must be scoped by organization_id in all queries.
    """

    __tablename__ = "organizations"
    __table_args__ = (
        CheckConstraint(
            "(kind = 'firm' AND parent_id IS NULL) OR (kind = 'client' AND parent_id IS NOT NULL)",
            name="ck_organizations_parent_matches_kind",
        ),
        Index("idx_organizations_parent_id", "parent_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )
    owner_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    parent: Mapped["Organization | None"] = relationship(
        remote_side="Organization.id", back_populates="clients"
    )
    clients: Mapped[list["Organization"]] = relationship(
        back_populates="parent", cascade="all, delete-orphan"
    )
    owner: Mapped["User | None"] = relationship(foreign_keys=[owner_user_id])
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    invites: Mapped[list["OrgInvite"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    documents: Mapped[list["Document"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )
    threads: Mapped[list["Thread"]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )

    __mapper_args__ = {"polymorphic_on": "kind"}


class Firm(Organization):
    """Root organization. Owns zero or more clients."""

    __mapper_args__ = {"polymorphic_identity": "firm"}


class Client(Organization):
    """Child organization of exactly one firm."""

    __mapper_args__ = {"polymorphic_identity": "client"}


class Membership(Base):
    """
    Links a user to an organization with a role.

    Constraint: UNIQUE(user_id, organization_id) - at most one membership per
    pair, enforced by the store so concurrent grants cannot both commit.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
        CheckConstraint("role IN ('admin', 'staff')", name="ck_memberships_role_valid"),
        Index("idx_memberships_org_id", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="memberships")
    organization: Mapped["Organization"] = relationship(back_populates="memberships")


class OrgInvite(Base):
    """
    Time-boxed invitation that becomes a membership on acceptance.

    Only the SHA-256 digest of the bearer token is stored. The plaintext
    token is set on the transient ``token`` attribute when the invite is
    issued and is never loaded back from the database.
    """

    __tablename__ = "org_invites"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'staff')", name="ck_org_invites_role_valid"),
        CheckConstraint("expires_at > created_at", name="ck_org_invites_expires_after_created"),
        Index("idx_org_invites_org_id", "organization_id"),
        Index("idx_org_invites_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    invited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    token_digest: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    accepted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Plaintext token, only available on the instance returned by issue.
    token = None

    # Relationships
    organization: Mapped["Organization"] = relationship(back_populates="invites")
    invited_by: Mapped["User | None"] = relationship(foreign_keys=[invited_by_user_id])
    accepted_by: Mapped["User | None"] = relationship(foreign_keys=[accepted_by_user_id])

    @validates("token_digest")
    def _freeze_token_digest(self, key, value):
        if self.token_digest is not None and self.token_digest != value:
            raise ValueError("Invitation token cannot be changed once set")
        return value
