"""Membership service - grants, revocations and role lookups per organization.

Role checks here are pure reads. Authorization decisions (who may grant or
revoke) belong to the calling workflow.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from firmdesk.core.errors import (
    DuplicateMembershipError,
    InvalidRoleError,
    InvalidStateError,
    NotFoundError,
)
from firmdesk.db.enums import Role
from firmdesk.db.models import Membership, Organization, User


logger = logging.getLogger(__name__)


def coerce_role(role: Role | str) -> Role:
    """Return a Role or raise InvalidRoleError for anything outside the enum."""
    if isinstance(role, Role):
        return role
    if isinstance(role, str) and Role.has_value(role):
        return Role(role)
    raise InvalidRoleError(f"Invalid role: {role!r}")


def get_membership(db: Session, org_id: UUID, user_id: UUID) -> Membership | None:
    """Get membership scoped to an organization."""
    return (
        db.query(Membership)
        .filter(
            Membership.organization_id == org_id,
            Membership.user_id == user_id,
        )
        .first()
    )


def grant(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    role: Role | str,
    *,
    commit: bool = True,
) -> Membership:
    """
    Grant a user a role in an organization.

    The (user, organization) unique constraint is the source of truth: a
    concurrent grant that slips past the pre-check still fails at flush.
    Pass commit=False to enlist the grant in a larger unit of work.

    Raises:
        InvalidRoleError: role outside {admin, staff}
        NotFoundError: user or organization missing
        DuplicateMembershipError: membership already exists
    """
    role = coerce_role(role)

    if db.get(Organization, org_id) is None:
        raise NotFoundError(f"Organization {org_id} not found")
    if db.get(User, user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    if get_membership(db, org_id, user_id):
        raise DuplicateMembershipError("User is already a member of this organization")

    membership = Membership(organization_id=org_id, user_id=user_id, role=role.value)
    try:
        with db.begin_nested():
            db.add(membership)
    except IntegrityError as exc:
        raise DuplicateMembershipError(
            "User is already a member of this organization"
        ) from exc

    if commit:
        db.commit()
    logger.info("Granted %s to user %s in org %s", role.value, user_id, org_id)
    return membership


def revoke(db: Session, org_id: UUID, user_id: UUID, *, commit: bool = True) -> bool:
    """
    Delete a membership. Idempotent: returns False if there was none.

    Does not protect the last admin; use remove_member for that.
    """
    deleted = (
        db.query(Membership)
        .filter(
            Membership.organization_id == org_id,
            Membership.user_id == user_id,
        )
        .delete(synchronize_session="fetch")
    )
    if commit:
        db.commit()
    if deleted:
        logger.info("Revoked membership of user %s in org %s", user_id, org_id)
    return deleted > 0


def role_of(db: Session, org_id: UUID, user_id: UUID) -> Role | None:
    """Return the user's role in the organization, or None."""
    membership = get_membership(db, org_id, user_id)
    return Role(membership.role) if membership else None


def is_admin(db: Session, org_id: UUID, user_id: UUID) -> bool:
    return role_of(db, org_id, user_id) == Role.ADMIN


def is_member(db: Session, org_id: UUID, user_id: UUID) -> bool:
    return get_membership(db, org_id, user_id) is not None


def list_memberships(db: Session, org_id: UUID) -> list[Membership]:
    """List the organization roster, oldest first."""
    return (
        db.query(Membership)
        .filter(Membership.organization_id == org_id)
        .order_by(Membership.created_at)
        .all()
    )


def list_user_memberships(db: Session, user_id: UUID) -> list[Membership]:
    """List every organization membership held by a user."""
    return (
        db.query(Membership)
        .filter(Membership.user_id == user_id)
        .order_by(Membership.created_at)
        .all()
    )


def users_with_role(db: Session, org_id: UUID, role: Role) -> list[User]:
    """Users holding a given role in the organization."""
    return (
        db.query(User)
        .join(Membership, Membership.user_id == User.id)
        .filter(
            Membership.organization_id == org_id,
            Membership.role == role.value,
        )
        .order_by(Membership.created_at)
        .all()
    )


def count_admins(db: Session, org_id: UUID) -> int:
    return db.query(func.count(Membership.id)).filter(
        Membership.organization_id == org_id,
        Membership.role == Role.ADMIN.value,
    ).scalar() or 0


def change_role(db: Session, org_id: UUID, user_id: UUID, role: Role | str) -> Membership:
    """
    Change a member's role, keeping at least one admin in the organization.

    Raises:
        InvalidRoleError, NotFoundError, InvalidStateError (last admin demoted)
    """
    role = coerce_role(role)
    membership = get_membership(db, org_id, user_id)
    if not membership:
        raise NotFoundError("User is not a member of this organization")

    if membership.role == Role.ADMIN.value and role != Role.ADMIN and count_admins(db, org_id) <= 1:
        raise InvalidStateError("Cannot demote the last admin of an organization")

    membership.role = role.value
    db.commit()
    logger.info("Changed role of user %s in org %s to %s", user_id, org_id, role.value)
    return membership


def remove_member(db: Session, org_id: UUID, user_id: UUID) -> None:
    """
    Remove a member, keeping at least one admin in the organization.

    Raises:
        NotFoundError: user is not a member
        InvalidStateError: user is the last admin
    """
    membership = get_membership(db, org_id, user_id)
    if not membership:
        raise NotFoundError("User is not a member of this organization")
    if membership.role == Role.ADMIN.value and count_admins(db, org_id) <= 1:
        raise InvalidStateError("Cannot remove the last admin of an organization")
    revoke(db, org_id, user_id)
