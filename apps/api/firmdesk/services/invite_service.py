"""Invitation service - issue, resolve, accept and cancel time-boxed invites.

State is derived, never stored as a status column:

- pending:  accepted_at is NULL and now <  expires_at
- expired:  accepted_at is NULL and now >= expires_at
- accepted: accepted_at is set (terminal)

Cancelling deletes the row.

Invitations are bearer tokens. Whoever presents the token while signed in
may accept it, even if their account email differs from the invited email.
Set INVITE_REQUIRE_EMAIL_MATCH to bind acceptance to the invited address.
"""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from firmdesk.core.config import settings
from firmdesk.core.errors import (
    AlreadyAcceptedError,
    ExpiredInvitationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    validation_error_from,
)
from firmdesk.core.security import generate_token, hash_token, token_matches
from firmdesk.db.enums import InviteStatus, NotificationEvent, Role
from firmdesk.db.models import Membership, OrgInvite, User
from firmdesk.db.types import utcnow
from firmdesk.schemas.invite import InviteCreate, InviteRead
from firmdesk.services import membership_service, notification_service, org_service

logger = logging.getLogger(__name__)

TOKEN_ATTEMPTS = 3


def get_invite_status(invite: OrgInvite, now: datetime | None = None) -> InviteStatus:
    """Derive invite status from fields."""
    if invite.accepted_at is not None:
        return InviteStatus.ACCEPTED
    now = now or utcnow()
    if now >= invite.expires_at:
        return InviteStatus.EXPIRED
    return InviteStatus.PENDING


def serialize_invite(invite: OrgInvite, now: datetime | None = None) -> InviteRead:
    """Build the read schema (without the token)."""
    return InviteRead(
        id=invite.id,
        organization_id=invite.organization_id,
        email=invite.email,
        role=Role(invite.role),
        status=get_invite_status(invite, now),
        expires_at=invite.expires_at,
        accepted_at=invite.accepted_at,
        created_at=invite.created_at,
    )


def _pending_filter(org_id: UUID, now: datetime):
    return (
        OrgInvite.organization_id == org_id,
        OrgInvite.accepted_at.is_(None),
        OrgInvite.expires_at > now,
    )


def list_invites(db: Session, org_id: UUID) -> list[OrgInvite]:
    """List all invites for organization (including accepted/expired for history)."""
    return db.query(OrgInvite).filter(
        OrgInvite.organization_id == org_id
    ).order_by(OrgInvite.created_at.desc()).all()


def list_pending_invites(
    db: Session, org_id: UUID, now: datetime | None = None
) -> list[OrgInvite]:
    """List only pending (active) invites, newest first."""
    now = now or utcnow()
    return db.query(OrgInvite).filter(
        *_pending_filter(org_id, now)
    ).order_by(OrgInvite.created_at.desc()).all()


def list_expired_invites(
    db: Session, org_id: UUID, now: datetime | None = None
) -> list[OrgInvite]:
    """List unaccepted invites past their expiry, newest first."""
    now = now or utcnow()
    return db.query(OrgInvite).filter(
        OrgInvite.organization_id == org_id,
        OrgInvite.accepted_at.is_(None),
        OrgInvite.expires_at <= now,
    ).order_by(OrgInvite.created_at.desc()).all()


def count_pending_invites(db: Session, org_id: UUID, now: datetime | None = None) -> int:
    """Count active pending invites for rate limiting."""
    now = now or utcnow()
    return db.query(func.count(OrgInvite.id)).filter(
        *_pending_filter(org_id, now)
    ).scalar() or 0


def get_invite(db: Session, org_id: UUID, invite_id: UUID) -> OrgInvite | None:
    """Get single invite by ID."""
    return db.query(OrgInvite).filter(
        OrgInvite.id == invite_id,
        OrgInvite.organization_id == org_id,
    ).first()


def issue_invite(
    db: Session,
    org_id: UUID,
    email: str,
    role: Role | str,
    invited_by_user_id: UUID,
) -> OrgInvite:
    """
    Issue a new invitation valid for INVITE_EXPIRY_DAYS.

    The returned instance carries the plaintext ``token``; it is not
    recoverable afterwards.

    Raises:
        InvalidRoleError: role outside {admin, staff}
        ValidationError: malformed email, inviter not an admin, email
            already a member or already invited, too many pending invites
        NotFoundError: organization missing
    """
    role = membership_service.coerce_role(role)
    try:
        data = InviteCreate(email=email, role=role)
    except PydanticValidationError as exc:
        raise validation_error_from(exc) from exc

    org_service.require_org(db, org_id)

    if not membership_service.is_admin(db, org_id, invited_by_user_id):
        raise ValidationError("Only organization admins can issue invitations")

    now = utcnow()
    if count_pending_invites(db, org_id, now) >= settings.MAX_PENDING_INVITES_PER_ORG:
        raise ValidationError(
            f"Maximum of {settings.MAX_PENDING_INVITES_PER_ORG} pending invites reached"
        )

    existing_member = (
        db.query(Membership)
        .join(User, User.id == Membership.user_id)
        .filter(
            Membership.organization_id == org_id,
            User.email == data.email,
        )
        .first()
    )
    if existing_member:
        raise ValidationError("User is already a member of this organization")

    existing_invite = db.query(OrgInvite).filter(
        *_pending_filter(org_id, now),
        OrgInvite.email == data.email,
    ).first()
    if existing_invite:
        raise ValidationError("A pending invite already exists for this email")

    for attempt in range(1, TOKEN_ATTEMPTS + 1):
        token = generate_token()
        invite = OrgInvite(
            organization_id=org_id,
            email=data.email,
            role=data.role.value,
            invited_by_user_id=invited_by_user_id,
            token_digest=hash_token(token),
            created_at=now,
            expires_at=now + timedelta(days=settings.INVITE_EXPIRY_DAYS),
        )
        try:
            with db.begin_nested():
                db.add(invite)
        except IntegrityError:
            if attempt == TOKEN_ATTEMPTS:
                raise
            logger.warning("Invite token collision in org %s, retrying", org_id)
            continue
        break

    notification_service.emit(
        db, org_id, NotificationEvent.INVITATION_ISSUED, invite.id, invited_by_user_id
    )
    db.commit()
    invite.token = token
    logger.info("Issued invite %s in org %s (role=%s)", invite.id, org_id, data.role.value)
    return invite


def resolve_invite(db: Session, token: str) -> OrgInvite:
    """
    Look up an invite by its bearer token.

    The lookup is by SHA-256 digest, so index timing reveals nothing about
    the token itself; the final comparison is constant-time.

    Raises:
        NotFoundError
    """
    if not token:
        raise NotFoundError("Invitation not found")
    invite = db.query(OrgInvite).filter(OrgInvite.token_digest == hash_token(token)).first()
    if not invite or not token_matches(token, invite.token_digest):
        raise NotFoundError("Invitation not found")
    return invite


def accept_invite(
    db: Session,
    token: str,
    user_id: UUID,
    now: datetime | None = None,
) -> Membership:
    """
    Accept an invite and create the membership, both or neither.

    The accepted_at write is a conditional UPDATE (accepted_at IS NULL), so of
    several concurrent accepts only one can succeed.

    Raises:
        NotFoundError: unknown token or user
        AlreadyAcceptedError: invite already accepted
        ExpiredInvitationError: now >= expires_at
        ValidationError: email mismatch while INVITE_REQUIRE_EMAIL_MATCH is set
        DuplicateMembershipError: user already belongs to the organization
    """
    invite = resolve_invite(db, token)
    now = now or utcnow()

    status = get_invite_status(invite, now)
    if status == InviteStatus.ACCEPTED:
        raise AlreadyAcceptedError("Invitation has already been accepted")
    if status == InviteStatus.EXPIRED:
        raise ExpiredInvitationError("Invitation has expired")

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    email_matches = user.email == invite.email
    if not email_matches:
        if settings.INVITE_REQUIRE_EMAIL_MATCH:
            raise ValidationError("Invitation was issued to a different email address")
        logger.info("Invite %s accepted by user %s with a different email", invite.id, user_id)

    with db.begin_nested():
        result = db.execute(
            update(OrgInvite)
            .where(
                OrgInvite.id == invite.id,
                OrgInvite.accepted_at.is_(None),
            )
            .values(accepted_at=now, accepted_by_user_id=user_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyAcceptedError("Invitation has already been accepted")
        membership = membership_service.grant(
            db, invite.organization_id, user_id, invite.role, commit=False
        )

    db.commit()
    logger.info(
        "Accepted invite %s: user %s joined org %s as %s",
        invite.id,
        user_id,
        membership.organization_id,
        membership.role,
    )
    return membership


def cancel_invite(db: Session, org_id: UUID, invite_id: UUID) -> None:
    """
    Cancel (delete) an invite that has not been accepted.

    Raises:
        NotFoundError: no such invite in this organization
        InvalidStateError: invite already accepted
    """
    invite = get_invite(db, org_id, invite_id)
    if not invite:
        raise NotFoundError("Invitation not found")
    if invite.accepted_at is not None:
        raise InvalidStateError("Cannot cancel an accepted invite")

    db.delete(invite)
    db.commit()
    logger.info("Cancelled invite %s in org %s", invite_id, org_id)
