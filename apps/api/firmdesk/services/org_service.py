"""Organization service - the firm/client hierarchy and roster views."""

import logging
import uuid
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from firmdesk.core.errors import NotFoundError, ValidationError
from firmdesk.db.enums import OrganizationKind, Role
from firmdesk.db.models import Client, Firm, Membership, Organization, User
from firmdesk.services import membership_service
from firmdesk.utils.normalization import slugify

logger = logging.getLogger(__name__)


def build_organization(
    kind: OrganizationKind,
    name: str,
    parent: Organization | None = None,
    slug: str | None = None,
) -> Organization:
    """
    Construct (but do not persist) a Firm or Client.

    Enforces the variant invariant: a Client requires a parent Firm, a Firm
    must not have a parent.

    Raises:
        ValidationError
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name cannot be blank")

    slug = slugify(slug) if slug else uuid.uuid4().hex
    if not slug:
        raise ValidationError("Organization slug cannot be blank")

    if kind == OrganizationKind.FIRM:
        if parent is not None:
            raise ValidationError("A firm cannot have a parent organization")
        return Firm(name=name, slug=slug)

    if kind == OrganizationKind.CLIENT:
        if parent is None:
            raise ValidationError("A client requires a parent firm")
        if not isinstance(parent, Firm):
            raise ValidationError("A client's parent must be a firm")
        return Client(name=name, slug=slug, parent_id=parent.id)

    raise ValidationError(f"Unknown organization kind: {kind!r}")


def _persist(db: Session, org: Organization) -> None:
    try:
        with db.begin_nested():
            db.add(org)
    except IntegrityError as exc:
        raise ValidationError("Organization slug is already taken") from exc


def get_org_by_id(db: Session, org_id: UUID) -> Organization | None:
    """Get organization by ID."""
    return db.query(Organization).filter(Organization.id == org_id).first()


def require_org(db: Session, org_id: UUID) -> Organization:
    """Get organization by ID or raise NotFoundError."""
    org = get_org_by_id(db, org_id)
    if not org:
        raise NotFoundError(f"Organization {org_id} not found")
    return org


def get_org_by_slug(db: Session, slug: str) -> Organization | None:
    """Get organization by slug."""
    return db.query(Organization).filter(Organization.slug == slug.lower()).first()


def get_org_for_user_by_slug(db: Session, user_id: UUID, slug: str) -> Organization:
    """
    Resolve an organization from a URL slug, restricted to the user's memberships.

    Raises:
        NotFoundError: no such slug, or the user is not a member
    """
    org = (
        db.query(Organization)
        .join(Membership, Membership.organization_id == Organization.id)
        .filter(
            Organization.slug == slug.lower(),
            Membership.user_id == user_id,
        )
        .first()
    )
    if not org:
        raise NotFoundError("Organization not found")
    return org


def create_firm(db: Session, name: str, owner_user_id: UUID, slug: str | None = None) -> Firm:
    """
    Create a firm and make the owner its first admin, atomically.

    Raises:
        ValidationError: blank name or taken slug
        NotFoundError: owner does not exist
    """
    firm = build_organization(OrganizationKind.FIRM, name, slug=slug)
    if db.get(User, owner_user_id) is None:
        raise NotFoundError(f"User {owner_user_id} not found")

    firm.owner_user_id = owner_user_id
    with db.begin_nested():
        _persist(db, firm)
        membership_service.grant(db, firm.id, owner_user_id, Role.ADMIN, commit=False)
    db.commit()
    logger.info("Created firm %s owned by user %s", firm.id, owner_user_id)
    return firm


def create_client(db: Session, name: str, parent_firm_id: UUID, slug: str | None = None) -> Client:
    """
    Create a client organization under a firm.

    Raises:
        ValidationError: blank name, taken slug, or parent is not a firm
    """
    parent = get_org_by_id(db, parent_firm_id) if parent_firm_id else None
    if parent_firm_id and parent is None:
        raise ValidationError("Parent firm does not exist")

    client = build_organization(OrganizationKind.CLIENT, name, parent=parent, slug=slug)
    _persist(db, client)
    db.commit()
    logger.info("Created client %s under firm %s", client.id, parent_firm_id)
    return client


def list_clients(db: Session, firm_id: UUID) -> list[Client]:
    """List the client organizations of a firm, by name."""
    return (
        db.query(Client)
        .filter(Client.parent_id == firm_id)
        .order_by(Client.name)
        .all()
    )


def rename_org(db: Session, org_id: UUID, name: str) -> Organization:
    """
    Rename an organization.

    Note: Slug is not updateable to preserve URL stability.
    """
    org = require_org(db, org_id)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Organization name cannot be blank")
    org.name = name
    db.commit()
    return org


# =============================================================================
# Roster views (derived from memberships, never stored separately)
# =============================================================================

def admins(db: Session, org_id: UUID) -> list[User]:
    """Users with the admin role in the organization."""
    return membership_service.users_with_role(db, org_id, Role.ADMIN)


def staff(db: Session, org_id: UUID) -> list[User]:
    """Users with the staff role in the organization."""
    return membership_service.users_with_role(db, org_id, Role.STAFF)


def list_members(db: Session, org_id: UUID) -> list[User]:
    """Every user on the organization's roster."""
    return [m.user for m in membership_service.list_memberships(db, org_id)]
