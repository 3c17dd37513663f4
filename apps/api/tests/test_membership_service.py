"""Tests for membership grants, revocations and role lookups."""

import uuid

import pytest

from firmdesk.core.errors import (
    DuplicateMembershipError,
    InvalidRoleError,
    InvalidStateError,
    NotFoundError,
)
from firmdesk.db.enums import Role
from firmdesk.db.models import Membership
from firmdesk.services import membership_service


def test_grant_creates_membership(db, test_firm, make_user):
    user = make_user()

    membership = membership_service.grant(db, test_firm.id, user.id, Role.STAFF)

    assert membership.role == Role.STAFF.value
    assert membership_service.role_of(db, test_firm.id, user.id) == Role.STAFF
    assert membership_service.is_member(db, test_firm.id, user.id)
    assert not membership_service.is_admin(db, test_firm.id, user.id)


def test_grant_accepts_role_string(db, test_firm, make_user):
    user = make_user()

    membership_service.grant(db, test_firm.id, user.id, "admin")

    assert membership_service.is_admin(db, test_firm.id, user.id)


def test_grant_rejects_invalid_role(db, test_firm, make_user):
    user = make_user()

    with pytest.raises(InvalidRoleError):
        membership_service.grant(db, test_firm.id, user.id, "owner")

    assert membership_service.role_of(db, test_firm.id, user.id) is None


def test_duplicate_grant_fails(db, test_firm, staff_user):
    with pytest.raises(DuplicateMembershipError):
        membership_service.grant(db, test_firm.id, staff_user.id, Role.ADMIN)

    # Existing role is untouched
    assert membership_service.role_of(db, test_firm.id, staff_user.id) == Role.STAFF


def test_store_constraint_rejects_duplicate_when_precheck_is_bypassed(
    db, test_firm, staff_user, monkeypatch
):
    """A racing grant that passes the pre-check still fails at the constraint."""
    monkeypatch.setattr(membership_service, "get_membership", lambda *_args: None)

    with pytest.raises(DuplicateMembershipError):
        membership_service.grant(db, test_firm.id, staff_user.id, Role.STAFF)

    count = db.query(Membership).filter(Membership.user_id == staff_user.id).count()
    assert count == 1


def test_grant_missing_user_or_org(db, test_firm, make_user):
    user = make_user()

    with pytest.raises(NotFoundError):
        membership_service.grant(db, uuid.uuid4(), user.id, Role.STAFF)
    with pytest.raises(NotFoundError):
        membership_service.grant(db, test_firm.id, uuid.uuid4(), Role.STAFF)


def test_same_user_can_belong_to_several_orgs(db, test_firm, test_client_org, staff_user):
    membership_service.grant(db, test_client_org.id, staff_user.id, Role.ADMIN)

    roles = {
        m.organization_id: m.role
        for m in membership_service.list_user_memberships(db, staff_user.id)
    }
    assert roles == {test_firm.id: "staff", test_client_org.id: "admin"}


def test_revoke_is_idempotent(db, test_firm, staff_user):
    assert membership_service.revoke(db, test_firm.id, staff_user.id) is True
    assert membership_service.revoke(db, test_firm.id, staff_user.id) is False
    assert membership_service.role_of(db, test_firm.id, staff_user.id) is None


def test_revoke_does_not_guard_last_admin(db, test_firm, test_user):
    membership_service.revoke(db, test_firm.id, test_user.id)

    assert membership_service.count_admins(db, test_firm.id) == 0


def test_remove_member_refuses_last_admin(db, test_firm, test_user, staff_user):
    with pytest.raises(InvalidStateError):
        membership_service.remove_member(db, test_firm.id, test_user.id)

    membership_service.remove_member(db, test_firm.id, staff_user.id)
    assert not membership_service.is_member(db, test_firm.id, staff_user.id)


def test_remove_member_allows_admin_when_another_admin_remains(db, test_firm, test_user, make_user):
    other = make_user()
    membership_service.grant(db, test_firm.id, other.id, Role.ADMIN)

    membership_service.remove_member(db, test_firm.id, test_user.id)

    assert membership_service.count_admins(db, test_firm.id) == 1


def test_change_role_keeps_one_admin(db, test_firm, test_user, staff_user):
    with pytest.raises(InvalidStateError):
        membership_service.change_role(db, test_firm.id, test_user.id, Role.STAFF)

    membership_service.change_role(db, test_firm.id, staff_user.id, Role.ADMIN)
    membership_service.change_role(db, test_firm.id, test_user.id, Role.STAFF)

    assert membership_service.role_of(db, test_firm.id, test_user.id) == Role.STAFF
    assert membership_service.role_of(db, test_firm.id, staff_user.id) == Role.ADMIN


def test_change_role_for_non_member(db, test_firm, make_user):
    with pytest.raises(NotFoundError):
        membership_service.change_role(db, test_firm.id, make_user().id, Role.ADMIN)
