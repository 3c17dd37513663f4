"""Tests for user registration, email confirmation, password reset and OAuth linking."""

import uuid
from datetime import timedelta

import pytest

from firmdesk.core.errors import InvalidStateError, InvalidTokenError, NotFoundError, ValidationError
from firmdesk.core.security import hash_token
from firmdesk.db.enums import AuthProvider
from firmdesk.db.models import AuthIdentity, User
from firmdesk.services import user_service


def test_create_user_normalizes_email(db):
    user = user_service.create_user(db, "  Jane.Doe@Example.COM ", " Jane ")

    assert user.email == "jane.doe@example.com"
    assert user.display_name == "Jane"
    assert user.is_active is True
    assert user.is_confirmed is False
    assert user_service.get_user_by_email(db, "JANE.DOE@example.com").id == user.id


def test_create_user_rejects_duplicates_and_bad_input(db, make_user):
    make_user(email="taken@example.com")

    with pytest.raises(ValidationError):
        user_service.create_user(db, "Taken@Example.com", "Other")
    with pytest.raises(ValidationError):
        user_service.create_user(db, "not-an-email", "Name")
    with pytest.raises(ValidationError):
        user_service.create_user(db, "blank@example.com", "   ")

    assert db.query(User).count() == 1


def test_require_user(db, test_user):
    assert user_service.require_user(db, test_user.id).id == test_user.id
    with pytest.raises(NotFoundError):
        user_service.require_user(db, uuid.uuid4())


def test_confirm_email_within_window(db, test_user):
    token = user_service.issue_confirmation_token(db, test_user.id)

    assert test_user.confirmation_token_digest == hash_token(token)
    confirmed = user_service.confirm_email(
        db, token, now=test_user.confirmation_sent_at + timedelta(hours=23)
    )

    assert confirmed.id == test_user.id
    assert confirmed.is_confirmed
    assert confirmed.confirmation_token_digest is None


def test_confirmation_token_is_single_use(db, test_user):
    token = user_service.issue_confirmation_token(db, test_user.id)
    user_service.confirm_email(db, token)

    with pytest.raises(InvalidTokenError):
        user_service.confirm_email(db, token)
    with pytest.raises(InvalidStateError):
        user_service.issue_confirmation_token(db, test_user.id)


def test_confirmation_token_expires_after_24_hours(db, test_user):
    token = user_service.issue_confirmation_token(db, test_user.id)

    with pytest.raises(InvalidTokenError):
        user_service.confirm_email(
            db, token, now=test_user.confirmation_sent_at + timedelta(hours=24)
        )
    assert test_user.is_confirmed is False


def test_reissuing_confirmation_invalidates_previous_token(db, test_user):
    old = user_service.issue_confirmation_token(db, test_user.id)
    new = user_service.issue_confirmation_token(db, test_user.id)

    with pytest.raises(InvalidTokenError):
        user_service.confirm_email(db, old)
    user_service.confirm_email(db, new)


def test_password_reset(db, test_user):
    token = user_service.issue_password_reset_token(db, test_user.id)

    user = user_service.reset_password(db, token, "new-digest")

    assert user.password_digest == "new-digest"
    assert user.password_reset_token_digest is None
    with pytest.raises(InvalidTokenError):
        user_service.reset_password(db, token, "another-digest")


def test_password_reset_expiry_and_validation(db, test_user):
    token = user_service.issue_password_reset_token(db, test_user.id)

    with pytest.raises(ValidationError):
        user_service.reset_password(db, token, "")
    with pytest.raises(InvalidTokenError):
        user_service.reset_password(
            db, token, "digest", now=test_user.password_reset_sent_at + timedelta(minutes=15)
        )


def test_disabled_user_cannot_reset(db, test_user):
    assert user_service.disable_user(db, test_user.id) is True

    with pytest.raises(InvalidStateError):
        user_service.issue_password_reset_token(db, test_user.id)


def test_oauth_login_creates_confirmed_user(db):
    user, created = user_service.get_or_create_oauth_user(
        db, AuthProvider.GOOGLE, "google-sub-1", "New.Person@Example.com"
    )

    assert created is True
    assert user.email == "new.person@example.com"
    assert user.display_name == "new.person"
    assert user.is_confirmed

    again, created_again = user_service.get_or_create_oauth_user(
        db, AuthProvider.GOOGLE, "google-sub-1", "new.person@example.com"
    )
    assert created_again is False
    assert again.id == user.id


def test_oauth_login_links_existing_account(db, make_user):
    existing = make_user(email="linked@example.com")

    user, created = user_service.get_or_create_oauth_user(
        db, AuthProvider.MICROSOFT, "ms-sub-9", "LINKED@example.com", "Linked"
    )

    assert created is False
    assert user.id == existing.id
    assert user.is_confirmed
    assert db.query(AuthIdentity).filter(AuthIdentity.user_id == existing.id).count() == 1
    assert user_service.find_user_by_identity(db, AuthProvider.MICROSOFT, "ms-sub-9").id == existing.id
    assert user_service.find_user_by_identity(db, AuthProvider.GOOGLE, "ms-sub-9") is None
