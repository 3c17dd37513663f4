"""User service - identity store, email confirmation and password reset."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from firmdesk.core.config import settings
from firmdesk.core.errors import (
    InvalidStateError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
    validation_error_from,
)
from firmdesk.core.security import generate_token, hash_token, token_matches
from firmdesk.db.enums import AuthProvider
from firmdesk.db.models import AuthIdentity, User
from firmdesk.db.types import utcnow
from firmdesk.schemas.user import UserCreate
from firmdesk.utils.normalization import normalize_email

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case/whitespace-insensitive)."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.query(User).filter(User.email == normalized).first()


def require_user(db: Session, user_id: UUID) -> User:
    """Get user by ID or raise NotFoundError."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def create_user(
    db: Session,
    email: str,
    display_name: str,
    password_digest: str | None = None,
) -> User:
    """
    Register a new, unconfirmed user.

    Raises:
        ValidationError: malformed email/name or email already registered
    """
    try:
        data = UserCreate(
            email=email, display_name=display_name, password_digest=password_digest
        )
    except PydanticValidationError as exc:
        raise validation_error_from(exc) from exc

    if get_user_by_email(db, data.email):
        raise ValidationError("A user with this email already exists")

    user = User(
        email=data.email,
        display_name=data.display_name,
        password_digest=data.password_digest,
    )
    try:
        with db.begin_nested():
            db.add(user)
    except IntegrityError as exc:
        raise ValidationError("A user with this email already exists") from exc
    db.commit()
    logger.info("Created user %s", user.id)
    return user


def find_user_by_identity(
    db: Session,
    provider: AuthProvider,
    provider_subject: str,
) -> User | None:
    """Find user by their external identity provider credentials."""
    identity = db.query(AuthIdentity).filter(
        AuthIdentity.provider == provider.value,
        AuthIdentity.provider_subject == provider_subject,
    ).first()
    return identity.user if identity else None


def get_or_create_oauth_user(
    db: Session,
    provider: AuthProvider,
    provider_subject: str,
    email: str,
    display_name: str | None = None,
) -> tuple[User, bool]:
    """
    Resolve the user for an OAuth login, creating them on first login.

    An existing account with the same email is linked to the new identity.
    The provider has verified the email, so new and linked accounts are
    marked confirmed.

    Returns:
        (user, created)
    """
    user = find_user_by_identity(db, provider, provider_subject)
    if user:
        return user, False

    normalized = normalize_email(email)
    if not normalized:
        raise ValidationError("OAuth identity has no email")

    created = False
    user = get_user_by_email(db, normalized)
    with db.begin_nested():
        if not user:
            try:
                data = UserCreate(
                    email=normalized,
                    display_name=display_name or normalized.split("@")[0],
                )
            except PydanticValidationError as exc:
                raise validation_error_from(exc) from exc
            user = User(email=data.email, display_name=data.display_name)
            db.add(user)
            db.flush()
            created = True
        if user.email_confirmed_at is None:
            user.email_confirmed_at = utcnow()
            user.confirmation_token_digest = None
        db.add(
            AuthIdentity(
                user_id=user.id,
                provider=provider.value,
                provider_subject=provider_subject,
                email=normalized,
            )
        )
    db.commit()
    logger.info("Linked %s identity to user %s (created=%s)", provider.value, user.id, created)
    return user, created


# =============================================================================
# Email confirmation
# =============================================================================

def issue_confirmation_token(db: Session, user_id: UUID) -> str:
    """
    Issue a fresh email confirmation token, replacing any previous one.

    Raises:
        InvalidStateError: user is already confirmed
    """
    user = require_user(db, user_id)
    if user.email_confirmed_at is not None:
        raise InvalidStateError("Email is already confirmed")

    token = generate_token()
    user.confirmation_token_digest = hash_token(token)
    user.confirmation_sent_at = utcnow()
    db.commit()
    return token


def confirm_email(db: Session, token: str, now: datetime | None = None) -> User:
    """
    Confirm a user's email. One-way: the token is consumed.

    Raises:
        InvalidTokenError: unknown, used or expired (older than 24 hours) token
    """
    now = now or utcnow()
    digest = hash_token(token)
    user = db.query(User).filter(User.confirmation_token_digest == digest).first()
    if not user or not token_matches(token, user.confirmation_token_digest):
        raise InvalidTokenError("Confirmation token is invalid")

    expiry = timedelta(hours=settings.EMAIL_CONFIRMATION_EXPIRY_HOURS)
    if user.confirmation_sent_at is None or now >= user.confirmation_sent_at + expiry:
        raise InvalidTokenError("Confirmation token has expired")

    user.email_confirmed_at = now
    user.confirmation_token_digest = None
    db.commit()
    logger.info("Confirmed email for user %s", user.id)
    return user


# =============================================================================
# Password reset
# =============================================================================

def issue_password_reset_token(db: Session, user_id: UUID) -> str:
    """Issue a single-use password reset token for an active user."""
    user = require_user(db, user_id)
    if not user.is_active:
        raise InvalidStateError("User is disabled")

    token = generate_token()
    user.password_reset_token_digest = hash_token(token)
    user.password_reset_sent_at = utcnow()
    db.commit()
    return token


def reset_password(
    db: Session,
    token: str,
    new_password_digest: str,
    now: datetime | None = None,
) -> User:
    """
    Replace the stored credential digest using a reset token.

    Raises:
        ValidationError: empty digest
        InvalidTokenError: unknown, used or expired token
    """
    if not new_password_digest:
        raise ValidationError("Password digest cannot be empty")

    now = now or utcnow()
    digest = hash_token(token)
    user = db.query(User).filter(User.password_reset_token_digest == digest).first()
    if not user or not token_matches(token, user.password_reset_token_digest):
        raise InvalidTokenError("Password reset token is invalid")

    expiry = timedelta(minutes=settings.PASSWORD_RESET_EXPIRY_MINUTES)
    if user.password_reset_sent_at is None or now >= user.password_reset_sent_at + expiry:
        raise InvalidTokenError("Password reset token has expired")

    user.password_digest = new_password_digest
    user.password_reset_token_digest = None
    user.password_reset_sent_at = None
    db.commit()
    logger.info("Reset password for user %s", user.id)
    return user


def disable_user(db: Session, user_id: UUID) -> bool:
    """
    Disable user account.

    Returns:
        True if user found and disabled, False if user not found
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        return False

    user.is_active = False
    user.password_reset_token_digest = None
    db.commit()
    return True
