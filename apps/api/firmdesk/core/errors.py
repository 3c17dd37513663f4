"""Domain exceptions raised by the service layer.

Every error is reported to the caller. ``retryable`` tells the caller whether
the same call can succeed once the triggering condition is corrected.
"""


class DomainError(Exception):
    """Base exception for service errors."""

    retryable = True


class ValidationError(DomainError, ValueError):
    """Malformed input; fix the input and retry."""

    pass


class InvalidRoleError(ValidationError):
    """Role is not one of the fixed organization roles."""

    pass


class UnsupportedFileTypeError(ValidationError):
    """Document content type is blocked or not on the allow-list."""

    pass


class DuplicateMembershipError(DomainError):
    """User already has a membership in the organization."""

    pass


class ExpiredInvitationError(DomainError):
    """Invitation expiry time has passed."""

    pass


class AlreadyAcceptedError(DomainError):
    """Invitation was already accepted."""

    retryable = False


class InvalidStateError(DomainError):
    """State-machine guard rejected the transition."""

    retryable = False


class NotFoundError(DomainError):
    """Entity does not exist or is outside the caller's organization."""

    pass


class InvalidTokenError(DomainError):
    """Confirmation or reset token is unknown, used, or expired."""

    pass


def validation_error_from(exc: Exception) -> ValidationError:
    """Translate a pydantic validation failure into a domain ValidationError."""
    errors = getattr(exc, "errors", None)
    if callable(errors):
        parts = []
        for err in errors():
            field = ".".join(str(p) for p in err.get("loc", ())) or "input"
            parts.append(f"{field}: {err.get('msg', 'invalid value')}")
        if parts:
            return ValidationError("; ".join(parts))
    return ValidationError(str(exc))
