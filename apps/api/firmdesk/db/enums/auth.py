"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Organization roles. Exactly two levels per organization.

    - ADMIN: manages members, invitations and organization settings
    - STAFF: works documents and threads
    """

    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class AuthProvider(str, Enum):
    """Supported identity providers."""

    GOOGLE = "google"
    MICROSOFT = "microsoft"
