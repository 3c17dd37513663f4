"""Invitation-related enums."""

from enum import Enum


class InviteStatus(str, Enum):
    """Derived invitation state (expired is computed from the clock)."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
