"""Invite-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, field_validator

from firmdesk.db.enums import InviteStatus, Role


class InviteCreate(BaseModel):
    """
    Input schema for issuing an invite.

    Validates:
    - Email format
    - Role is valid enum value
    - Email is normalized to lowercase
    """
    email: EmailStr
    role: Role

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class InviteRead(BaseModel):
    """Read schema for an invite (token is never included)."""
    id: UUID
    organization_id: UUID
    email: str
    role: Role
    status: InviteStatus
    expires_at: datetime
    accepted_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
