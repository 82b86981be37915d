"""Invite-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, field_validator

from app.db.enums import InviteStatus, Role


class InviteCreate(BaseModel):
    """
    Request schema for creating an invite.

    Validates:
    - Email format
    - Role is valid enum value
    - Email is normalized to lowercase
    """
    email: EmailStr
    role: Role

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower()


class InviteRead(BaseModel):
    """Response schema for reading an invite."""
    id: UUID
    email: str
    role: Role
    status: InviteStatus
    expires_at: datetime
    accepted_at: datetime | None
    created_at: datetime
    invited_by_user_id: UUID | None


class InviteAccept(BaseModel):
    """Request schema for accepting an invite."""
    token: str
