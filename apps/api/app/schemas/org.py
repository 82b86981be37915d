"""Organization and membership Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.db.enums import Role


class OrgCreate(BaseModel):
    """Request schema for creating an organization."""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        """Validate slug format: lowercase, alphanumeric with hyphens/underscores."""
        v = v.lower().strip()
        if not v.replace("-", "").replace("_", "").isalnum():
            raise ValueError(
                "Slug must be alphanumeric with optional hyphens/underscores"
            )
        return v


class OrgRead(BaseModel):
    """Response schema for reading an organization."""

    id: UUID
    name: str
    slug: str
    is_demo: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class OrgSwitch(BaseModel):
    org_id: UUID


class OrgNameUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class MemberRead(BaseModel):
    user_id: UUID
    email: str
    display_name: str
    role: Role
    created_at: datetime


class MemberRoleUpdate(BaseModel):
    role: Role
