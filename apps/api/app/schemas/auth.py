"""Authentication and tenant-context Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field

from app.core import permissions
from app.core.permissions import Capability
from app.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    org_id: UUID | None = None  # active org
    token_version: int


class OrgContext(BaseModel):
    """
    Request-scoped tenant binding.

    Resolved once per request and passed explicitly into every service
    call; never stored globally.
    """

    model_config = ConfigDict(frozen=True)

    org_id: UUID
    org_name: str = ""
    org_slug: str = ""
    is_demo: bool = False
    role: Role | None = None
    user_id: UUID | None = None
    email: str | None = None

    def _can(self, capability: Capability) -> bool:
        if self.is_demo:
            return False
        return permissions.has_capability(self.role, capability)

    @computed_field
    @property
    def is_admin(self) -> bool:
        return permissions.is_admin_role(self.role)

    @computed_field
    @property
    def can_write_admin(self) -> bool:
        return self._can(Capability.WRITE_ADMIN)

    @computed_field
    @property
    def can_write_sales(self) -> bool:
        return self._can(Capability.WRITE_SALES)

    @computed_field
    @property
    def can_write_ops(self) -> bool:
        return self._can(Capability.WRITE_OPS)

    @computed_field
    @property
    def can_write_finance(self) -> bool:
        return self._can(Capability.WRITE_FINANCE)

    @computed_field
    @property
    def can_write(self) -> bool:
        return (
            self.can_write_admin
            or self.can_write_sales
            or self.can_write_ops
            or self.can_write_finance
        )


class MeResponse(BaseModel):
    """Response schema for GET /auth/me."""
    user_id: UUID | None
    email: str | None
    context: OrgContext | None
    read_only_reason: str | None = None
