"""Tests for the role capability table and the write gate."""

import uuid

import pytest

from app.core import permissions
from app.core.exceptions import Forbidden
from app.core.permissions import Capability
from app.db.enums import Role
from app.schemas.auth import OrgContext


def _context(role: Role | None, is_demo: bool = False) -> OrgContext:
    return OrgContext(org_id=uuid.uuid4(), role=role, is_demo=is_demo)


@pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
def test_admin_roles_can_mutate_outside_demo(role):
    assert permissions.can_mutate(_context(role)) is True


@pytest.mark.parametrize("role", [Role.SALES, Role.OPS, Role.FINANCE, Role.VIEWER, None])
def test_non_admin_roles_cannot_mutate(role):
    context = _context(role)
    assert permissions.can_mutate(context) is False
    assert permissions.denial_reason(context) == "OWNER/ADMIN permission required"


@pytest.mark.parametrize("role", list(Role))
def test_demo_org_blocks_every_role(role):
    context = _context(role, is_demo=True)
    assert permissions.can_mutate(context) is False
    assert permissions.denial_reason(context) == "Demo org is read-only"
    assert context.can_write is False


def test_missing_context_cannot_mutate():
    assert permissions.can_mutate(None) is False


def test_require_mutate_uses_demo_code():
    with pytest.raises(Forbidden) as exc_info:
        permissions.require_mutate(_context(Role.OWNER, is_demo=True))
    assert exc_info.value.code == "DEMO_READ_ONLY"
    assert exc_info.value.to_dict() == {
        "success": False,
        "error": "Demo org is read-only",
        "code": "DEMO_READ_ONLY",
    }


def test_require_mutate_role_failure_code():
    with pytest.raises(Forbidden) as exc_info:
        permissions.require_mutate(_context(Role.VIEWER))
    assert exc_info.value.code == "FORBIDDEN"
    assert exc_info.value.status_code == 403


def test_only_owner_manages_owners():
    assert permissions.can_manage_owners(Role.OWNER) is True
    for role in (Role.ADMIN, Role.SALES, Role.OPS, Role.FINANCE, Role.VIEWER):
        assert permissions.can_manage_owners(role) is False


def test_functional_roles_get_their_own_area_only():
    sales = _context(Role.SALES)
    assert sales.can_write_sales is True
    assert sales.can_write_ops is False
    assert sales.can_write_admin is False
    assert sales.can_write is True
    assert sales.is_admin is False

    assert permissions.has_capability(Role.OPS, Capability.WRITE_OPS) is True
    assert permissions.has_capability(Role.FINANCE, Capability.WRITE_OPS) is False
    assert _context(Role.VIEWER).can_write is False
