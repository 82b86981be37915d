"""Role capability table and the write gate.

Every mutating service re-checks the gate server-side, independent of any
client-side disabling of controls.
"""

import logging
from enum import Enum

from app.core.exceptions import Forbidden
from app.db.enums import Role


logger = logging.getLogger(__name__)

DEMO_READ_ONLY_CODE = "DEMO_READ_ONLY"
DEMO_READ_ONLY_MESSAGE = "Demo org is read-only"
ADMIN_REQUIRED_MESSAGE = "OWNER/ADMIN permission required"


class Capability(str, Enum):
    """Write capabilities granted by roles."""

    WRITE_ADMIN = "write_admin"
    WRITE_SALES = "write_sales"
    WRITE_OPS = "write_ops"
    WRITE_FINANCE = "write_finance"
    MANAGE_OWNERS = "manage_owners"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.OWNER: frozenset(Capability),
    Role.ADMIN: frozenset(
        {
            Capability.WRITE_ADMIN,
            Capability.WRITE_SALES,
            Capability.WRITE_OPS,
            Capability.WRITE_FINANCE,
        }
    ),
    Role.SALES: frozenset({Capability.WRITE_SALES}),
    Role.OPS: frozenset({Capability.WRITE_OPS}),
    Role.FINANCE: frozenset({Capability.WRITE_FINANCE}),
    Role.VIEWER: frozenset(),
}


def has_capability(role: Role | None, capability: Capability) -> bool:
    """Table lookup; unknown or missing roles have no capabilities."""
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def is_admin_role(role: Role | None) -> bool:
    return has_capability(role, Capability.WRITE_ADMIN)


def can_manage_owners(role: Role | None) -> bool:
    """Only OWNER may grant or revoke OWNER."""
    return has_capability(role, Capability.MANAGE_OWNERS)


def can_mutate(context) -> bool:
    """Admin in a non-demo org."""
    if context is None:
        return False
    return context.is_admin and not context.is_demo


def denial_reason(context) -> str:
    if context is not None and context.is_demo:
        return DEMO_READ_ONLY_MESSAGE
    return ADMIN_REQUIRED_MESSAGE


def require_mutate(context) -> None:
    """
    Raise Forbidden unless the context may mutate tenant data.

    Demo tenants get the stable DEMO_READ_ONLY code so clients can special-case it.
    """
    if can_mutate(context):
        return
    if context is not None and context.is_demo:
        logger.debug("Write blocked for demo org %s", context.org_id)
        raise Forbidden(DEMO_READ_ONLY_MESSAGE, code=DEMO_READ_ONLY_CODE)
    logger.debug(
        "Write blocked for role %s",
        context.role.value if context is not None and context.role else None,
    )
    raise Forbidden(ADMIN_REQUIRED_MESSAGE)


def require_admin(context) -> None:
    """Raise Forbidden unless the caller holds an admin role (reads allowed in demo orgs)."""
    if context is not None and context.is_admin:
        return
    logger.debug(
        "Admin read blocked for role %s",
        context.role.value if context is not None and context.role else None,
    )
    raise Forbidden(ADMIN_REQUIRED_MESSAGE)
