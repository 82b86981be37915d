"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Membership roles within an organization.

    - OWNER: Full control, the only role that can grant/revoke OWNER
    - ADMIN: Org settings, members, invites, OS workspace
    - SALES / OPS / FINANCE: Write access to their functional area
    - VIEWER: Read-only
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    SALES = "SALES"
    OPS = "OPS"
    FINANCE = "FINANCE"
    VIEWER = "VIEWER"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class InviteStatus(str, Enum):
    """Invite status, derived at read time from accepted_at/expires_at."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
