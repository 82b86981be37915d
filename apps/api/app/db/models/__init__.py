"""SQLAlchemy ORM models."""

from app.db.models.auth import Membership, Organization, OrgInvite, User
from app.db.models.os import (
    Alert,
    CadenceItem,
    ExecPacket,
    OsInstance,
    OsTask,
    OsTemplate,
)

__all__ = [
    "Alert",
    "CadenceItem",
    "ExecPacket",
    "Membership",
    "Organization",
    "OrgInvite",
    "OsInstance",
    "OsTask",
    "OsTemplate",
    "User",
]
