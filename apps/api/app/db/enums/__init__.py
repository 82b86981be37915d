"""Enum definitions for application constants."""

from app.db.enums.auth import InviteStatus, Role
from app.db.enums.os import (
    ACTIVE_ALERT_STATES,
    ACTIVE_TASK_STATES,
    AlertSeverity,
    AlertState,
    Cadence,
    InstanceStatus,
    TaskState,
)

__all__ = [
    "ACTIVE_ALERT_STATES",
    "ACTIVE_TASK_STATES",
    "AlertSeverity",
    "AlertState",
    "Cadence",
    "InstanceStatus",
    "InviteStatus",
    "Role",
    "TaskState",
]
