"""OS workspace enums (instances, alerts, cadence, tasks)."""

from enum import Enum


class InstanceStatus(str, Enum):
    """
    OS instance lifecycle.

    draft → published (one-way, triggers fan-out)
    draft/published → archived
    """

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class AlertSeverity(str, Enum):
    """Severity levels for alerts, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AlertSeverity.LOW: 0,
    AlertSeverity.MEDIUM: 1,
    AlertSeverity.HIGH: 2,
    AlertSeverity.CRITICAL: 3,
}


class AlertState(str, Enum):
    """
    Alert workflow state.

    open → acknowledged/in_progress → resolved/dismissed
    """

    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Cadence(str, Enum):
    """Review cadence for agenda items."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TaskState(str, Enum):
    """Status of follow-up tasks."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"


# States that still need attention
ACTIVE_ALERT_STATES = (
    AlertState.OPEN.value,
    AlertState.ACKNOWLEDGED.value,
    AlertState.IN_PROGRESS.value,
)
ACTIVE_TASK_STATES = (TaskState.OPEN.value, TaskState.IN_PROGRESS.value)
