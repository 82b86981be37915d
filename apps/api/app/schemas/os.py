"""Pydantic schemas for OS instances, alerts, tasks, cadence and exec packets."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import AlertSeverity, AlertState, Cadence, InstanceStatus, TaskState


# =============================================================================
# Instances
# =============================================================================

class InstanceCreate(BaseModel):
    template_key: str = Field(..., min_length=1, alias="templateKey")
    name: str | None = Field(None, max_length=255)

    model_config = {"populate_by_name": True}


class InstanceRead(BaseModel):
    id: UUID
    name: str
    status: InstanceStatus
    template_id: UUID
    template_key: str
    template_name: str
    template_description: str | None
    created_by: str | None
    created_at: datetime
    published_at: datetime | None


class PublishResult(BaseModel):
    success: bool = True
    instance_id: UUID
    status: InstanceStatus
    published_at: datetime
    alerts_created: int
    cadence_items_created: int


# =============================================================================
# Alerts
# =============================================================================

class AlertRead(BaseModel):
    id: UUID
    os_instance_id: UUID | None
    instance_name: str | None = None
    instance_status: str | None = None
    kpi_key: str | None
    severity: AlertSeverity
    alert_type: str
    title: str
    description: str | None
    state: AlertState
    owner: str | None
    due_at: datetime | None
    disposition: str | None
    resolved_at: datetime | None
    created_at: datetime


class AlertUpdate(BaseModel):
    """
    Partial alert patch.

    Only fields present in the request are applied; explicit nulls clear
    owner/due_at/disposition.
    """
    state: AlertState | None = None
    owner: str | None = Field(None, max_length=320)
    due_at: datetime | None = None
    disposition: str | None = Field(None, max_length=4000)


class AlertSummary(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


# =============================================================================
# Tasks
# =============================================================================

class TaskCreate(BaseModel):
    alert_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=4000)
    owner: str = Field(..., min_length=1, max_length=320)
    due_at: datetime | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=4000)
    owner: str | None = Field(None, min_length=1, max_length=320)
    state: TaskState | None = None
    due_at: datetime | None = None


class TaskRead(BaseModel):
    id: UUID
    alert_id: UUID | None
    alert_title: str | None = None
    alert_severity: str | None = None
    title: str
    description: str | None
    owner: str
    state: TaskState
    due_at: datetime | None
    created_at: datetime


# =============================================================================
# Cadence agenda
# =============================================================================

class AgendaSection(BaseModel):
    type: str  # alerts | tasks | kpis
    title: str
    cadence_item_id: UUID
    os_instance_id: UUID
    items: list[dict[str, Any]]


class AgendaResponse(BaseModel):
    cadence: Cadence
    agenda: list[AgendaSection]


# =============================================================================
# Exec packets
# =============================================================================

class ExecPacketCreate(BaseModel):
    os_instance_id: UUID
    period_start: datetime | None = None
    period_end: datetime | None = None


class ExecPacketRead(BaseModel):
    id: UUID
    os_instance_id: UUID
    period_start: datetime
    period_end: datetime
    packet_json: dict[str, Any]
    created_at: datetime
