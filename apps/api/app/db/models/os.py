"""OS workspace models: templates, instances and their published artifacts."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import AlertState, InstanceStatus, TaskState
from app.db.types import JSONDocument, utc_now


class OsTemplate(Base):
    """
    Shared catalog template (not tenant-owned).

    template_json holds kpis, dashboards, alerts and cadence rule lists.
    """

    __tablename__ = "os_templates"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    template_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )


class OsInstance(Base):
    """
    A tenant's deployment of one template.

    published_at is set exactly once, on the draft → published transition.
    """

    __tablename__ = "os_instances"
    __table_args__ = (Index("idx_os_instances_org_created", "organization_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("os_templates.id", ondelete="RESTRICT"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=InstanceStatus.DRAFT.value, nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)

    template: Mapped["OsTemplate"] = relationship()
    alerts: Mapped[list["Alert"]] = relationship(
        back_populates="instance", cascade="all, delete-orphan"
    )
    cadence_items: Mapped[list["CadenceItem"]] = relationship(
        back_populates="instance", cascade="all, delete-orphan"
    )


class Alert(Base):
    """
    Actionable alert, created in bulk by publication fan-out.

    owner is free text (typically an email) with no link to memberships.
    """

    __tablename__ = "alerts"
    __table_args__ = (
        Index("idx_alerts_org_state", "organization_id", "state"),
        Index("idx_alerts_instance", "os_instance_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    os_instance_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("os_instances.id", ondelete="CASCADE"), nullable=True
    )
    kpi_key: Mapped[str | None] = mapped_column(String(100), nullable=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[str] = mapped_column(
        String(20), default=AlertState.OPEN.value, nullable=False
    )
    owner: Mapped[str | None] = mapped_column(String(320), nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(nullable=True)
    disposition: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    instance: Mapped["OsInstance | None"] = relationship(back_populates="alerts")


class CadenceItem(Base):
    """Recurring-review agenda entry copied from a template cadence rule."""

    __tablename__ = "cadence_items"
    __table_args__ = (Index("idx_cadence_items_org_cadence", "organization_id", "cadence"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    os_instance_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("os_instances.id", ondelete="CASCADE"), nullable=False
    )
    cadence: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    rules_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    instance: Mapped["OsInstance"] = relationship(back_populates="cadence_items")


class OsTask(Base):
    """Follow-up task, optionally raised from an alert."""

    __tablename__ = "os_tasks"
    __table_args__ = (Index("idx_os_tasks_org_state", "organization_id", "state"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    alert_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("alerts.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner: Mapped[str] = mapped_column(String(320), nullable=False)
    state: Mapped[str] = mapped_column(
        String(20), default=TaskState.OPEN.value, nullable=False
    )
    due_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=utc_now, onupdate=utc_now, nullable=False
    )

    alert: Mapped["Alert | None"] = relationship()


class ExecPacket(Base):
    """Point-in-time executive summary for one instance and period."""

    __tablename__ = "exec_packets"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    os_instance_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("os_instances.id", ondelete="CASCADE"), nullable=False
    )
    period_start: Mapped[datetime] = mapped_column(nullable=False)
    period_end: Mapped[datetime] = mapped_column(nullable=False)
    packet_json: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)
