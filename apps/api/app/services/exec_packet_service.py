"""Executive packets - point-in-time summaries of one instance."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import NotFound, Unexpected, ValidationFailed
from app.core.structured_logging import build_log_context
from app.db.enums import ACTIVE_ALERT_STATES, ACTIVE_TASK_STATES, AlertSeverity
from app.db.models import Alert, ExecPacket, OsTask
from app.db.types import as_utc, utc_now
from app.schemas.auth import OrgContext
from app.schemas.os import ExecPacketRead
from app.services import os_alert_service, os_instance_service, os_task_service


logger = logging.getLogger(__name__)

DEFAULT_PERIOD = timedelta(days=7)
TOP_ALERT_LIMIT = 10


def _severity_rank(alert: Alert) -> int:
    try:
        return AlertSeverity(alert.severity).rank
    except ValueError:
        return -1


def _top_alerts(db: Session, org_id: UUID, instance_id: UUID) -> list[Alert]:
    alerts = (
        db.query(Alert)
        .filter(
            Alert.organization_id == org_id,
            Alert.os_instance_id == instance_id,
            Alert.state.in_(ACTIVE_ALERT_STATES),
        )
        .all()
    )
    # Severity is stored as text, so rank in Python rather than ORDER BY
    alerts.sort(key=lambda a: (_severity_rank(a), as_utc(a.created_at)), reverse=True)
    return alerts[:TOP_ALERT_LIMIT]


def _commitments(db: Session, org_id: UUID, start: datetime, end: datetime) -> list[OsTask]:
    return (
        db.query(OsTask)
        .filter(
            OsTask.organization_id == org_id,
            OsTask.state.in_(ACTIVE_TASK_STATES),
            OsTask.due_at.is_not(None),
            OsTask.due_at >= start,
            OsTask.due_at <= end,
        )
        .order_by(OsTask.due_at.asc())
        .all()
    )


def create_exec_packet(
    db: Session,
    context: OrgContext,
    instance_id: UUID,
    period_start: datetime | None = None,
    period_end: datetime | None = None,
) -> ExecPacket:
    """
    Snapshot top alerts, commitments and KPI keys for the period.

    Period defaults to the seven days ending now.
    """
    permissions.require_mutate(context)

    instance = os_instance_service.get_instance(db, context.org_id, instance_id)
    if not instance:
        raise NotFound("OS instance not found")

    end = as_utc(period_end) or utc_now()
    start = as_utc(period_start) or end - DEFAULT_PERIOD
    if start > end:
        raise ValidationFailed("period_start must be before period_end")

    kpi_keys = [
        kpi.get("key")
        for kpi in (instance.template.template_json or {}).get("kpis", [])
        if kpi.get("key")
    ]
    packet_json = {
        "period": {"start": start.isoformat(), "end": end.isoformat()},
        "os_instance": {"id": str(instance.id), "name": instance.name},
        "kpis": [{"key": key, "value": None, "trend": None} for key in kpi_keys],
        "top_alerts": [
            os_alert_service.to_read(a).model_dump(mode="json")
            for a in _top_alerts(db, context.org_id, instance.id)
        ],
        "commitments": [
            os_task_service.to_read(t).model_dump(mode="json")
            for t in _commitments(db, context.org_id, start, end)
        ],
        "generated_at": utc_now().isoformat(),
    }

    packet = ExecPacket(
        organization_id=context.org_id,
        os_instance_id=instance.id,
        period_start=start,
        period_end=end,
        packet_json=packet_json,
    )
    try:
        db.add(packet)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Exec packet creation failed",
            extra=build_log_context(org_id=context.org_id, instance_id=instance_id),
        )
        raise Unexpected(str(exc)) from exc
    db.refresh(packet)

    logger.info(
        "Exec packet created",
        extra=build_log_context(
            user_id=context.user_id, org_id=context.org_id, instance_id=instance_id
        ),
    )
    return packet


def list_exec_packets(db: Session, org_id: UUID, instance_id: UUID | None = None) -> list[ExecPacket]:
    query = db.query(ExecPacket).filter(ExecPacket.organization_id == org_id)
    if instance_id:
        query = query.filter(ExecPacket.os_instance_id == instance_id)
    return query.order_by(ExecPacket.created_at.desc()).all()


def to_read(packet: ExecPacket) -> ExecPacketRead:
    return ExecPacketRead(
        id=packet.id,
        os_instance_id=packet.os_instance_id,
        period_start=as_utc(packet.period_start),
        period_end=as_utc(packet.period_end),
        packet_json=packet.packet_json,
        created_at=as_utc(packet.created_at),
    )
