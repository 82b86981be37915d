"""
OS alerts service.

Alerts are created by publication fan-out and afterwards patched field by
field. Any state may be patched to any other state.
"""
import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import NotFound, Unexpected, ValidationFailed
from app.core.structured_logging import build_log_context
from app.db.enums import AlertSeverity, AlertState
from app.db.models import Alert, OsInstance
from app.db.types import as_utc, utc_now
from app.schemas.auth import OrgContext
from app.schemas.os import AlertRead


logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("state", "owner", "due_at", "disposition")


def to_read(alert: Alert, instance: OsInstance | None = None) -> AlertRead:
    return AlertRead(
        id=alert.id,
        os_instance_id=alert.os_instance_id,
        instance_name=instance.name if instance else None,
        instance_status=instance.status if instance else None,
        kpi_key=alert.kpi_key,
        severity=AlertSeverity(alert.severity),
        alert_type=alert.alert_type,
        title=alert.title,
        description=alert.description,
        state=AlertState(alert.state),
        owner=alert.owner,
        due_at=as_utc(alert.due_at),
        disposition=alert.disposition,
        resolved_at=as_utc(alert.resolved_at),
        created_at=as_utc(alert.created_at),
    )


def list_alerts(
    db: Session,
    org_id: UUID,
    state: AlertState | None = None,
    severity: AlertSeverity | None = None,
    kpi_key: str | None = None,
    os_instance_id: UUID | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AlertRead]:
    """List alerts with optional filtering, newest first."""
    query = (
        db.query(Alert, OsInstance)
        .outerjoin(OsInstance, OsInstance.id == Alert.os_instance_id)
        .filter(Alert.organization_id == org_id)
    )

    if state:
        query = query.filter(Alert.state == state.value)
    if severity:
        query = query.filter(Alert.severity == severity.value)
    if kpi_key:
        query = query.filter(Alert.kpi_key == kpi_key)
    if os_instance_id:
        query = query.filter(Alert.os_instance_id == os_instance_id)

    rows = query.order_by(Alert.created_at.desc()).offset(offset).limit(limit).all()
    return [to_read(alert, instance) for alert, instance in rows]


def get_alert_for_org(db: Session, org_id: UUID, alert_id: UUID) -> Alert | None:
    """Get a single alert scoped to org."""
    return db.query(Alert).filter(
        Alert.id == alert_id,
        Alert.organization_id == org_id,
    ).first()


def update_alert(
    db: Session,
    context: OrgContext,
    alert_id: UUID,
    changes: dict,
) -> Alert:
    """
    Apply a partial patch of state/owner/due_at/disposition.

    Moving to resolved stamps resolved_at; moving anywhere else clears it.

    Raises:
        Forbidden: demo org or non-admin role
        NotFound: alert not in this org
        ValidationFailed: unknown field or null state
    """
    permissions.require_mutate(context)

    unknown = set(changes) - set(PATCHABLE_FIELDS)
    if unknown:
        raise ValidationFailed(f"Cannot update alert fields: {', '.join(sorted(unknown))}")

    alert = get_alert_for_org(db, context.org_id, alert_id)
    if not alert:
        raise NotFound("Alert not found")

    if "state" in changes:
        if changes["state"] is None:
            raise ValidationFailed("Alert state cannot be null")
        try:
            new_state = AlertState(changes["state"])
        except ValueError as exc:
            raise ValidationFailed(f"Unknown alert state '{changes['state']}'") from exc
        alert.state = new_state.value
        if new_state == AlertState.RESOLVED:
            alert.resolved_at = utc_now()
        else:
            alert.resolved_at = None

    if "owner" in changes:
        alert.owner = changes["owner"] or None
    if "due_at" in changes:
        alert.due_at = changes["due_at"]
    if "disposition" in changes:
        alert.disposition = changes["disposition"]

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Alert update failed",
            extra=build_log_context(org_id=context.org_id),
        )
        raise Unexpected(str(exc)) from exc
    db.refresh(alert)

    logger.info(
        "Alert %s updated (%s)",
        alert.id,
        ", ".join(sorted(changes)),
        extra=build_log_context(
            user_id=context.user_id,
            org_id=context.org_id,
            instance_id=alert.os_instance_id,
        ),
    )
    return alert


def alert_summary(db: Session, org_id: UUID) -> dict[str, int]:
    """Open-alert counts per severity for dashboard."""
    rows = (
        db.query(Alert.severity, func.count(Alert.id))
        .filter(
            Alert.organization_id == org_id,
            Alert.state == AlertState.OPEN.value,
        )
        .group_by(Alert.severity)
        .all()
    )

    summary = {severity.value: 0 for severity in AlertSeverity}
    for severity, count in rows:
        summary[severity] = count
    return summary
