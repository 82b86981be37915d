"""Cadence agenda builder.

Assembles a meeting agenda for one cadence from the cadence items of the
org's published instances, filled with live alerts and tasks.
"""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import ACTIVE_ALERT_STATES, ACTIVE_TASK_STATES, Cadence, InstanceStatus
from app.db.models import Alert, CadenceItem, OsInstance, OsTask
from app.db.types import as_utc, utc_now
from app.schemas.os import AgendaResponse, AgendaSection
from app.services import os_alert_service, os_task_service


def _published_cadence_items(db: Session, org_id: UUID, cadence: Cadence) -> list[CadenceItem]:
    return (
        db.query(CadenceItem)
        .join(OsInstance, OsInstance.id == CadenceItem.os_instance_id)
        .filter(
            CadenceItem.organization_id == org_id,
            CadenceItem.cadence == cadence.value,
            OsInstance.status == InstanceStatus.PUBLISHED.value,
        )
        .order_by(CadenceItem.created_at.asc())
        .all()
    )


def _task_states(rules: dict) -> list[str]:
    return (rules.get("include_tasks") or {}).get("state") or list(ACTIVE_TASK_STATES)


def _due_cutoff(rules: dict, now: datetime) -> datetime | None:
    days = (rules.get("include_tasks") or {}).get("due_within_days")
    if not days:
        return None
    return now + timedelta(days=days)


def build_agenda(
    db: Session,
    org_id: UUID,
    cadence: Cadence,
    now: datetime | None = None,
) -> AgendaResponse:
    """
    One alerts, tasks and KPI section per cadence item, in item order.

    Alerts come from the item's own instance, active states only, limited
    to the rule's severities. Tasks are org-wide, filtered by state and,
    when due_within_days is set, due on or before now + N days (undated
    tasks always qualify). Empty alert/task sections are omitted. The KPI
    section is a placeholder until KPI values are ingested.
    """
    now = now or utc_now()
    items = _published_cadence_items(db, org_id, cadence)
    if not items:
        return AgendaResponse(cadence=cadence, agenda=[])

    # Batch-load alerts and tasks once for all items
    instance_ids = {item.os_instance_id for item in items}
    severities = set()
    task_states = set()
    for item in items:
        rules = item.rules_json or {}
        severities.update((rules.get("include_alerts") or {}).get("severity") or [])
        if rules.get("include_tasks") is not None:
            task_states.update(_task_states(rules))

    alerts_by_instance: dict[UUID, list[Alert]] = {}
    if severities:
        alerts = (
            db.query(Alert)
            .filter(
                Alert.organization_id == org_id,
                Alert.os_instance_id.in_(instance_ids),
                Alert.severity.in_(severities),
                Alert.state.in_(ACTIVE_ALERT_STATES),
            )
            .order_by(Alert.created_at.desc())
            .all()
        )
        for alert in alerts:
            alerts_by_instance.setdefault(alert.os_instance_id, []).append(alert)

    tasks: list[OsTask] = []
    if task_states:
        tasks = (
            db.query(OsTask)
            .filter(OsTask.organization_id == org_id, OsTask.state.in_(task_states))
            .order_by(OsTask.created_at.asc())
            .all()
        )

    agenda: list[AgendaSection] = []
    for item in items:
        rules = item.rules_json or {}

        include_alerts = rules.get("include_alerts")
        if include_alerts is not None:
            wanted = include_alerts.get("severity") or []
            matching = [
                a for a in alerts_by_instance.get(item.os_instance_id, [])
                if a.severity in wanted
            ]
            if matching:
                agenda.append(
                    AgendaSection(
                        type="alerts",
                        title=f"Open {'/'.join(wanted)} Alerts",
                        cadence_item_id=item.id,
                        os_instance_id=item.os_instance_id,
                        items=[
                            os_alert_service.to_read(a).model_dump(mode="json")
                            for a in matching
                        ],
                    )
                )

        if rules.get("include_tasks") is not None:
            states = _task_states(rules)
            cutoff = _due_cutoff(rules, now)
            matching_tasks = [
                t for t in tasks
                if t.state in states
                and (cutoff is None or t.due_at is None or as_utc(t.due_at) <= cutoff)
            ]
            if matching_tasks:
                agenda.append(
                    AgendaSection(
                        type="tasks",
                        title=f"Tasks ({'/'.join(states)})",
                        cadence_item_id=item.id,
                        os_instance_id=item.os_instance_id,
                        items=[
                            os_task_service.to_read(t).model_dump(mode="json")
                            for t in matching_tasks
                        ],
                    )
                )

        if rules.get("include_kpis"):
            agenda.append(
                AgendaSection(
                    type="kpis",
                    title="KPIs Requiring Attention",
                    cadence_item_id=item.id,
                    os_instance_id=item.os_instance_id,
                    items=[],
                )
            )

    return AgendaResponse(cadence=cadence, agenda=agenda)
