"""Publication fan-out: template rule lists → per-tenant rows.

`expand` is pure. It builds unsaved ORM objects and never touches the
session; the instance service adds them inside the publish transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from app.db.enums import AlertState
from app.db.models import Alert, CadenceItem
from app.schemas.os_template import CadenceRule, TemplateBody


@dataclass
class FanoutResult:
    alerts: list[Alert] = field(default_factory=list)
    cadence_items: list[CadenceItem] = field(default_factory=list)


def _cadence_rules_document(rule: CadenceRule) -> dict:
    # Round-trip the rules exactly as authored, unknown keys included
    return rule.rules.model_dump(mode="json", exclude_unset=True)


def expand(
    body: TemplateBody,
    org_id: UUID,
    instance_id: UUID,
    published_at: datetime,
) -> FanoutResult:
    """
    One Alert per alert rule and one CadenceItem per cadence rule.

    Alerts start open and unowned; due_at is only set when the rule carries
    due_in_days (relative to published_at).
    """
    result = FanoutResult()

    for rule in body.alerts:
        due_at = None
        if rule.due_in_days is not None:
            due_at = published_at + timedelta(days=rule.due_in_days)
        result.alerts.append(
            Alert(
                organization_id=org_id,
                os_instance_id=instance_id,
                kpi_key=rule.kpi_key,
                severity=rule.severity.value,
                alert_type=rule.type,
                title=rule.title,
                description=rule.description,
                state=AlertState.OPEN.value,
                owner=None,
                due_at=due_at,
            )
        )

    for rule in body.cadence:
        result.cadence_items.append(
            CadenceItem(
                organization_id=org_id,
                os_instance_id=instance_id,
                cadence=rule.cadence.value,
                title=rule.title,
                rules_json=_cadence_rules_document(rule),
            )
        )

    return result
