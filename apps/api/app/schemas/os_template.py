"""Typed OS template body.

Template documents are validated here at catalog load so malformed rules
never reach publication fan-out. Rule bodies (cadence `rules`, dashboard
layouts) are kept verbatim alongside the typed view.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from app.db.enums import AlertSeverity, Cadence


class KpiDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    formula_hint: str | None = None
    refresh: str | None = None


class ThresholdSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    operator: str
    value: float | None = None
    periods: int | None = Field(None, ge=1)


class _AlertRuleBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    kpi_key: str | None = None
    severity: AlertSeverity
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    threshold: ThresholdSpec | None = None
    # Relative due date applied at publication
    due_in_days: int | None = Field(None, ge=0)


class ThresholdAlertRule(_AlertRuleBase):
    type: Literal["threshold"]


class TrendAlertRule(_AlertRuleBase):
    type: Literal["trend"]


AlertRule = Annotated[
    ThresholdAlertRule | TrendAlertRule,
    Field(discriminator="type"),
]


class AlertInclusion(BaseModel):
    model_config = ConfigDict(extra="allow")

    severity: list[AlertSeverity] = Field(default_factory=list)


class TaskInclusion(BaseModel):
    model_config = ConfigDict(extra="allow")

    state: list[str] = Field(default_factory=lambda: ["open", "in_progress"])
    due_within_days: int | None = Field(None, ge=0)


class CadenceRules(BaseModel):
    """Known agenda keys; anything else is carried through untouched."""

    model_config = ConfigDict(extra="allow")

    include_alerts: AlertInclusion | None = None
    include_tasks: TaskInclusion | None = None
    include_kpis: dict[str, Any] | list[str] | None = None
    include_variances: bool = False


class CadenceRule(BaseModel):
    model_config = ConfigDict(extra="allow")

    cadence: Cadence
    title: str = Field(..., min_length=1, max_length=255)
    rules: CadenceRules = Field(default_factory=CadenceRules)


class TemplateBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    kpis: list[KpiDefinition] = Field(default_factory=list)
    dashboards: list[dict[str, Any]] = Field(default_factory=list)
    alerts: list[AlertRule] = Field(default_factory=list)
    cadence: list[CadenceRule] = Field(default_factory=list)


template_body_adapter = TypeAdapter(TemplateBody)


class TemplateRead(BaseModel):
    id: UUID
    key: str
    name: str
    description: str | None
    version: int
    kpi_count: int
    alert_rule_count: int
    cadence_rule_count: int
    template_json: dict[str, Any]
    updated_at: datetime
