"""Template Catalog service - shared OS template registry.

Templates are catalog data, not tenant-owned: reads are never org-scoped.
Bodies are validated on the way in so publication only ever sees
well-formed rule lists.
"""

import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationFailed
from app.db.models import OsTemplate
from app.db.types import utc_now
from app.schemas.os_template import TemplateBody, TemplateRead, template_body_adapter


logger = logging.getLogger(__name__)

ORDERABLE_FIELDS = {
    "key": OsTemplate.key,
    "name": OsTemplate.name,
}


def parse_template_body(raw: dict) -> TemplateBody:
    """
    Validate a template document.

    Raises:
        ValidationFailed: malformed KPI, alert or cadence entries
    """
    try:
        return template_body_adapter.validate_python(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ValidationFailed(
            f"Invalid template body at {location or '<root>'}: {first.get('msg')}"
        ) from exc


def find_unknown_kpi_keys(body: TemplateBody) -> list[str]:
    """Alert-rule kpi_keys that no declared KPI defines (reported, not enforced)."""
    declared = {kpi.key for kpi in body.kpis}
    unknown: list[str] = []
    for rule in body.alerts:
        if rule.kpi_key and rule.kpi_key not in declared and rule.kpi_key not in unknown:
            unknown.append(rule.kpi_key)
    return unknown


def list_templates(db: Session, order_by: str = "key") -> list[OsTemplate]:
    column = ORDERABLE_FIELDS.get(order_by)
    if column is None:
        raise ValidationFailed(f"Cannot order templates by '{order_by}'")
    return db.query(OsTemplate).order_by(column.asc()).all()


def get_template(db: Session, key: str) -> OsTemplate | None:
    return db.query(OsTemplate).filter(OsTemplate.key == key).first()


def get_template_body(template: OsTemplate) -> TemplateBody:
    return parse_template_body(template.template_json or {})


def upsert_template(
    db: Session,
    *,
    key: str,
    name: str,
    description: str | None,
    version: int,
    template_json: dict,
) -> tuple[OsTemplate, bool]:
    """
    Insert a template or replace it when `version` is newer.

    Returns (template, changed). Same or older version is a no-op.
    Caller commits.
    """
    body = parse_template_body(template_json)
    unknown = find_unknown_kpi_keys(body)
    if unknown:
        logger.warning(
            "Template %s alert rules reference undeclared KPIs: %s",
            key,
            ", ".join(unknown),
        )

    existing = get_template(db, key)
    if existing is None:
        template = OsTemplate(
            key=key,
            name=name,
            description=description,
            version=version,
            template_json=template_json,
        )
        db.add(template)
        db.flush()
        logger.info("Template %s v%s created", key, version)
        return template, True

    if version <= (existing.version or 0):
        return existing, False

    existing.name = name
    existing.description = description
    existing.version = version
    existing.template_json = template_json
    existing.updated_at = utc_now()
    db.flush()
    logger.info("Template %s upgraded to v%s", key, version)
    return existing, True


def to_read(template: OsTemplate) -> TemplateRead:
    body = template.template_json or {}
    return TemplateRead(
        id=template.id,
        key=template.key,
        name=template.name,
        description=template.description,
        version=template.version,
        kpi_count=len(body.get("kpis", [])),
        alert_rule_count=len(body.get("alerts", [])),
        cadence_rule_count=len(body.get("cadence", [])),
        template_json=body,
        updated_at=template.updated_at,
    )
