"""Instance Manager - draft creation, listing, publication and archive.

Publication is the only transition with side effects: the draft → published
compare-and-swap and the fan-out inserts commit together or not at all.
"""

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import Conflict, NotFound, Unexpected
from app.core.structured_logging import build_log_context
from app.db.enums import InstanceStatus
from app.db.models import OsInstance, OsTemplate
from app.db.types import as_utc, utc_now
from app.schemas.auth import OrgContext
from app.schemas.os import InstanceRead, PublishResult
from app.services import os_fanout, os_template_service


logger = logging.getLogger(__name__)

ALREADY_PUBLISHED_CODE = "ALREADY_PUBLISHED"
INSTANCE_ARCHIVED_CODE = "INSTANCE_ARCHIVED"


def default_instance_name(template: OsTemplate) -> str:
    return f"{template.name} - {utc_now().date().isoformat()}"


def _to_read(instance: OsInstance, template: OsTemplate) -> InstanceRead:
    return InstanceRead(
        id=instance.id,
        name=instance.name,
        status=InstanceStatus(instance.status),
        template_id=template.id,
        template_key=template.key,
        template_name=template.name,
        template_description=template.description,
        created_by=instance.created_by,
        created_at=as_utc(instance.created_at),
        published_at=as_utc(instance.published_at),
    )


def get_instance(db: Session, org_id: UUID, instance_id: UUID) -> OsInstance | None:
    """Get instance by id, scoped to the org."""
    return (
        db.query(OsInstance)
        .filter(OsInstance.id == instance_id, OsInstance.organization_id == org_id)
        .first()
    )


def get_instance_read(db: Session, org_id: UUID, instance_id: UUID) -> InstanceRead:
    instance = get_instance(db, org_id, instance_id)
    if not instance:
        raise NotFound("Instance not found")
    return _to_read(instance, instance.template)


def list_instances(db: Session, org_id: UUID) -> list[InstanceRead]:
    """All instances for the org with their template, newest first. No admin check."""
    rows = (
        db.query(OsInstance, OsTemplate)
        .join(OsTemplate, OsTemplate.id == OsInstance.template_id)
        .filter(OsInstance.organization_id == org_id)
        .order_by(OsInstance.created_at.desc())
        .all()
    )
    return [_to_read(instance, template) for instance, template in rows]


def create_instance(
    db: Session,
    context: OrgContext,
    template_key: str,
    name: str | None = None,
) -> OsInstance:
    """
    Create a draft instance pinned to the template's id.

    Raises:
        Forbidden: demo org or non-admin role
        NotFound: unknown template key
    """
    permissions.require_mutate(context)

    template = os_template_service.get_template(db, template_key)
    if not template:
        raise NotFound(f"Template '{template_key}' not found")

    instance = OsInstance(
        organization_id=context.org_id,
        template_id=template.id,
        name=(name or "").strip() or default_instance_name(template),
        status=InstanceStatus.DRAFT.value,
        created_by=context.email,
    )
    try:
        db.add(instance)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Instance creation failed",
            extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
        )
        raise Unexpected(str(exc)) from exc
    db.refresh(instance)

    logger.info(
        "Instance created from template %s",
        template.key,
        extra=build_log_context(
            user_id=context.user_id, org_id=context.org_id, instance_id=instance.id
        ),
    )
    return instance


def _conflict_for(instance: OsInstance) -> Conflict:
    if instance.status == InstanceStatus.ARCHIVED.value:
        return Conflict("Archived instances cannot be published", code=INSTANCE_ARCHIVED_CODE)
    return Conflict("Instance is already published", code=ALREADY_PUBLISHED_CODE)


def publish_instance(db: Session, context: OrgContext, instance_id: UUID) -> PublishResult:
    """
    Transition draft → published and fan out alerts and cadence items.

    The status change is a compare-and-swap on status='draft'; of two
    racing publishers exactly one sees a matched row. Fan-out rows are
    inserted in the same transaction.

    Raises:
        Forbidden: demo org or non-admin role
        NotFound: instance not in this org
        Conflict: instance is not a draft
        ValidationFailed: template body is malformed (nothing written)
        Unexpected: store failure (everything rolled back)
    """
    permissions.require_mutate(context)
    log_context = build_log_context(
        user_id=context.user_id, org_id=context.org_id, instance_id=instance_id
    )

    instance = get_instance(db, context.org_id, instance_id)
    if not instance:
        raise NotFound("Instance not found")
    if instance.status != InstanceStatus.DRAFT.value:
        logger.info("Publish rejected, instance is %s", instance.status, extra=log_context)
        raise _conflict_for(instance)

    body = os_template_service.get_template_body(instance.template)
    published_at = utc_now()

    try:
        swapped = db.execute(
            update(OsInstance)
            .where(
                OsInstance.id == instance_id,
                OsInstance.organization_id == context.org_id,
                OsInstance.status == InstanceStatus.DRAFT.value,
            )
            .values(status=InstanceStatus.PUBLISHED.value, published_at=published_at)
            .execution_options(synchronize_session=False)
        )
        if swapped.rowcount == 0:
            db.rollback()
            db.refresh(instance)
            logger.info("Publish lost race for instance", extra=log_context)
            raise _conflict_for(instance)

        fanout = os_fanout.expand(body, context.org_id, instance_id, published_at)
        db.add_all(fanout.alerts)
        db.add_all(fanout.cadence_items)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Publish failed, rolled back", extra=log_context)
        raise Unexpected(str(exc)) from exc

    db.refresh(instance)
    logger.info(
        "Instance published: %d alerts, %d cadence items",
        len(fanout.alerts),
        len(fanout.cadence_items),
        extra=log_context,
    )
    return PublishResult(
        instance_id=instance.id,
        status=InstanceStatus(instance.status),
        published_at=as_utc(instance.published_at),
        alerts_created=len(fanout.alerts),
        cadence_items_created=len(fanout.cadence_items),
    )


def archive_instance(db: Session, context: OrgContext, instance_id: UUID) -> OsInstance:
    """Move a draft or published instance to archived."""
    permissions.require_mutate(context)

    instance = get_instance(db, context.org_id, instance_id)
    if not instance:
        raise NotFound("Instance not found")
    if instance.status == InstanceStatus.ARCHIVED.value:
        raise Conflict("Instance is already archived", code=INSTANCE_ARCHIVED_CODE)

    try:
        instance.status = InstanceStatus.ARCHIVED.value
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Archive failed",
            extra=build_log_context(org_id=context.org_id, instance_id=instance_id),
        )
        raise Unexpected(str(exc)) from exc
    db.refresh(instance)

    logger.info(
        "Instance archived",
        extra=build_log_context(
            user_id=context.user_id, org_id=context.org_id, instance_id=instance_id
        ),
    )
    return instance
