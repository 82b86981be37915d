"""Follow-up tasks raised from alerts (or standalone)."""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import NotFound, Unexpected, ValidationFailed
from app.core.structured_logging import build_log_context
from app.db.enums import TaskState
from app.db.models import Alert, OsTask
from app.db.types import as_utc
from app.schemas.auth import OrgContext
from app.schemas.os import TaskCreate, TaskRead
from app.services import os_alert_service


logger = logging.getLogger(__name__)


def to_read(task: OsTask, alert: Alert | None = None) -> TaskRead:
    return TaskRead(
        id=task.id,
        alert_id=task.alert_id,
        alert_title=alert.title if alert else None,
        alert_severity=alert.severity if alert else None,
        title=task.title,
        description=task.description,
        owner=task.owner,
        state=TaskState(task.state),
        due_at=as_utc(task.due_at),
        created_at=as_utc(task.created_at),
    )


def get_task(db: Session, org_id: UUID, task_id: UUID) -> OsTask | None:
    return db.query(OsTask).filter(
        OsTask.id == task_id,
        OsTask.organization_id == org_id,
    ).first()


def list_tasks(
    db: Session,
    org_id: UUID,
    state: TaskState | None = None,
    alert_id: UUID | None = None,
) -> list[TaskRead]:
    """Tasks for the org, soonest due first (undated last)."""
    query = (
        db.query(OsTask, Alert)
        .outerjoin(Alert, Alert.id == OsTask.alert_id)
        .filter(OsTask.organization_id == org_id)
    )
    if state:
        query = query.filter(OsTask.state == state.value)
    if alert_id:
        query = query.filter(OsTask.alert_id == alert_id)

    rows = query.order_by(
        OsTask.due_at.is_(None),
        OsTask.due_at.asc(),
        OsTask.created_at.desc(),
    ).all()
    return [to_read(task, alert) for task, alert in rows]


def _commit(db: Session, context: OrgContext, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Task %s failed", action,
            extra=build_log_context(org_id=context.org_id),
        )
        raise Unexpected(str(exc)) from exc


def create_task(db: Session, context: OrgContext, data: TaskCreate) -> OsTask:
    """
    Raises:
        Forbidden: demo org or non-admin role
        NotFound: alert_id given but not in this org
    """
    permissions.require_mutate(context)

    if data.alert_id is not None:
        if not os_alert_service.get_alert_for_org(db, context.org_id, data.alert_id):
            raise NotFound("Alert not found")

    task = OsTask(
        organization_id=context.org_id,
        alert_id=data.alert_id,
        title=data.title.strip(),
        description=data.description,
        owner=data.owner.strip(),
        state=TaskState.OPEN.value,
        due_at=data.due_at,
    )
    db.add(task)
    _commit(db, context, "create")
    db.refresh(task)

    logger.info(
        "Task created",
        extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
    )
    return task


def update_task(db: Session, context: OrgContext, task_id: UUID, changes: dict) -> OsTask:
    """Patch title/description/owner/state/due_at on a task."""
    permissions.require_mutate(context)

    task = get_task(db, context.org_id, task_id)
    if not task:
        raise NotFound("Task not found")

    for required in ("title", "owner", "state"):
        if required in changes and changes[required] is None:
            raise ValidationFailed(f"Task {required} cannot be null")

    if "title" in changes:
        task.title = changes["title"].strip()
    if "description" in changes:
        task.description = changes["description"]
    if "owner" in changes:
        task.owner = changes["owner"].strip()
    if "state" in changes:
        task.state = TaskState(changes["state"]).value
    if "due_at" in changes:
        task.due_at = changes["due_at"]

    _commit(db, context, "update")
    db.refresh(task)
    return task
