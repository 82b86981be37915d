"""Alert lifecycle and follow-up task endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_org_context
from app.db.enums import AlertSeverity, AlertState, TaskState
from app.schemas.auth import OrgContext
from app.schemas.os import AlertSummary, AlertUpdate, TaskCreate, TaskUpdate
from app.services import os_alert_service, os_task_service


router = APIRouter(prefix="/os", tags=["alerts"])


# =============================================================================
# Alerts
# =============================================================================

@router.get("/alerts")
def list_alerts(
    state: AlertState | None = None,
    severity: AlertSeverity | None = None,
    kpi_key: str | None = None,
    os_instance_id: UUID | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    alerts = os_alert_service.list_alerts(
        db,
        context.org_id,
        state=state,
        severity=severity,
        kpi_key=kpi_key,
        os_instance_id=os_instance_id,
        limit=limit,
        offset=offset,
    )
    return {"success": True, "alerts": alerts}


@router.get("/alerts/summary")
def alert_summary(
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    summary = os_alert_service.alert_summary(db, context.org_id)
    return {"success": True, "summary": AlertSummary(**summary)}


@router.patch("/alerts/{alert_id}", dependencies=[Depends(require_csrf_header)])
def update_alert(
    alert_id: UUID,
    data: AlertUpdate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    alert = os_alert_service.update_alert(db, context, alert_id, changes)
    return {"success": True, "alert": os_alert_service.to_read(alert, alert.instance)}


# =============================================================================
# Tasks
# =============================================================================

@router.get("/tasks")
def list_tasks(
    state: TaskState | None = None,
    alert_id: UUID | None = None,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    return {
        "success": True,
        "tasks": os_task_service.list_tasks(db, context.org_id, state=state, alert_id=alert_id),
    }


@router.post("/tasks", dependencies=[Depends(require_csrf_header)])
def create_task(
    data: TaskCreate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    task = os_task_service.create_task(db, context, data)
    return {"success": True, "task": os_task_service.to_read(task, task.alert)}


@router.patch("/tasks/{task_id}", dependencies=[Depends(require_csrf_header)])
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    task = os_task_service.update_task(
        db, context, task_id, data.model_dump(exclude_unset=True)
    )
    return {"success": True, "task": os_task_service.to_read(task, task.alert)}
