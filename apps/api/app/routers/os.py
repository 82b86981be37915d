"""OS workspace endpoints: template catalog, instances, cadence agenda, exec packets."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_org_context
from app.core.exceptions import NotFound
from app.db.enums import Cadence
from app.schemas.auth import OrgContext
from app.schemas.os import ExecPacketCreate, InstanceCreate
from app.services import (
    cadence_service,
    exec_packet_service,
    os_instance_service,
    os_template_service,
)


router = APIRouter(prefix="/os", tags=["os"])


# =============================================================================
# Template catalog
# =============================================================================

@router.get("/templates")
def list_templates(
    order_by: str = Query("key", pattern="^(key|name)$"),
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    templates = os_template_service.list_templates(db, order_by=order_by)
    return {
        "success": True,
        "templates": [os_template_service.to_read(t) for t in templates],
    }


@router.get("/templates/{key}")
def get_template(
    key: str,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    template = os_template_service.get_template(db, key)
    if not template:
        raise NotFound(f"Template '{key}' not found")
    return {"success": True, "template": os_template_service.to_read(template)}


# =============================================================================
# Instances
# =============================================================================

@router.get("/instances")
def list_instances(
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    return {
        "success": True,
        "instances": os_instance_service.list_instances(db, context.org_id),
    }


@router.post("/instances", dependencies=[Depends(require_csrf_header)])
def create_instance(
    data: InstanceCreate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    instance = os_instance_service.create_instance(
        db, context, data.template_key, name=data.name
    )
    return {
        "success": True,
        "instance_id": instance.id,
        "instance": os_instance_service.get_instance_read(db, context.org_id, instance.id),
    }


@router.get("/instances/{instance_id}")
def get_instance(
    instance_id: UUID,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    return {
        "success": True,
        "instance": os_instance_service.get_instance_read(db, context.org_id, instance_id),
    }


@router.post("/instances/{instance_id}/publish", dependencies=[Depends(require_csrf_header)])
def publish_instance(
    instance_id: UUID,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    return os_instance_service.publish_instance(db, context, instance_id)


@router.post("/instances/{instance_id}/archive", dependencies=[Depends(require_csrf_header)])
def archive_instance(
    instance_id: UUID,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    instance = os_instance_service.archive_instance(db, context, instance_id)
    return {"success": True, "instance_id": instance.id, "status": instance.status}


# =============================================================================
# Cadence agenda
# =============================================================================

@router.get("/cadence/{cadence}")
def get_agenda(
    cadence: Cadence,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    agenda = cadence_service.build_agenda(db, context.org_id, cadence)
    return {"success": True, "cadence": agenda.cadence, "agenda": agenda.agenda}


# =============================================================================
# Exec packets
# =============================================================================

@router.get("/exec-packets")
def list_exec_packets(
    os_instance_id: UUID | None = None,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    packets = exec_packet_service.list_exec_packets(db, context.org_id, os_instance_id)
    return {
        "success": True,
        "packets": [exec_packet_service.to_read(p) for p in packets],
    }


@router.post("/exec-packets", dependencies=[Depends(require_csrf_header)])
def create_exec_packet(
    data: ExecPacketCreate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    packet = exec_packet_service.create_exec_packet(
        db,
        context,
        data.os_instance_id,
        period_start=data.period_start,
        period_end=data.period_end,
    )
    return {"success": True, "packet": exec_packet_service.to_read(packet)}
