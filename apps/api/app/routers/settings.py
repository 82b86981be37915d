"""Settings endpoints: organization name and member management."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_org_context
from app.schemas.auth import OrgContext
from app.schemas.org import MemberRoleUpdate, OrgNameUpdate, OrgRead
from app.services import membership_service, org_service


router = APIRouter(prefix="/settings", tags=["settings"])


@router.patch("/org", dependencies=[Depends(require_csrf_header)])
def update_org(
    data: OrgNameUpdate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    org = org_service.update_org_name(db, context, data.name)
    return {"success": True, "org": OrgRead.model_validate(org)}


@router.get("/members")
def list_members(
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    return {"success": True, "members": membership_service.list_members(db, context.org_id)}


@router.patch("/members/{user_id}", dependencies=[Depends(require_csrf_header)])
def update_member_role(
    user_id: UUID,
    data: MemberRoleUpdate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    membership = membership_service.update_member_role(db, context, user_id, data.role)
    return {"success": True, "user_id": membership.user_id, "role": membership.role}


@router.delete("/members/{user_id}", dependencies=[Depends(require_csrf_header)])
def remove_member(
    user_id: UUID,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    membership_service.remove_member(db, context, user_id)
    return {"success": True}
