"""Invitation endpoints: management under settings, plus public-ish accept."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import (
    get_current_user,
    get_db,
    require_admin_context,
    require_csrf_header,
    require_org_context,
    set_session_cookie,
)
from app.core.rate_limit import limiter
from app.db.models import User
from app.schemas.auth import OrgContext
from app.schemas.invite import InviteAccept, InviteCreate
from app.services import invite_service


router = APIRouter(
    prefix="/settings/invites",
    tags=["invites"],
    dependencies=[Depends(require_admin_context)],
)
accept_router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("")
def list_invites(
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    invites = invite_service.list_invites(db, context.org_id)
    return {
        "success": True,
        "invites": [invite_service.to_read(i) for i in invites],
        "pending_count": invite_service.count_pending_invites(db, context.org_id),
    }


@router.post("", dependencies=[Depends(require_csrf_header)])
def create_invite(
    data: InviteCreate,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    invite = invite_service.create_invite(db, context, data.email, data.role)
    return {
        "success": True,
        "invite": invite_service.to_read(invite),
        "accept_url": invite_service.build_accept_url(invite),
    }


@router.delete("/{invite_id}", dependencies=[Depends(require_csrf_header)])
def revoke_invite(
    invite_id: UUID,
    context: OrgContext = Depends(require_org_context),
    db: Session = Depends(get_db),
):
    invite_service.revoke_invite(db, context, invite_id)
    return {"success": True}


@accept_router.post("/accept", dependencies=[Depends(require_csrf_header)])
@limiter.limit(settings.RATE_LIMIT_INVITE_ACCEPT)
def accept_invite(
    request: Request,
    response: Response,
    data: InviteAccept,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Join the invite's org and make it the active org."""
    org_id = invite_service.accept_invite(db, data.token, user)
    set_session_cookie(response, user, org_id)
    return {"success": True, "org_id": org_id}
