"""Organization endpoints: create, list mine, switch active org."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_user,
    get_db,
    get_org_context,
    require_csrf_header,
    set_session_cookie,
)
from app.db.models import User
from app.schemas.auth import OrgContext
from app.schemas.org import OrgCreate, OrgRead, OrgSwitch
from app.services import org_service


router = APIRouter(prefix="/org", tags=["org"])


@router.post("", dependencies=[Depends(require_csrf_header)])
def create_org(
    data: OrgCreate,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create an org owned by the caller and make it the active org."""
    org = org_service.create_org_with_owner(db, user, data.name, data.slug)
    set_session_cookie(response, user, org.id)
    return {"success": True, "org": OrgRead.model_validate(org)}


@router.get("/mine")
def list_my_orgs(
    user: User = Depends(get_current_user),
    context: OrgContext | None = Depends(get_org_context),
    db: Session = Depends(get_db),
):
    orgs = org_service.list_user_orgs(db, user.id)
    return {
        "success": True,
        "active_org_id": context.org_id if context else None,
        "orgs": [
            {**OrgRead.model_validate(org).model_dump(), "role": role}
            for org, role in orgs
        ],
    }


@router.post("/set", dependencies=[Depends(require_csrf_header)])
def set_active_org(
    data: OrgSwitch,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Switch the active org; the session cookie is re-issued for it."""
    context = org_service.switch_org(db, user, data.org_id)
    set_session_cookie(response, user, context.org_id)
    return {"success": True, "context": context}
