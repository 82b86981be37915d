"""Session endpoints. Sign-in itself is delegated to the identity provider."""

from fastapi import APIRouter, Depends, Response

from app.core import permissions
from app.core.deps import (
    COOKIE_NAME,
    get_current_user_optional,
    get_org_context,
    require_csrf_header,
)
from app.db.models import User
from app.schemas.auth import MeResponse, OrgContext


router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=MeResponse)
def get_me(
    user: User | None = Depends(get_current_user_optional),
    context: OrgContext | None = Depends(get_org_context),
):
    """
    Current principal and resolved org context.

    An absent context is returned as null rather than an error so the
    client can render its no-org state.
    """
    read_only_reason = None
    if context is not None and not permissions.can_mutate(context):
        read_only_reason = permissions.denial_reason(context)
    return MeResponse(
        user_id=user.id if user else None,
        email=user.email if user else None,
        context=context,
        read_only_reason=read_only_reason,
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"success": True}
