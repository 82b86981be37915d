"""Membership service - member listing, role changes and removal.

Every org keeps at least one OWNER: demotion or removal of the last one is
rejected before anything is written.
"""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import Conflict, Forbidden, NotFound, Unexpected
from app.core.structured_logging import build_log_context
from app.db.enums import Role
from app.db.models import Membership, User
from app.db.types import as_utc
from app.schemas.auth import OrgContext
from app.schemas.org import MemberRead


logger = logging.getLogger(__name__)

LAST_OWNER_CODE = "LAST_OWNER"


def get_membership(db: Session, org_id: UUID, user_id: UUID) -> Membership | None:
    return db.query(Membership).filter(
        Membership.organization_id == org_id,
        Membership.user_id == user_id,
    ).first()


def count_owners(db: Session, org_id: UUID) -> int:
    return db.query(func.count(Membership.id)).filter(
        Membership.organization_id == org_id,
        Membership.role == Role.OWNER.value,
    ).scalar() or 0


def list_members(db: Session, org_id: UUID) -> list[MemberRead]:
    """Members of the org with user details. Any member may read."""
    rows = (
        db.query(Membership, User)
        .join(User, User.id == Membership.user_id)
        .filter(Membership.organization_id == org_id)
        .order_by(Membership.created_at.asc())
        .all()
    )
    return [
        MemberRead(
            user_id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=Role(membership.role),
            created_at=as_utc(membership.created_at),
        )
        for membership, user in rows
        if Role.has_value(membership.role)
    ]


def _ensure_not_last_owner(db: Session, membership: Membership, action: str) -> None:
    if membership.role == Role.OWNER.value and count_owners(db, membership.organization_id) <= 1:
        raise Conflict(f"Cannot {action} the last OWNER", code=LAST_OWNER_CODE)


def update_member_role(
    db: Session,
    context: OrgContext,
    user_id: UUID,
    role: Role,
) -> Membership:
    """
    Change a member's role.

    Raises:
        Forbidden: gate failure, or non-OWNER granting/revoking OWNER
        NotFound: user is not a member of this org
        Conflict: demoting the last OWNER
    """
    permissions.require_mutate(context)

    membership = get_membership(db, context.org_id, user_id)
    if not membership:
        raise NotFound("Member not found")

    touches_owner = role == Role.OWNER or membership.role == Role.OWNER.value
    if touches_owner and not permissions.can_manage_owners(context.role):
        raise Forbidden("Only an OWNER can grant or revoke OWNER")

    if role != Role.OWNER:
        _ensure_not_last_owner(db, membership, "demote")

    previous = membership.role
    try:
        membership.role = role.value
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Role change failed", extra=build_log_context(org_id=context.org_id))
        raise Unexpected(str(exc)) from exc
    db.refresh(membership)

    logger.info(
        "Member role changed %s -> %s",
        previous,
        role.value,
        extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
    )
    return membership


def remove_member(db: Session, context: OrgContext, user_id: UUID) -> None:
    """
    Remove a member from the org.

    Raises:
        Forbidden: gate failure
        NotFound: user is not a member of this org
        Conflict: removing the last OWNER
    """
    permissions.require_mutate(context)

    membership = get_membership(db, context.org_id, user_id)
    if not membership:
        raise NotFound("Member not found")

    _ensure_not_last_owner(db, membership, "remove")

    try:
        db.delete(membership)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Member removal failed", extra=build_log_context(org_id=context.org_id))
        raise Unexpected(str(exc)) from exc

    logger.info(
        "Member removed",
        extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
    )
