"""Org Context Resolver.

Turns an authenticated user plus the org id carried in their session into
an OrgContext. An absent context is not an error; callers treat it as "not
authorized for anything tenant-scoped".
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.structured_logging import build_log_context
from app.db.enums import Role
from app.db.models import Membership, Organization, User
from app.schemas.auth import OrgContext


logger = logging.getLogger(__name__)


def _build_context(org: Organization, role: Role | None, user: User | None) -> OrgContext:
    return OrgContext(
        org_id=org.id,
        org_name=org.name,
        org_slug=org.slug,
        is_demo=org.is_demo,
        role=role,
        user_id=user.id if user else None,
        email=user.email if user else None,
    )


def resolve_demo_context(db: Session) -> OrgContext | None:
    """
    Dev-only synthetic context for unauthenticated requests.

    Resolves to the first demo org. Demo orgs are read-only whatever
    DEV_DEMO_ROLE says.
    """
    if not settings.dev_demo_enabled:
        return None
    org = (
        db.query(Organization)
        .filter(Organization.is_demo.is_(True))
        .order_by(Organization.created_at.asc())
        .first()
    )
    if not org:
        logger.warning("DEV_DEMO_MODE enabled but no demo organization exists")
        return None
    role = Role(settings.DEV_DEMO_ROLE) if Role.has_value(settings.DEV_DEMO_ROLE) else Role.VIEWER
    return _build_context(org, role, None)


def _membership_for(db: Session, user_id: UUID, org_id: UUID) -> Membership | None:
    return (
        db.query(Membership)
        .filter(Membership.user_id == user_id, Membership.organization_id == org_id)
        .first()
    )


def _earliest_membership(db: Session, user_id: UUID) -> Membership | None:
    return (
        db.query(Membership)
        .filter(Membership.user_id == user_id)
        .order_by(Membership.created_at.asc())
        .first()
    )


def resolve_org_context(
    db: Session,
    user: User | None,
    requested_org_id: UUID | None = None,
) -> OrgContext | None:
    """
    Resolve the active tenant for a user.

    The requested org (from the session token) wins when the user is a
    member of it; otherwise the earliest membership is used. Returns None
    for users without memberships and for memberships with an unknown role.
    """
    if user is None:
        return resolve_demo_context(db)

    membership = None
    if requested_org_id is not None:
        membership = _membership_for(db, user.id, requested_org_id)
        if membership is None:
            logger.info(
                "Session org not a membership, falling back to earliest",
                extra=build_log_context(user_id=user.id, org_id=requested_org_id),
            )
    if membership is None:
        membership = _earliest_membership(db, user.id)
    if membership is None:
        return None

    if not Role.has_value(membership.role):
        logger.warning(
            "Unknown role on membership %s", membership.id,
            extra=build_log_context(user_id=user.id),
        )
        return None

    org = db.get(Organization, membership.organization_id)
    if org is None:
        return None
    return _build_context(org, Role(membership.role), user)
