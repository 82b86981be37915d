"""Organization service - tenants, the caller's orgs, and org switching."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.exceptions import Conflict, Forbidden, NotFound, Unexpected
from app.core.org_context import resolve_org_context
from app.core.structured_logging import build_log_context
from app.db.enums import Role
from app.db.models import Membership, Organization, User
from app.schemas.auth import OrgContext


logger = logging.getLogger(__name__)

SLUG_TAKEN_CODE = "SLUG_TAKEN"


def get_org_by_id(db: Session, org_id: UUID) -> Organization | None:
    """Get organization by ID."""
    return db.query(Organization).filter(Organization.id == org_id).first()


def get_org_by_slug(db: Session, slug: str) -> Organization | None:
    """Get organization by slug."""
    return db.query(Organization).filter(Organization.slug == slug.lower()).first()


def create_org_with_owner(
    db: Session,
    user: User,
    name: str,
    slug: str,
    is_demo: bool = False,
) -> Organization:
    """
    Create an organization and make `user` its first OWNER, in one commit.

    Raises:
        Conflict: slug already in use
    """
    slug = slug.lower().strip()
    if get_org_by_slug(db, slug):
        raise Conflict(f"Slug '{slug}' is already taken", code=SLUG_TAKEN_CODE)

    org = Organization(name=name.strip(), slug=slug, is_demo=is_demo)
    try:
        db.add(org)
        db.flush()
        db.add(
            Membership(
                user_id=user.id,
                organization_id=org.id,
                role=Role.OWNER.value,
            )
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(f"Slug '{slug}' is already taken", code=SLUG_TAKEN_CODE) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Org creation failed", extra=build_log_context(user_id=user.id))
        raise Unexpected(str(exc)) from exc
    db.refresh(org)

    logger.info(
        "Organization created",
        extra=build_log_context(user_id=user.id, org_id=org.id),
    )
    return org


def list_user_orgs(db: Session, user_id: UUID) -> list[tuple[Organization, Role]]:
    """The user's organizations with their role in each, oldest membership first."""
    rows = (
        db.query(Organization, Membership.role)
        .join(Membership, Membership.organization_id == Organization.id)
        .filter(Membership.user_id == user_id)
        .order_by(Membership.created_at.asc())
        .all()
    )
    return [(org, Role(role)) for org, role in rows if Role.has_value(role)]


def switch_org(db: Session, user: User, org_id: UUID) -> OrgContext:
    """
    Resolve the context for a new active org.

    The caller re-issues the session token with the returned org id.

    Raises:
        Forbidden: user is not a member of org_id
    """
    context = resolve_org_context(db, user, org_id)
    if context is None or context.org_id != org_id:
        raise Forbidden("Not a member of this organization")
    logger.info("Active org switched", extra=build_log_context(user_id=user.id, org_id=org_id))
    return context


def update_org_name(db: Session, context: OrgContext, name: str) -> Organization:
    permissions.require_mutate(context)

    org = get_org_by_id(db, context.org_id)
    if not org:
        raise NotFound("Organization not found")

    try:
        org.name = name.strip()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Org rename failed", extra=build_log_context(org_id=context.org_id))
        raise Unexpected(str(exc)) from exc
    db.refresh(org)

    logger.info(
        "Organization renamed",
        extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
    )
    return org
