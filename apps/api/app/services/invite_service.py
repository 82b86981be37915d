"""Invitation management service.

Invite status is derived from accepted_at and expires_at at read time.
"""

from datetime import datetime, timedelta
import logging
import uuid

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import permissions
from app.core.config import settings
from app.core.exceptions import Conflict, Forbidden, NotFound, Unexpected, ValidationFailed
from app.core.security import generate_invite_token
from app.core.structured_logging import build_log_context
from app.db.enums import InviteStatus, Role
from app.db.models import Membership, OrgInvite, User
from app.db.types import as_utc, utc_now
from app.schemas.auth import OrgContext
from app.schemas.invite import InviteRead


logger = logging.getLogger(__name__)


def get_invite_status(invite: OrgInvite, now: datetime | None = None) -> InviteStatus:
    """Derive invite status from fields. Accepted wins over expired."""
    if invite.accepted_at:
        return InviteStatus.ACCEPTED
    now = now or utc_now()
    if as_utc(invite.expires_at) < now:
        return InviteStatus.EXPIRED
    return InviteStatus.PENDING


def to_read(invite: OrgInvite) -> InviteRead:
    return InviteRead(
        id=invite.id,
        email=invite.email,
        role=Role(invite.role),
        status=get_invite_status(invite),
        expires_at=as_utc(invite.expires_at),
        accepted_at=as_utc(invite.accepted_at),
        created_at=as_utc(invite.created_at),
        invited_by_user_id=invite.invited_by_user_id,
    )


def list_invites(db: Session, org_id: uuid.UUID) -> list[OrgInvite]:
    """List all invites for organization (including accepted/expired for history)."""
    return db.query(OrgInvite).filter(
        OrgInvite.organization_id == org_id
    ).order_by(OrgInvite.created_at.desc()).limit(100).all()


def count_pending_invites(db: Session, org_id: uuid.UUID) -> int:
    """Count active pending invites for the per-org cap."""
    return db.query(func.count(OrgInvite.id)).filter(
        OrgInvite.organization_id == org_id,
        OrgInvite.accepted_at.is_(None),
        OrgInvite.expires_at > utc_now(),
    ).scalar() or 0


def get_invite(db: Session, org_id: uuid.UUID, invite_id: uuid.UUID) -> OrgInvite | None:
    """Get single invite by ID."""
    return db.query(OrgInvite).filter(
        OrgInvite.id == invite_id,
        OrgInvite.organization_id == org_id,
    ).first()


def get_invite_by_token(db: Session, token: str) -> OrgInvite | None:
    return db.query(OrgInvite).filter(OrgInvite.token == token).first()


def build_accept_url(invite: OrgInvite) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/invite/{invite.token}"


def _commit(db: Session, context_org_id: uuid.UUID, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Invite %s failed", action, extra=build_log_context(org_id=context_org_id))
        raise Unexpected(str(exc)) from exc


def create_invite(
    db: Session,
    context: OrgContext,
    email: str,
    role: Role,
) -> OrgInvite:
    """
    Create a new invitation.

    Raises:
        Forbidden: gate failure, or non-OWNER inviting an OWNER
        Conflict: already a member, or a pending invite exists
        ValidationFailed: pending invite cap reached
    """
    permissions.require_mutate(context)
    if role == Role.OWNER and not permissions.can_manage_owners(context.role):
        raise Forbidden("Only an OWNER can invite an OWNER")

    email = email.lower().strip()
    org_id = context.org_id

    if count_pending_invites(db, org_id) >= settings.MAX_PENDING_INVITES_PER_ORG:
        raise ValidationFailed(
            f"Maximum of {settings.MAX_PENDING_INVITES_PER_ORG} pending invites reached"
        )

    existing_user = db.query(User).filter(func.lower(User.email) == email).first()
    if existing_user:
        existing_membership = db.query(Membership).filter(
            Membership.user_id == existing_user.id,
            Membership.organization_id == org_id,
        ).first()
        if existing_membership:
            raise Conflict("User is already a member of this organization")

    existing_invite = db.query(OrgInvite).filter(
        OrgInvite.organization_id == org_id,
        func.lower(OrgInvite.email) == email,
        OrgInvite.accepted_at.is_(None),
        OrgInvite.expires_at > utc_now(),
    ).first()
    if existing_invite:
        raise Conflict("A pending invite already exists for this email")

    invite = OrgInvite(
        organization_id=org_id,
        email=email,
        role=role.value,
        token=generate_invite_token(),
        invited_by_user_id=context.user_id,
        expires_at=utc_now() + timedelta(days=settings.INVITE_EXPIRY_DAYS),
    )
    db.add(invite)
    _commit(db, org_id, "create")
    db.refresh(invite)

    logger.info(
        "Invite created for role %s",
        role.value,
        extra=build_log_context(user_id=context.user_id, org_id=org_id),
    )
    return invite


def revoke_invite(db: Session, context: OrgContext, invite_id: uuid.UUID) -> None:
    """Delete a not-yet-accepted invitation."""
    permissions.require_mutate(context)

    invite = get_invite(db, context.org_id, invite_id)
    if not invite:
        raise NotFound("Invite not found")
    if invite.accepted_at:
        raise Conflict("Cannot revoke an accepted invite")

    db.delete(invite)
    _commit(db, context.org_id, "revoke")

    logger.info(
        "Invite revoked",
        extra=build_log_context(user_id=context.user_id, org_id=context.org_id),
    )


def accept_invite(db: Session, token: str, user: User) -> uuid.UUID:
    """
    Redeem an invite for `user`.

    Creates the membership and stamps accepted_at in one commit.
    Returns the joined org id.

    Raises:
        NotFound: unknown token
        Conflict: invite already accepted or user already a member
        ValidationFailed: invite expired
        Forbidden: invite was issued to another email
    """
    invite = get_invite_by_token(db, token)
    if not invite:
        raise NotFound("Invite not found")

    status = get_invite_status(invite)
    if status == InviteStatus.ACCEPTED:
        raise Conflict("Invite has already been accepted")
    if status == InviteStatus.EXPIRED:
        raise ValidationFailed("Invite has expired")
    if user.email.lower().strip() != invite.email.lower():
        logger.info(
            "Invite accept rejected, email mismatch",
            extra=build_log_context(user_id=user.id, org_id=invite.organization_id),
        )
        raise Forbidden("Invite was issued to a different email")

    existing = db.query(Membership).filter(
        Membership.user_id == user.id,
        Membership.organization_id == invite.organization_id,
    ).first()
    if existing:
        raise Conflict("Already a member of this organization")

    try:
        db.add(
            Membership(
                user_id=user.id,
                organization_id=invite.organization_id,
                role=invite.role,
            )
        )
        invite.accepted_at = utc_now()
        invite.accepted_by_user_id = user.id
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Already a member of this organization") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Invite accept failed", extra=build_log_context(user_id=user.id))
        raise Unexpected(str(exc)) from exc

    logger.info(
        "Invite accepted",
        extra=build_log_context(user_id=user.id, org_id=invite.organization_id),
    )
    return invite.organization_id
