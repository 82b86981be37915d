"""Tests for invitations: derived status, creation rules and redemption."""

import uuid
from datetime import timedelta

import pytest

from app.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from app.core.config import settings
from app.db.enums import InviteStatus, Role
from app.db.models import Membership, OrgInvite, User
from app.db.types import utc_now
from app.services import invite_service


def _invite(**overrides) -> OrgInvite:
    fields = {
        "organization_id": uuid.uuid4(),
        "email": "new@example.com",
        "role": Role.OPS.value,
        "token": uuid.uuid4().hex,
        "expires_at": utc_now() + timedelta(days=1),
        "accepted_at": None,
    }
    fields.update(overrides)
    return OrgInvite(**fields)


def test_status_is_derived():
    now = utc_now()

    assert invite_service.get_invite_status(_invite(), now) == InviteStatus.PENDING
    assert invite_service.get_invite_status(
        _invite(expires_at=now - timedelta(seconds=1)), now
    ) == InviteStatus.EXPIRED
    assert invite_service.get_invite_status(
        _invite(expires_at=now - timedelta(days=30), accepted_at=now - timedelta(days=31)), now
    ) == InviteStatus.ACCEPTED


def test_create_invite(db, admin_context):
    invite = invite_service.create_invite(db, admin_context, "  New.Hire@Example.com ", Role.OPS)

    assert invite.email == "new.hire@example.com"
    assert invite.role == "OPS"
    assert invite.invited_by_user_id == admin_context.user_id
    read = invite_service.to_read(invite)
    assert read.status == InviteStatus.PENDING
    assert read.expires_at - read.created_at >= timedelta(days=settings.INVITE_EXPIRY_DAYS - 1)
    assert invite_service.build_accept_url(invite).endswith(f"/invite/{invite.token}")


def test_duplicate_pending_invite_conflicts(db, admin_context):
    invite_service.create_invite(db, admin_context, "new@example.com", Role.OPS)

    with pytest.raises(Conflict):
        invite_service.create_invite(db, admin_context, "NEW@example.com", Role.SALES)


def test_existing_member_conflicts(db, admin_context, make_member):
    make_member(Role.SALES, email="member@example.com")

    with pytest.raises(Conflict):
        invite_service.create_invite(db, admin_context, "member@example.com", Role.SALES)


def test_only_owner_invites_owner(db, admin_context, test_org, test_user, context_for):
    with pytest.raises(Forbidden):
        invite_service.create_invite(db, admin_context, "boss@example.com", Role.OWNER)

    owner_context = context_for(test_org, Role.OWNER, test_user)
    invite = invite_service.create_invite(db, owner_context, "boss@example.com", Role.OWNER)
    assert invite.role == "OWNER"


def test_pending_cap(db, admin_context, monkeypatch):
    monkeypatch.setattr(settings, "MAX_PENDING_INVITES_PER_ORG", 1)
    invite_service.create_invite(db, admin_context, "one@example.com", Role.OPS)

    with pytest.raises(ValidationFailed):
        invite_service.create_invite(db, admin_context, "two@example.com", Role.OPS)


def test_revoke_invite(db, admin_context):
    invite = invite_service.create_invite(db, admin_context, "gone@example.com", Role.OPS)

    invite_service.revoke_invite(db, admin_context, invite.id)

    assert invite_service.get_invite(db, admin_context.org_id, invite.id) is None
    with pytest.raises(NotFound):
        invite_service.revoke_invite(db, admin_context, invite.id)


def test_accept_invite_creates_membership(db, admin_context):
    invite = invite_service.create_invite(db, admin_context, "joiner@example.com", Role.FINANCE)
    user = User(email="joiner@example.com", display_name="Joiner")
    db.add(user)
    db.commit()

    org_id = invite_service.accept_invite(db, invite.token, user)

    assert org_id == admin_context.org_id
    membership = db.query(Membership).filter(Membership.user_id == user.id).one()
    assert membership.role == "FINANCE"
    db.refresh(invite)
    assert invite_service.get_invite_status(invite) == InviteStatus.ACCEPTED

    with pytest.raises(Conflict):
        invite_service.accept_invite(db, invite.token, user)
    with pytest.raises(Conflict):
        invite_service.revoke_invite(db, admin_context, invite.id)


def test_accept_unknown_or_expired(db, admin_context):
    user = User(email="late@example.com", display_name="Late")
    db.add(user)
    db.commit()

    with pytest.raises(NotFound):
        invite_service.accept_invite(db, "no-such-token", user)

    invite = invite_service.create_invite(db, admin_context, "late@example.com", Role.OPS)
    invite.expires_at = utc_now() - timedelta(minutes=1)
    db.commit()

    with pytest.raises(ValidationFailed):
        invite_service.accept_invite(db, invite.token, user)


def test_accept_requires_invited_email(db, test_org, test_user, context_for):
    owner_context = context_for(test_org, Role.OWNER, test_user)
    invite = invite_service.create_invite(db, owner_context, "cofounder@example.com", Role.OWNER)
    outsider = User(email="attacker@elsewhere.com", display_name="Outsider")
    db.add(outsider)
    db.commit()

    with pytest.raises(Forbidden):
        invite_service.accept_invite(db, invite.token, outsider)

    assert db.query(Membership).filter(Membership.user_id == outsider.id).count() == 0
    db.refresh(invite)
    assert invite_service.get_invite_status(invite) == InviteStatus.PENDING


@pytest.mark.parametrize(
    "context_name, expected_code",
    [("viewer_context", "FORBIDDEN"), ("demo_admin_context", "DEMO_READ_ONLY")],
)
def test_create_invite_gated(db, request, context_name, expected_code):
    context = request.getfixturevalue(context_name)

    with pytest.raises(Forbidden) as exc_info:
        invite_service.create_invite(db, context, "blocked@example.com", Role.OPS)

    assert exc_info.value.code == expected_code
    assert db.query(OrgInvite).count() == 0


@pytest.mark.parametrize(
    "context_name, expected_code",
    [("viewer_context", "FORBIDDEN"), ("demo_admin_context", "DEMO_READ_ONLY")],
)
def test_revoke_invite_gated(db, request, context_name, expected_code):
    context = request.getfixturevalue(context_name)
    invite = _invite(organization_id=context.org_id)
    db.add(invite)
    db.commit()

    with pytest.raises(Forbidden) as exc_info:
        invite_service.revoke_invite(db, context, invite.id)

    assert exc_info.value.code == expected_code
    assert db.query(OrgInvite).count() == 1


@pytest.mark.asyncio
async def test_viewer_cannot_list_invites(
    client_for, db, test_org, test_user, make_member, context_for
):
    owner_context = context_for(test_org, Role.OWNER, test_user)
    invite = invite_service.create_invite(db, owner_context, "cofounder@example.com", Role.OWNER)
    viewer = make_member(Role.VIEWER)

    async with client_for(viewer, test_org) as c:
        res = await c.get("/settings/invites")

    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"
    assert invite.token not in res.text


@pytest.mark.asyncio
async def test_admin_invite_list_omits_token(authed_client, db, test_org, test_user, context_for):
    owner_context = context_for(test_org, Role.OWNER, test_user)
    invite = invite_service.create_invite(db, owner_context, "cofounder@example.com", Role.OWNER)

    res = await authed_client.get("/settings/invites")

    assert res.status_code == 200
    body = res.json()
    assert body["pending_count"] == 1
    assert [i["email"] for i in body["invites"]] == ["cofounder@example.com"]
    assert "token" not in body["invites"][0]
    assert invite.token not in res.text
