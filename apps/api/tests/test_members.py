"""Tests for member role changes and removal."""

import uuid

import pytest

from app.core.exceptions import Conflict, Forbidden, NotFound
from app.db.enums import Role
from app.services import membership_service


@pytest.fixture
def owner_context(test_org, test_user, context_for):
    return context_for(test_org, Role.OWNER, test_user)


def test_list_members_includes_roles(db, test_org, test_user, make_member):
    make_member(Role.OPS, email="ops@example.com")

    members = membership_service.list_members(db, test_org.id)

    assert [m.role for m in members] == [Role.OWNER, Role.OPS]
    assert members[0].email == test_user.email


def test_last_owner_cannot_be_removed(db, test_org, test_user, owner_context):
    with pytest.raises(Conflict) as exc_info:
        membership_service.remove_member(db, owner_context, test_user.id)

    assert exc_info.value.code == "LAST_OWNER"
    assert membership_service.count_owners(db, test_org.id) == 1


def test_last_owner_cannot_be_demoted(db, test_org, test_user, owner_context):
    with pytest.raises(Conflict):
        membership_service.update_member_role(db, owner_context, test_user.id, Role.ADMIN)

    membership = membership_service.get_membership(db, test_org.id, test_user.id)
    assert membership.role == "OWNER"


def test_second_owner_can_be_removed_by_admin(db, test_org, test_user, make_member, admin_context):
    co_owner = make_member(Role.OWNER)

    membership_service.remove_member(db, admin_context, co_owner.id)

    assert membership_service.get_membership(db, test_org.id, co_owner.id) is None
    assert membership_service.count_owners(db, test_org.id) == 1


def test_owner_demotion_allowed_when_another_owner_remains(
    db, test_org, test_user, make_member, owner_context
):
    co_owner = make_member(Role.OWNER)

    membership = membership_service.update_member_role(db, owner_context, co_owner.id, Role.VIEWER)

    assert membership.role == "VIEWER"
    assert membership_service.count_owners(db, test_org.id) == 1


def test_admin_cannot_grant_or_revoke_owner(db, test_user, make_member, admin_context):
    ops = make_member(Role.OPS)

    with pytest.raises(Forbidden):
        membership_service.update_member_role(db, admin_context, ops.id, Role.OWNER)
    with pytest.raises(Forbidden):
        membership_service.update_member_role(db, admin_context, test_user.id, Role.ADMIN)


def test_admin_changes_functional_roles(db, test_org, make_member, admin_context):
    ops = make_member(Role.OPS)

    membership_service.update_member_role(db, admin_context, ops.id, Role.FINANCE)

    assert membership_service.get_membership(db, test_org.id, ops.id).role == "FINANCE"


def test_unknown_member_and_viewer_gate(db, make_member, admin_context, viewer_context):
    outsider_id = uuid.uuid4()
    with pytest.raises(NotFound):
        membership_service.remove_member(db, admin_context, outsider_id)

    ops = make_member(Role.OPS)
    with pytest.raises(Forbidden):
        membership_service.remove_member(db, viewer_context, ops.id)


def test_demo_admin_cannot_change_members(db, demo_org, make_member, demo_admin_context):
    viewer = make_member(Role.VIEWER, org=demo_org)

    with pytest.raises(Forbidden) as exc_info:
        membership_service.update_member_role(db, demo_admin_context, viewer.id, Role.OPS)
    assert exc_info.value.code == "DEMO_READ_ONLY"

    with pytest.raises(Forbidden) as exc_info:
        membership_service.remove_member(db, demo_admin_context, viewer.id)
    assert exc_info.value.code == "DEMO_READ_ONLY"

    assert membership_service.get_membership(db, demo_org.id, viewer.id).role == "VIEWER"
    assert len(membership_service.list_members(db, demo_org.id)) == 2
