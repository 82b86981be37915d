"""End-to-end tests for the OS workspace HTTP surface."""

import pytest

from app.core.deps import COOKIE_NAME
from app.db.enums import Role
from app.db.models import Membership, OsInstance
from app.services import os_instance_service, os_template_service


@pytest.mark.asyncio
async def test_rollout_lifecycle(authed_client, construction_template, db):
    res = await authed_client.post(
        "/os/instances", json={"templateKey": "construction_ops", "name": "Q1 Rollout"}
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    instance_id = body["instance_id"]
    assert body["instance"]["status"] == "draft"
    assert body["instance"]["template_key"] == "construction_ops"

    res = await authed_client.post(f"/os/instances/{instance_id}/publish")
    assert res.status_code == 200
    published = res.json()
    assert published["success"] is True
    assert published["status"] == "published"
    assert published["alerts_created"] == 3
    assert published["cadence_items_created"] == 2

    res = await authed_client.get("/os/alerts", params={"os_instance_id": instance_id})
    alerts = res.json()["alerts"]
    assert len(alerts) == 3
    assert {a["state"] for a in alerts} == {"open"}
    assert all(a["owner"] is None for a in alerts)

    target = next(a for a in alerts if a["severity"] == "critical")
    res = await authed_client.patch(
        f"/os/alerts/{target['id']}",
        json={"state": "resolved", "owner": "pm@example.com"},
    )
    assert res.status_code == 200
    patched = res.json()["alert"]
    assert patched["state"] == "resolved"
    assert patched["resolved_at"] is not None
    assert patched["instance_name"] == "Q1 Rollout"

    res = await authed_client.get("/os/alerts", params={"state": "open"})
    assert len(res.json()["alerts"]) == 2

    res = await authed_client.post(f"/os/instances/{instance_id}/publish")
    assert res.status_code == 409
    assert res.json() == {
        "success": False,
        "error": "Instance is already published",
        "code": "ALREADY_PUBLISHED",
    }
    res = await authed_client.get("/os/alerts", params={"os_instance_id": instance_id})
    assert len(res.json()["alerts"]) == 3

    res = await authed_client.get("/os/alerts/summary")
    assert res.json()["summary"] == {"low": 0, "medium": 1, "high": 1, "critical": 0}

    res = await authed_client.get("/os/cadence/weekly")
    agenda = res.json()["agenda"]
    assert [s["type"] for s in agenda] == ["alerts", "kpis"]
    assert [a["severity"] for a in agenda[0]["items"]] == ["high"]


@pytest.mark.asyncio
async def test_task_and_packet_endpoints(authed_client, published_instance):
    res = await authed_client.get("/os/alerts", params={"severity": "critical"})
    alert_id = res.json()["alerts"][0]["id"]

    res = await authed_client.post(
        "/os/tasks",
        json={"alert_id": alert_id, "title": "Walk the site", "owner": "safety@example.com"},
    )
    assert res.status_code == 200
    task = res.json()["task"]
    assert task["alert_title"] == "Safety Incident Detected"

    res = await authed_client.patch(f"/os/tasks/{task['id']}", json={"state": "done"})
    assert res.json()["task"]["state"] == "done"

    res = await authed_client.post(
        "/os/exec-packets", json={"os_instance_id": str(published_instance.id)}
    )
    assert res.status_code == 200
    packet = res.json()["packet"]
    assert packet["packet_json"]["os_instance"]["name"] == "Q1 Rollout"

    res = await authed_client.get("/os/exec-packets")
    assert len(res.json()["packets"]) == 1


@pytest.mark.asyncio
async def test_viewer_publish_forbidden(client_for, make_member, test_org, admin_context, db):
    os_template_service.upsert_template(
        db, key="empty_ops", name="Empty Ops", description=None, version=1, template_json={}
    )
    db.commit()
    instance = os_instance_service.create_instance(db, admin_context, "empty_ops")
    viewer = make_member(Role.VIEWER)

    async with client_for(viewer, test_org) as c:
        res = await c.post(f"/os/instances/{instance.id}/publish")
        listed = await c.get("/os/instances")

    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"
    assert listed.status_code == 200
    assert [i["status"] for i in listed.json()["instances"]] == ["draft"]


@pytest.mark.asyncio
async def test_demo_admin_create_is_read_only(
    client_for, make_member, demo_org, construction_template, db
):
    demo_admin = make_member(Role.ADMIN, org=demo_org)

    async with client_for(demo_admin, demo_org) as c:
        res = await c.post(
            "/os/instances", json={"templateKey": "construction_ops", "name": "Q1 Rollout"}
        )
        templates = await c.get("/os/templates")

    assert res.status_code == 403
    assert res.json() == {
        "success": False,
        "error": "Demo org is read-only",
        "code": "DEMO_READ_ONLY",
    }
    assert db.query(OsInstance).count() == 0
    assert [t["key"] for t in templates.json()["templates"]] == ["construction_ops"]


@pytest.mark.asyncio
async def test_mutation_without_csrf_header(client_for, test_user, test_org, construction_template, db):
    async with client_for(test_user, test_org, csrf=False) as c:
        res = await c.post("/os/instances", json={"templateKey": "construction_ops"})

    assert res.status_code == 403
    assert res.json()["code"] == "FORBIDDEN"
    assert db.query(OsInstance).count() == 0


@pytest.mark.asyncio
async def test_request_errors_use_envelope(authed_client, construction_template):
    res = await authed_client.post("/os/instances", json={})
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_FAILED"
    assert res.json()["success"] is False

    res = await authed_client.post("/os/instances", json={"templateKey": "nope_ops"})
    assert res.status_code == 404
    assert res.json()["code"] == "NOT_FOUND"

    res = await authed_client.get("/os/cadence/hourly")
    assert res.status_code == 400

    res = await authed_client.get("/os/templates/construction_ops")
    assert res.json()["template"]["alert_rule_count"] == 3


@pytest.mark.asyncio
async def test_switch_org_reissues_cookie(client_for, test_user, test_org, demo_org, db):
    db.add(Membership(user_id=test_user.id, organization_id=demo_org.id, role=Role.VIEWER.value))
    db.commit()

    async with client_for(test_user, test_org) as c:
        res = await c.post("/org/set", json={"org_id": str(demo_org.id)})
        assert res.status_code == 200
        assert res.json()["context"]["org_id"] == str(demo_org.id)
        assert COOKIE_NAME in res.cookies

        c.cookies.set(COOKIE_NAME, res.cookies[COOKIE_NAME])
        me = await c.get("/auth/me")

    assert me.json()["context"]["org_id"] == str(demo_org.id)
    assert me.json()["context"]["can_write"] is False
    assert me.json()["read_only_reason"] == "Demo org is read-only"


@pytest.mark.asyncio
async def test_mine_lists_orgs(authed_client, test_org):
    res = await authed_client.get("/org/mine")

    assert res.status_code == 200
    body = res.json()
    assert body["active_org_id"] == str(test_org.id)
    assert [(o["slug"], o["role"]) for o in body["orgs"]] == [(test_org.slug, "OWNER")]
