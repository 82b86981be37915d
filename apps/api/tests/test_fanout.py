"""Tests for publication fan-out expansion."""

import uuid
from datetime import datetime, timedelta, timezone

from app.services import os_fanout, os_template_service


PUBLISHED_AT = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


def test_expand_builds_one_row_per_rule(construction_body):
    body = os_template_service.parse_template_body(construction_body)
    org_id, instance_id = uuid.uuid4(), uuid.uuid4()

    result = os_fanout.expand(body, org_id, instance_id, PUBLISHED_AT)

    assert len(result.alerts) == 3
    assert len(result.cadence_items) == 2
    for alert in result.alerts:
        assert alert.organization_id == org_id
        assert alert.os_instance_id == instance_id
        assert alert.state == "open"
        assert alert.owner is None

    first = result.alerts[0]
    assert first.severity == "high"
    assert first.alert_type == "threshold"
    assert first.title == "Project Margin Below Target"
    assert first.description == "Project margin has fallen below 15% threshold"
    assert first.kpi_key == "project_margin"
    assert result.alerts[2].alert_type == "trend"


def test_due_at_only_from_relative_offset(construction_body):
    body = os_template_service.parse_template_body(construction_body)

    result = os_fanout.expand(body, uuid.uuid4(), uuid.uuid4(), PUBLISHED_AT)

    assert result.alerts[0].due_at is None
    assert result.alerts[1].due_at == PUBLISHED_AT + timedelta(days=2)
    assert result.alerts[2].due_at is None


def test_cadence_rules_copied_verbatim(construction_body):
    body = os_template_service.parse_template_body(construction_body)

    result = os_fanout.expand(body, uuid.uuid4(), uuid.uuid4(), PUBLISHED_AT)

    weekly, monthly = result.cadence_items
    assert weekly.cadence == "weekly"
    assert weekly.title == "Weekly Operations Review"
    assert weekly.rules_json == construction_body["cadence"][0]["rules"]
    assert monthly.rules_json == {"include_alerts": {"severity": ["critical"]}}


def test_unknown_rule_keys_survive_expansion(construction_body):
    construction_body["cadence"][1]["rules"]["include_forecast"] = {"horizon": 3}
    body = os_template_service.parse_template_body(construction_body)

    result = os_fanout.expand(body, uuid.uuid4(), uuid.uuid4(), PUBLISHED_AT)

    assert result.cadence_items[1].rules_json["include_forecast"] == {"horizon": 3}


def test_expand_is_repeatable(construction_body):
    body = os_template_service.parse_template_body(construction_body)
    instance_id = uuid.uuid4()

    first = os_fanout.expand(body, uuid.uuid4(), instance_id, PUBLISHED_AT)
    second = os_fanout.expand(body, uuid.uuid4(), instance_id, PUBLISHED_AT)

    assert [a.title for a in first.alerts] == [a.title for a in second.alerts]
    assert [c.title for c in first.cadence_items] == [c.title for c in second.cadence_items]


def test_empty_template_expands_to_nothing():
    body = os_template_service.parse_template_body({})

    result = os_fanout.expand(body, uuid.uuid4(), uuid.uuid4(), PUBLISHED_AT)

    assert result.alerts == []
    assert result.cadence_items == []
