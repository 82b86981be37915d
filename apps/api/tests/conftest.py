"""
Test configuration and fixtures.

Provides:
- Database session on a fresh schema per test (in-memory SQLite by default)
- Orgs, users and memberships per role
- OrgContext builders for service-level tests
- HTTPX AsyncClient with session cookie and CSRF header
"""
import copy
import os
import uuid
from typing import AsyncGenerator, Callable, Generator

# Must be set before app settings are imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from app.core.deps import COOKIE_NAME, get_db
from app.core.security import create_session_token
from app.db.base import Base
from app.db.enums import Role
from app.db.models import Membership, Organization, User
from app.db.session import SessionLocal, engine
from app.main import app
from app.schemas.auth import OrgContext
from app.services import os_instance_service, os_template_service


CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a freshly created schema.

    App code commits and rolls back for real; the schema is dropped
    afterwards so every test starts empty.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_org(db: Session, name: str, is_demo: bool = False) -> Organization:
    org = Organization(
        id=uuid.uuid4(),
        name=name,
        slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:8]}",
        is_demo=is_demo,
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture(scope="function")
def test_org(db: Session) -> Organization:
    """Create a test organization."""
    return _make_org(db, "Test Organization")


@pytest.fixture(scope="function")
def demo_org(db: Session) -> Organization:
    """Create a read-only demo organization."""
    return _make_org(db, "Demo Organization", is_demo=True)


@pytest.fixture(scope="function")
def make_member(db: Session, test_org: Organization) -> Callable[..., User]:
    """Factory: create a user with `role` in `org` (defaults to test_org)."""
    def _make(role: Role, org: Organization | None = None, email: str | None = None) -> User:
        org = org or test_org
        user = User(
            id=uuid.uuid4(),
            email=email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@test.com",
            display_name=f"{role.value.title()} User",
        )
        db.add(user)
        db.flush()
        db.add(
            Membership(
                id=uuid.uuid4(),
                user_id=user.id,
                organization_id=org.id,
                role=role.value,
            )
        )
        db.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def test_user(make_member) -> User:
    """OWNER of test_org."""
    return make_member(Role.OWNER)


@pytest.fixture(scope="function")
def context_for() -> Callable[..., OrgContext]:
    """Factory: OrgContext for `user` with `role` in `org`."""
    def _make(org: Organization, role: Role | None, user: User | None = None) -> OrgContext:
        return OrgContext(
            org_id=org.id,
            org_name=org.name,
            org_slug=org.slug,
            is_demo=org.is_demo,
            role=role,
            user_id=user.id if user else None,
            email=user.email if user else None,
        )

    return _make


@pytest.fixture(scope="function")
def admin_context(test_org, make_member, context_for) -> OrgContext:
    user = make_member(Role.ADMIN)
    return context_for(test_org, Role.ADMIN, user)


@pytest.fixture(scope="function")
def viewer_context(test_org, make_member, context_for) -> OrgContext:
    user = make_member(Role.VIEWER)
    return context_for(test_org, Role.VIEWER, user)


@pytest.fixture(scope="function")
def demo_admin_context(demo_org, make_member, context_for) -> OrgContext:
    user = make_member(Role.ADMIN, org=demo_org)
    return context_for(demo_org, Role.ADMIN, user)


# =============================================================================
# Template Fixtures
# =============================================================================

CONSTRUCTION_BODY = {
    "kpis": [
        {"key": "project_margin", "name": "Project Margin %"},
        {"key": "safety_incidents", "name": "Safety Incidents (30d)"},
    ],
    "dashboards": [{"name": "Founder Command Center", "layout": []}],
    "alerts": [
        {
            "kpi_key": "project_margin",
            "severity": "high",
            "type": "threshold",
            "title": "Project Margin Below Target",
            "description": "Project margin has fallen below 15% threshold",
            "threshold": {"operator": "<", "value": 15},
        },
        {
            "kpi_key": "safety_incidents",
            "severity": "critical",
            "type": "threshold",
            "title": "Safety Incident Detected",
            "threshold": {"operator": ">", "value": 0},
            "due_in_days": 2,
        },
        {
            "kpi_key": "project_margin",
            "severity": "medium",
            "type": "trend",
            "title": "Project Margin Trend Negative",
            "threshold": {"operator": "trend_down", "periods": 3},
        },
    ],
    "cadence": [
        {
            "cadence": "weekly",
            "title": "Weekly Operations Review",
            "rules": {
                "include_alerts": {"severity": ["critical", "high"]},
                "include_tasks": {"state": ["open", "in_progress"], "due_within_days": 7},
                "include_kpis": {"trend": "negative"},
                "include_variances": True,
            },
        },
        {
            "cadence": "monthly",
            "title": "Monthly Business Review",
            "rules": {"include_alerts": {"severity": ["critical"]}},
        },
    ],
}


@pytest.fixture(scope="function")
def construction_body() -> dict:
    return copy.deepcopy(CONSTRUCTION_BODY)


@pytest.fixture(scope="function")
def construction_template(db: Session):
    """construction_ops with 3 alert rules and 2 cadence rules."""
    template, _ = os_template_service.upsert_template(
        db,
        key="construction_ops",
        name="Construction Ops OS",
        description="Construction operating system",
        version=1,
        template_json=copy.deepcopy(CONSTRUCTION_BODY),
    )
    db.commit()
    return template


@pytest.fixture(scope="function")
def published_instance(db: Session, admin_context: OrgContext, construction_template):
    """Published construction_ops instance in test_org (3 alerts, 2 cadence items)."""
    instance = os_instance_service.create_instance(
        db, admin_context, "construction_ops", name="Q1 Rollout"
    )
    os_instance_service.publish_instance(db, admin_context, instance.id)
    db.refresh(instance)
    return instance


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient."""
    _override_db(db)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_for(db: Session):
    """
    Factory: AsyncClient authenticated as `user` with `org` active.

    Use as `async with client_for(user, org) as c:`.
    """
    _override_db(db)

    def _make(user: User, org: Organization | None, csrf: bool = True) -> AsyncClient:
        token = create_session_token(
            user_id=user.id,
            org_id=org.id if org else None,
            token_version=user.token_version,
        )
        return AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={COOKIE_NAME: token},
            headers=CSRF_HEADERS if csrf else {},
        )

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(client_for, test_user, test_org) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the OWNER of test_org, with CSRF header."""
    async with client_for(test_user, test_org) as c:
        yield c
