"""Baseline migration - tenants, identity, OS workspace

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates organizations, users, memberships and invites, the shared OS
template catalog, and the tenant-scoped instance/alert/cadence/task/packet
tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Tenants and identity
    # ==========================================================================
    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('is_demo', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', TS, nullable=False),
    )

    op.create_table(
        'memberships',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('created_at', TS, nullable=False),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_memberships_user_org'),
    )
    op.create_index('idx_memberships_org_id', 'memberships', ['organization_id'])

    op.create_table(
        'org_invites',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('token', sa.String(128), nullable=False, unique=True),
        sa.Column('invited_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('expires_at', TS, nullable=False),
        sa.Column('accepted_at', TS, nullable=True),
        sa.Column('accepted_by_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('idx_org_invites_org_id', 'org_invites', ['organization_id'])

    # ==========================================================================
    # OS template catalog (shared, not tenant-owned)
    # ==========================================================================
    op.create_table(
        'os_templates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('template_json', JSON_DOC, nullable=False),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )

    # ==========================================================================
    # OS workspace (tenant-scoped)
    # ==========================================================================
    op.create_table(
        'os_instances',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('template_id', sa.Uuid(), sa.ForeignKey('os_templates.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.String(320), nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('published_at', TS, nullable=True),
    )
    op.create_index('idx_os_instances_org_created', 'os_instances', ['organization_id', 'created_at'])

    op.create_table(
        'alerts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('os_instance_id', sa.Uuid(), sa.ForeignKey('os_instances.id', ondelete='CASCADE'), nullable=True),
        sa.Column('kpi_key', sa.String(100), nullable=True),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('alert_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('state', sa.String(20), nullable=False, server_default='open'),
        sa.Column('owner', sa.String(320), nullable=True),
        sa.Column('due_at', TS, nullable=True),
        sa.Column('disposition', sa.Text(), nullable=True),
        sa.Column('resolved_at', TS, nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )
    op.create_index('idx_alerts_org_state', 'alerts', ['organization_id', 'state'])
    op.create_index('idx_alerts_instance', 'alerts', ['os_instance_id'])

    op.create_table(
        'cadence_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('os_instance_id', sa.Uuid(), sa.ForeignKey('os_instances.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cadence', sa.String(20), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('rules_json', JSON_DOC, nullable=False),
        sa.Column('created_at', TS, nullable=False),
    )
    op.create_index('idx_cadence_items_org_cadence', 'cadence_items', ['organization_id', 'cadence'])

    op.create_table(
        'os_tasks',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('alert_id', sa.Uuid(), sa.ForeignKey('alerts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner', sa.String(320), nullable=False),
        sa.Column('state', sa.String(20), nullable=False, server_default='open'),
        sa.Column('due_at', TS, nullable=True),
        sa.Column('created_at', TS, nullable=False),
        sa.Column('updated_at', TS, nullable=False),
    )
    op.create_index('idx_os_tasks_org_state', 'os_tasks', ['organization_id', 'state'])

    op.create_table(
        'exec_packets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('os_instance_id', sa.Uuid(), sa.ForeignKey('os_instances.id', ondelete='CASCADE'), nullable=False),
        sa.Column('period_start', TS, nullable=False),
        sa.Column('period_end', TS, nullable=False),
        sa.Column('packet_json', JSON_DOC, nullable=False),
        sa.Column('created_at', TS, nullable=False),
    )


def downgrade() -> None:
    """Drop all tables (children first)."""
    for table in (
        'exec_packets',
        'os_tasks',
        'cadence_items',
        'alerts',
        'os_instances',
        'os_templates',
        'org_invites',
        'memberships',
        'users',
        'organizations',
    ):
        op.drop_table(table)
