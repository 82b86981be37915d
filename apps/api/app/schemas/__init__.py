"""Pydantic schemas for API request/response models."""

from app.schemas.auth import MeResponse, OrgContext, TokenPayload
from app.schemas.invite import InviteAccept, InviteCreate, InviteRead
from app.schemas.org import (
    MemberRead,
    MemberRoleUpdate,
    OrgCreate,
    OrgNameUpdate,
    OrgRead,
    OrgSwitch,
)
from app.schemas.os import (
    AgendaResponse,
    AgendaSection,
    AlertRead,
    AlertSummary,
    AlertUpdate,
    ExecPacketCreate,
    ExecPacketRead,
    InstanceCreate,
    InstanceRead,
    PublishResult,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from app.schemas.os_template import TemplateBody, TemplateRead

__all__ = [
    # Auth
    "TokenPayload",
    "OrgContext",
    "MeResponse",
    # Org
    "OrgCreate",
    "OrgRead",
    "OrgSwitch",
    "OrgNameUpdate",
    "MemberRead",
    "MemberRoleUpdate",
    # Invite
    "InviteCreate",
    "InviteRead",
    "InviteAccept",
    # Templates
    "TemplateBody",
    "TemplateRead",
    # OS
    "InstanceCreate",
    "InstanceRead",
    "PublishResult",
    "AlertRead",
    "AlertUpdate",
    "AlertSummary",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "AgendaSection",
    "AgendaResponse",
    "ExecPacketCreate",
    "ExecPacketRead",
]
