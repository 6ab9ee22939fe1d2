from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backoffice.core.roles import MembershipStatus, TenantRole


class TenantMemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tenant_id: uuid.UUID
    user_id: uuid.UUID
    role: TenantRole
    status: MembershipStatus
    created_at: datetime


class TenantMemberRoleUpdate(BaseModel):
    role: TenantRole


class TenantMemberStatusUpdate(BaseModel):
    # "invited" is only ever set when a member is invited.
    status: MembershipStatus


class TenantMemberInvite(BaseModel):
    email: EmailStr
    role: TenantRole = TenantRole.STAFF
    full_name: Optional[str] = Field(default=None, max_length=200)


class TenantMemberUpdate(BaseModel):
    """Either field may be sent; when both are, the role change wins."""

    role: Optional[TenantRole] = None
    status: Optional[MembershipStatus] = None
