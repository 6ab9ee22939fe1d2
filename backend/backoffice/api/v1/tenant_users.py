# backoffice/api/v1/tenant_users.py
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps.authz import require_permissions, require_tenant, require_usage
from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import Capability
from backoffice.core.plan_limits import UsageMetric
from backoffice.db.session import get_db
from backoffice.schemas.tenant_membership import (
    TenantMemberInvite,
    TenantMemberOut,
    TenantMemberRoleUpdate,
    TenantMemberStatusUpdate,
    TenantMemberUpdate,
)
from backoffice.services.memberships import MembershipService

router = APIRouter(prefix="/tenants/{tenant_id}/users", tags=["tenant-users"])


def get_membership_service(db: AsyncSession = Depends(get_db)) -> MembershipService:
    return MembershipService(db)


@router.get("", response_model=List[TenantMemberOut])
async def list_tenant_users(
    tenant_id: uuid.UUID,
    ctx: RequestContext = Depends(require_permissions(Capability.USERS_READ)),
    service: MembershipService = Depends(get_membership_service),
):
    # ctx.tenant_id, not the raw path value: the gate already bound them together.
    return await service.list_members(ctx.tenant_id)


@router.patch("/{user_id}/role", response_model=TenantMemberOut)
async def change_tenant_user_role(
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: TenantMemberRoleUpdate,
    ctx: RequestContext = Depends(require_permissions(Capability.USERS_UPDATE)),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.change_role(ctx, user_id, payload.role)


@router.patch("/{user_id}/status", response_model=TenantMemberOut)
async def change_tenant_user_status(
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: TenantMemberStatusUpdate,
    ctx: RequestContext = Depends(require_permissions(Capability.USERS_UPDATE)),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.change_status(ctx, user_id, payload.status)


@router.post("/invite", response_model=TenantMemberOut, status_code=status.HTTP_201_CREATED)
async def invite_tenant_user(
    tenant_id: uuid.UUID,
    payload: TenantMemberInvite,
    ctx: RequestContext = Depends(require_permissions(Capability.USERS_INVITE)),
    _quota: RequestContext = Depends(require_usage(UsageMetric.USERS)),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.invite(ctx, payload.email, payload.role, payload.full_name)


@router.post("/{user_id}/accept-invitation", response_model=TenantMemberOut)
async def accept_tenant_invitation(
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    # An invitee has no active membership yet, so only authentication is enforced here.
    ctx: RequestContext = Depends(require_tenant(optional=True)),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.accept_invitation(ctx, user_id)


@router.patch("/{user_id}", response_model=TenantMemberOut)
async def update_tenant_user(
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: TenantMemberUpdate,
    ctx: RequestContext = Depends(require_permissions(Capability.USERS_UPDATE)),
    service: MembershipService = Depends(get_membership_service),
):
    return await service.update_member(ctx, user_id, role=payload.role, status=payload.status)
