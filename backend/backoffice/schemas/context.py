from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel

from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import PermissionCatalog


class MembershipOut(BaseModel):
    role: str
    status: str


class ImpersonationOut(BaseModel):
    impersonator_id: uuid.UUID
    impersonated_user_id: uuid.UUID


class RequestContextOut(BaseModel):
    request_id: str
    user_id: uuid.UUID
    tenant_id: Optional[uuid.UUID] = None
    membership: Optional[MembershipOut] = None
    impersonation: Optional[ImpersonationOut] = None
    capabilities: List[str] = []

    @classmethod
    def from_context(cls, ctx: RequestContext, catalog: PermissionCatalog) -> "RequestContextOut":
        membership = None
        if ctx.membership is not None:
            membership = MembershipOut(role=ctx.membership.role.value, status=ctx.membership.status.value)
        impersonation = None
        if ctx.impersonation is not None:
            impersonation = ImpersonationOut(
                impersonator_id=ctx.impersonation.impersonator_id,
                impersonated_user_id=ctx.impersonation.impersonated_user_id,
            )
        return cls(
            request_id=ctx.request_id,
            user_id=ctx.user_id,
            tenant_id=ctx.tenant_id,
            membership=membership,
            impersonation=impersonation,
            capabilities=sorted(c.value for c in catalog.grants(ctx.role)),
        )
