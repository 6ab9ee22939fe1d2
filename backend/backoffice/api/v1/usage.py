# backoffice/api/v1/usage.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from backoffice.api.deps.authz import get_quota_lookup, require_any_permission
from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import Capability
from backoffice.auth.usage import QuotaLookup, UsageGate
from backoffice.core.config import settings
from backoffice.core.plan_limits import UsageMetric
from backoffice.schemas.usage import UsageOut

router = APIRouter(prefix="/tenants/{tenant_id}/usage", tags=["usage"])


@router.get("/{metric}", response_model=UsageOut)
async def read_usage(
    tenant_id: uuid.UUID,
    metric: UsageMetric,
    ctx: RequestContext = Depends(
        require_any_permission(Capability.SETTINGS_BILLING, Capability.REPORTS_READ)
    ),
    quota: QuotaLookup = Depends(get_quota_lookup),
):
    """Current plan usage for one metric. Never errors on quota backend outages."""
    decision = await UsageGate(quota, timeout_seconds=settings.QUOTA_LOOKUP_TIMEOUT_SECONDS).check(
        ctx.tenant_id, metric
    )
    return UsageOut(
        metric=metric.value,
        allowed=decision.allowed,
        limit=decision.limit,
        used=decision.used,
        degraded=decision.degraded,
    )
