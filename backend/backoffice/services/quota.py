from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.plan_limits import UsageMetric, current_period, get_limits_for_plan
from backoffice.crud.tenant_membership import count_active_memberships
from backoffice.models.tenant import Tenant
from backoffice.models.tenant_usage import TenantUsage


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    limit: int
    used: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


async def get_usage_value(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    metric: UsageMetric,
    period_start: datetime,
) -> int:
    stmt = select(TenantUsage.value).where(
        TenantUsage.tenant_id == tenant_id,
        TenantUsage.metric == UsageMetric(metric).value,
        TenantUsage.period_start == period_start,
    )
    res = await db.execute(stmt)
    return int(res.scalar_one_or_none() or 0)


async def increment_usage(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    metric: UsageMetric,
    amount: int = 1,
    *,
    now: Optional[datetime] = None,
) -> None:
    """
    Bump the current-period counter (insert-or-increment).
    Caller owns the transaction.

    This is the hook domain handlers call after a metered action succeeds,
    pairing it with `require_usage(metric)` on the route. Monthly metrics
    such as DOCUMENTS and AI_ANALYSES are counted here. USERS is counted
    live from memberships, so the invite route only checks it.
    """
    period_start, period_end = current_period(now)
    stmt = pg_insert(TenantUsage).values(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        metric=UsageMetric(metric).value,
        period_start=period_start,
        period_end=period_end,
        value=amount,
    )
    stmt = stmt.on_conflict_do_update(
        constraint="uq_tenant_usage_tenant_metric_period",
        set_={"value": TenantUsage.value + amount},
    )
    await db.execute(stmt)


class SqlQuotaLookup:
    """Plan limit vs. current-period counter for a tenant."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def lookup_quota(self, tenant_id: uuid.UUID, metric: UsageMetric) -> QuotaStatus:
        plan = (
            await self.db.execute(select(Tenant.plan).where(Tenant.id == tenant_id))
        ).scalar_one_or_none()
        if plan is None:
            raise LookupError(f"tenant {tenant_id} not found")

        limit = get_limits_for_plan(plan).limit_for(metric)
        if UsageMetric(metric) == UsageMetric.USERS:
            # seats are a live count, not a monthly counter
            used = await count_active_memberships(self.db, tenant_id)
        else:
            period_start, _ = current_period()
            used = await get_usage_value(self.db, tenant_id, metric, period_start)
        return QuotaStatus(allowed=used < limit, limit=limit, used=used)
