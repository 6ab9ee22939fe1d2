# backoffice/crud/tenant_membership.py
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.context import MembershipRecord
from backoffice.core.roles import (
    MembershipStatus,
    PlatformRole,
    TenantRole,
    parse_membership_status,
    parse_tenant_role,
)
from backoffice.models.platform_membership import PlatformMembership
from backoffice.models.tenant_membership import TenantMembership

logger = logging.getLogger(__name__)


def to_record(row: TenantMembership) -> Optional[MembershipRecord]:
    """
    Map an ORM row to the immutable record the auth layer works with.
    Rows with a role/status outside the closed enums are unusable -> None.
    """
    role = parse_tenant_role(row.role)
    status = parse_membership_status(row.status)
    if role is None or status is None:
        logger.error(
            "Membership row has unknown role/status",
            extra={"membership_id": str(row.id), "role": row.role, "status": row.status},
        )
        return None
    return MembershipRecord(tenant_id=row.tenant_id, user_id=row.user_id, role=role, status=status)


async def get_membership(
    db: AsyncSession, tenant_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[TenantMembership]:
    stmt = select(TenantMembership).where(
        TenantMembership.tenant_id == tenant_id,
        TenantMembership.user_id == user_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_memberships(db: AsyncSession, tenant_id: uuid.UUID) -> list[TenantMembership]:
    stmt = (
        select(TenantMembership)
        .where(TenantMembership.tenant_id == tenant_id)
        .order_by(TenantMembership.created_at)
    )
    return list((await db.execute(stmt)).scalars().all())


async def count_active_memberships(db: AsyncSession, tenant_id: uuid.UUID) -> int:
    """Active + invited seats; suspended members do not count toward the USERS limit."""
    stmt = (
        select(func.count(TenantMembership.id))
        .where(TenantMembership.tenant_id == tenant_id)
        .where(TenantMembership.status.in_([MembershipStatus.ACTIVE.value, MembershipStatus.INVITED.value]))
    )
    res = await db.execute(stmt)
    return int(res.scalar() or 0)


class SqlMembershipLookup:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def lookup_membership(
        self, user_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> Optional[MembershipRecord]:
        # Filter on BOTH ids; never "any membership of this user".
        row = await get_membership(self.db, tenant_id, user_id)
        if row is None:
            return None
        return to_record(row)


class SqlPlatformLookup:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def is_platform_operator(self, user_id: uuid.UUID) -> bool:
        stmt = select(PlatformMembership.id).where(
            PlatformMembership.user_id == user_id,
            PlatformMembership.is_active.is_(True),
            PlatformMembership.role.in_([r.value for r in PlatformRole]),
        )
        return (await self.db.execute(stmt)).scalar_one_or_none() is not None


async def create_membership(
    db: AsyncSession,
    *,
    tenant_id: uuid.UUID,
    user_id: uuid.UUID,
    role: TenantRole,
    status: MembershipStatus = MembershipStatus.INVITED,
) -> TenantMembership:
    """Caller owns the transaction; the (tenant, user) unique constraint rejects duplicates."""
    row = TenantMembership(tenant_id=tenant_id, user_id=user_id, role=role.value, status=status.value)
    db.add(row)
    await db.flush()
    return row
