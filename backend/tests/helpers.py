from __future__ import annotations

import uuid
from typing import Optional

from backoffice.auth.context import MembershipRecord
from backoffice.core.plan_limits import UsageMetric
from backoffice.core.roles import MembershipStatus, TenantRole
from backoffice.core.security import create_access_token, create_impersonation_token


class FakeMembershipLookup:
    """(user_id, tenant_id) -> MembershipRecord, with an optional forced failure."""

    def __init__(self) -> None:
        self.records: dict[tuple[uuid.UUID, uuid.UUID], MembershipRecord] = {}
        self.calls: list[tuple[uuid.UUID, uuid.UUID]] = []
        self.error: Optional[Exception] = None

    def add(
        self,
        user_id: uuid.UUID,
        tenant_id: uuid.UUID,
        role: TenantRole,
        status: MembershipStatus = MembershipStatus.ACTIVE,
    ) -> MembershipRecord:
        rec = MembershipRecord(tenant_id=tenant_id, user_id=user_id, role=role, status=status)
        self.records[(user_id, tenant_id)] = rec
        return rec

    async def lookup_membership(self, user_id, tenant_id):
        self.calls.append((user_id, tenant_id))
        if self.error is not None:
            raise self.error
        return self.records.get((user_id, tenant_id))


class FakePlatformLookup:
    def __init__(self) -> None:
        self.operators: set[uuid.UUID] = set()

    async def is_platform_operator(self, user_id):
        return user_id in self.operators


class FakeQuotaLookup:
    def __init__(self) -> None:
        self.response = {"allowed": True, "limit": 20, "used": 0}
        self.error: Optional[Exception] = None
        self.calls: list[tuple[uuid.UUID, UsageMetric]] = []

    async def lookup_quota(self, tenant_id, metric):
        self.calls.append((tenant_id, metric))
        if self.error is not None:
            raise self.error
        return self.response


def auth_headers(user_id: uuid.UUID, tenant_id: Optional[uuid.UUID] = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(user_id)}"}
    if tenant_id is not None:
        headers["X-Tenant-Id"] = str(tenant_id)
    return headers


def impersonation_headers(
    operator_id: uuid.UUID, target_id: uuid.UUID, tenant_id: Optional[uuid.UUID] = None
) -> dict[str, str]:
    token = create_impersonation_token(target_user_id=target_id, impersonator_id=operator_id)
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_id is not None:
        headers["X-Tenant-Id"] = str(tenant_id)
    return headers
