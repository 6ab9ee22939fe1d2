from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends
from httpx import AsyncClient, ASGITransport

from backoffice.api.deps.authz import (
    get_membership_lookup,
    get_platform_lookup,
    get_quota_lookup,
    require_permissions,
    require_tenant,
    require_tenant_roles,
    require_usage,
)
from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import Capability
from backoffice.core.plan_limits import UsageMetric
from backoffice.core.roles import TenantRole
from backoffice.db.session import get_db

from helpers import FakeMembershipLookup, FakePlatformLookup, FakeQuotaLookup


@pytest.fixture()
def memberships() -> FakeMembershipLookup:
    return FakeMembershipLookup()


@pytest.fixture()
def platform() -> FakePlatformLookup:
    return FakePlatformLookup()


@pytest.fixture()
def quota() -> FakeQuotaLookup:
    return FakeQuotaLookup()


@pytest.fixture()
def mock_db() -> MagicMock:
    db = MagicMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    return db


# ---------------------------------------------------------
# Stand-in domain routes gated the way real handlers are
# ---------------------------------------------------------
def _domain_router() -> APIRouter:
    router = APIRouter(prefix="/api/v1")

    @router.get("/tenants/{tenant_id}/invoices")
    async def list_invoices(ctx: RequestContext = Depends(require_permissions(Capability.INVOICES_READ))):
        return {"status": "ok", "tenant_id": str(ctx.tenant_id), "role": ctx.role.value}

    @router.delete("/tenants/{tenant_id}/invoices/{invoice_id}")
    async def delete_invoice(
        invoice_id: str,
        ctx: RequestContext = Depends(require_permissions(Capability.INVOICES_DELETE)),
    ):
        return {"status": "deleted", "invoice_id": invoice_id}

    @router.post("/tenants/{tenant_id}/ai-analyses")
    async def run_analysis(
        ctx: RequestContext = Depends(require_permissions(Capability.DOCUMENTS_READ)),
        _quota: RequestContext = Depends(require_usage(UsageMetric.AI_ANALYSES)),
    ):
        return {"status": "queued"}

    @router.get("/settings/billing")
    async def billing_settings(
        ctx: RequestContext = Depends(require_tenant_roles(TenantRole.TENANT_OWNER)),
    ):
        return {"status": "ok"}

    @router.post("/tenants")
    async def create_first_tenant(ctx: RequestContext = Depends(require_tenant(optional=True))):
        return {"status": "ok", "user_id": str(ctx.user_id)}

    return router


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(memberships, platform, quota, mock_db):
    from backoffice.main import create_application

    fastapi_app = create_application()
    fastapi_app.include_router(_domain_router())

    fastapi_app.dependency_overrides[get_membership_lookup] = lambda: memberships
    fastapi_app.dependency_overrides[get_platform_lookup] = lambda: platform
    fastapi_app.dependency_overrides[get_quota_lookup] = lambda: quota
    fastapi_app.dependency_overrides[get_db] = lambda: mock_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------
# Identities
# ---------------------------------------------------------
@pytest.fixture()
def tenant_a() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def tenant_b() -> uuid.UUID:
    return uuid.uuid4()
