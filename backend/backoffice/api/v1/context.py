# backoffice/api/v1/context.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from backoffice.api.deps.authz import get_permission_catalog, require_tenant
from backoffice.auth.context import RequestContext
from backoffice.auth.permissions import PermissionCatalog
from backoffice.schemas.context import RequestContextOut

router = APIRouter(tags=["context"])


@router.get("/context", response_model=RequestContextOut)
async def read_context(
    ctx: RequestContext = Depends(require_tenant(optional=True)),
    catalog: PermissionCatalog = Depends(get_permission_catalog),
):
    """
    Who am I in this tenant? Works without a membership (tenant-optional) so
    the client can decide between tenant selection and "create first office".
    """
    return RequestContextOut.from_context(ctx, catalog)
