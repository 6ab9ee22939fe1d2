from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol

from backoffice.core.errors import QuotaExceededError
from backoffice.core.plan_limits import UsageMetric

logger = logging.getLogger(__name__)


class QuotaLookup(Protocol):
    async def lookup_quota(self, tenant_id: uuid.UUID, metric: UsageMetric) -> Any:
        """Expected shape: {"allowed": bool, "limit": int, "used": int} (mapping or object)."""
        ...


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    limit: int | None = None
    used: int | None = None
    # True when the collaborator could not answer and we let the request through.
    degraded: bool = False


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, dict):
        return raw[name]
    return getattr(raw, name)


def _coerce(raw: Any) -> QuotaDecision:
    allowed = _field(raw, "allowed")
    limit = _field(raw, "limit")
    used = _field(raw, "used")
    if not isinstance(allowed, bool):
        raise TypeError(f"quota 'allowed' must be bool, got {type(allowed).__name__}")
    for name, value in (("limit", limit), ("used", used)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"quota {name!r} must be numeric, got {type(value).__name__}")
    return QuotaDecision(allowed=allowed, limit=int(limit), used=int(used))


class UsageGate:
    """
    Best-effort plan-limit check for metered actions.

    Unlike the authorization gate this one fails OPEN: if the quota
    collaborator errors, times out or answers garbage, the request proceeds
    and a warning is logged. Only a well-formed "not allowed" answer blocks.
    """

    def __init__(self, quota_lookup: QuotaLookup, *, timeout_seconds: float = 2.0) -> None:
        self._lookup = quota_lookup
        self._timeout = timeout_seconds

    async def check(self, tenant_id: uuid.UUID, metric: UsageMetric | str) -> QuotaDecision:
        try:
            metric = UsageMetric(metric)
            raw = await asyncio.wait_for(
                self._lookup.lookup_quota(tenant_id, metric),
                timeout=self._timeout,
            )
            decision = _coerce(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(
                "Quota check failed for tenant=%s metric=%s; allowing request (%s: %s)",
                tenant_id,
                metric,
                type(exc).__name__,
                exc,
            )
            return QuotaDecision(allowed=True, degraded=True)

        return decision

    async def enforce(self, tenant_id: uuid.UUID, metric: UsageMetric | str) -> QuotaDecision:
        decision = await self.check(tenant_id, metric)
        if not decision.allowed:
            raise QuotaExceededError(
                details={
                    "metric": UsageMetric(metric).value,
                    "limit": decision.limit,
                    "used": decision.used,
                }
            )
        return decision
