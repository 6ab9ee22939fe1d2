# ============================
# FILE: backoffice/core/plan_limits.py
# Canonical plan limits per subscription plan
# ============================
from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass
from datetime import datetime, timezone


class SubscriptionPlan(str, enum.Enum):
    FREE = "FREE"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class UsageMetric(str, enum.Enum):
    CLIENT_COMPANIES = "CLIENT_COMPANIES"
    DOCUMENTS = "DOCUMENTS"
    AI_ANALYSES = "AI_ANALYSES"
    USERS = "USERS"
    SCHEDULED_REPORTS = "SCHEDULED_REPORTS"


@dataclass(frozen=True)
class PlanLimits:
    max_client_companies: int
    max_documents_per_month: int
    max_ai_analyses_per_month: int
    max_users: int
    max_scheduled_reports: int

    def limit_for(self, metric: UsageMetric) -> int:
        return {
            UsageMetric.CLIENT_COMPANIES: self.max_client_companies,
            UsageMetric.DOCUMENTS: self.max_documents_per_month,
            UsageMetric.AI_ANALYSES: self.max_ai_analyses_per_month,
            UsageMetric.USERS: self.max_users,
            UsageMetric.SCHEDULED_REPORTS: self.max_scheduled_reports,
        }[UsageMetric(metric)]


PLAN_LIMITS: dict[SubscriptionPlan, PlanLimits] = {
    SubscriptionPlan.FREE: PlanLimits(
        max_client_companies=5,
        max_documents_per_month=100,
        max_ai_analyses_per_month=20,
        max_users=2,
        max_scheduled_reports=1,
    ),
    SubscriptionPlan.PRO: PlanLimits(
        max_client_companies=50,
        max_documents_per_month=2000,
        max_ai_analyses_per_month=500,
        max_users=10,
        max_scheduled_reports=20,
    ),
    SubscriptionPlan.ENTERPRISE: PlanLimits(
        max_client_companies=1000,
        max_documents_per_month=50000,
        max_ai_analyses_per_month=10000,
        max_users=100,
        max_scheduled_reports=200,
    ),
}


def normalize_plan(value: str | None) -> SubscriptionPlan:
    """
    Unknown / empty plans are treated as FREE.
    """
    v = (getattr(value, "value", value) or "").strip().upper()
    try:
        return SubscriptionPlan(v)
    except ValueError:
        return SubscriptionPlan.FREE


def get_limits_for_plan(plan: str | None) -> PlanLimits:
    return PLAN_LIMITS[normalize_plan(plan)]


def current_period(now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    Usage is metered per calendar month (UTC): first day 00:00 to last day 23:59:59.999999.
    """
    now = now or datetime.now(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_day = calendar.monthrange(now.year, now.month)[1]
    end = now.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
    return start, end
