# Import models here so Alembic can discover metadata.
from backoffice.models.user import User  # noqa: F401

# tenants, memberships, platform operators, metered usage
from backoffice.models.tenant import Tenant  # noqa: F401
from backoffice.models.tenant_membership import TenantMembership  # noqa: F401
from backoffice.models.platform_membership import PlatformMembership  # noqa: F401
from backoffice.models.tenant_usage import TenantUsage  # noqa: F401
