#Tenant isolation for the route engine.
#Re-exports the scope helpers so callers import from tenancy directly.

from .models import CallerIdentity, UserRole, PLATFORM_ROLES
from .errors import ScopeError
from .context import TenantScope, establish_scope, tenant_scope, require_scope, scope_violation

__all__ = [
    "ScopeError",
    "CallerIdentity",
    "UserRole",
    "PLATFORM_ROLES",
    "TenantScope",
    "establish_scope",
    "tenant_scope",
    "require_scope",
    "scope_violation",
]
