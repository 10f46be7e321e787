"""
Purpose: Tenant scope for one logical operation.
What it does:
- Resolves the organization a caller may act on (establish_scope)
- Wraps it in a TenantScope value that is passed explicitly to every
  store / planner / lifecycle / analytics call
- Closes the scope when the operation ends (tenant_scope context manager)

Rule: There is no module level "current tenant". Two concurrent requests for
different organizations each hold their own TenantScope object.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .errors import ScopeError
from .models import CallerIdentity, UserRole

#isolation violations get their own logger so they can be routed/alerted separately
security_logger = logging.getLogger("tenancy.security")


@dataclass(eq=False)
class TenantScope:
    """
    Organization scope of a single operation.
    Read-only filtering metadata, except for the active flag flipped by close().
    """
    organization_id: str
    user_id: str
    role: UserRole
    _active: bool = field(default=True, repr=False)

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.TRANSPORTATION_TEAM

    def close(self) -> None:
        self._active = False


def scope_violation(message: str) -> ScopeError:
    """
    Log on the security logger and build the error for the caller to raise.
    """
    security_logger.warning(f"Tenant scope violation: {message}")
    return ScopeError(message)


def establish_scope(identity: CallerIdentity, organization_id: Optional[str] = None) -> TenantScope:
    """
    Build the scope for an authenticated caller.

    Platform roles may act on any organization (explicit organization_id),
    falling back to their own. Everyone else is pinned to their own
    organization; asking for a different one is a ScopeError.
    """
    if identity is None:
        raise scope_violation("no authenticated identity supplied")

    requested = str(organization_id) if organization_id is not None else None

    if identity.is_platform_user:
        resolved = requested or identity.organization_id
    else:
        if requested is not None and requested != identity.organization_id:
            raise scope_violation(
                f"user {identity.user_id} of organization {identity.organization_id} "
                f"requested organization {requested}"
            )
        resolved = identity.organization_id

    if not resolved:
        raise scope_violation(f"user {identity.user_id} has no organization to act on")

    return TenantScope(organization_id=resolved, user_id=identity.user_id, role=identity.role)


@contextmanager
def tenant_scope(identity: CallerIdentity, organization_id: Optional[str] = None) -> Iterator[TenantScope]:
    """
    with tenant_scope(identity) as scope:
        service.plan_route(scope, ...)
    """
    scope = establish_scope(identity, organization_id)
    try:
        yield scope
    finally:
        scope.close()


def require_scope(scope: Optional[TenantScope]) -> str:
    """
    Guard used at the top of every store operation. Returns the organization id.
    """
    if scope is None:
        raise scope_violation("operation attempted without a tenant scope")
    if not isinstance(scope, TenantScope):
        raise scope_violation(f"expected TenantScope, got {type(scope).__name__}")
    if not scope.is_active:
        raise scope_violation(f"operation attempted with a closed scope for {scope.organization_id}")
    return scope.organization_id
