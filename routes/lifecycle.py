"""
Purpose: Route execution lifecycle.
What it does:
Moves a stored route through PLANNED -> IN_PROGRESS -> COMPLETED (or
CANCELLED from either non-terminal state) using the single transition table
in state_machines/route_state.py, and persists the change through the store
in one transaction (cancel also frees the route's pickup requests).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Tuple

from tenancy.context import TenantScope, require_scope

from .models import Route, RouteStatus
from .state_machines.route_state import parse_status, transition_route
from .store import RouteStore

logger = logging.getLogger(__name__)


def is_visible_to(scope: TenantScope, route: Route) -> bool:
    """
    Driver-scoped visibility hint: a TRANSPORTATION_TEAM caller only sees
    their own routes. Whether that means "deny" is decided by the boundary.
    """
    if scope.is_driver:
        return route.driver_id == scope.user_id
    return True


class RouteLifecycleManager:
    def __init__(self, store: RouteStore):
        self.store = store

    def transition(
        self,
        scope: TenantScope,
        route_id: str,
        requested_status,
        actual_start_time: Optional[datetime] = None,
        actual_end_time: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[Route, RouteStatus]:
        """
        Same as update_status, also returning the status the route had
        inside the transaction (for notifications).
        """
        require_scope(scope)
        requested = parse_status(requested_status)
        previous = []

        def apply(route: Route) -> Route:
            previous.append(route.status)
            return transition_route(
                route,
                requested,
                actual_start_time=actual_start_time,
                actual_end_time=actual_end_time,
                now=now,
            )

        updated = self.store.apply_transition(scope, route_id, apply)
        logger.info(f"Route {updated.id} moved {previous[-1].value} -> {updated.status.value}")
        return updated, previous[-1]

    def update_status(
        self,
        scope: TenantScope,
        route_id: str,
        requested_status,
        actual_start_time: Optional[datetime] = None,
        actual_end_time: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Route:
        """
        Raises ValidationError (unknown status), NotFoundError, InvalidTransitionError.
        On failure the stored route is left unchanged.
        """
        updated, _ = self.transition(
            scope, route_id, requested_status,
            actual_start_time=actual_start_time,
            actual_end_time=actual_end_time,
            now=now,
        )
        return updated
