"""
Purpose: Orchestrator / boundary facade of the route engine (the "glue").
What it does:
Exposes the five operations the API layer calls (plan, get, list,
update status, analytics), wires planner / lifecycle / analytics to one
store, and informs the notifier after each committed change.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from tenancy.context import TenantScope, require_scope

from .analytics import RouteAnalyticsAggregator, RouteAnalyticsSnapshot
from .errors import ValidationError
from .lifecycle import RouteLifecycleManager, is_visible_to
from .models import Route, utcnow
from .notifications import RouteNotifier
from .planner.engine import Geocoder, RoutePlanner, coerce_route_date
from .planner.policy import PlannerPolicy
from .store import RouteStore

logger = logging.getLogger(__name__)

DEFAULT_ANALYTICS_WINDOW_DAYS = 30


class RouteOptimizationService:
    """
    One instance per process is fine: it holds no per-request state.
    The tenant is always the explicit `scope` argument.
    """
    def __init__(
        self,
        store: RouteStore,
        notifier: Optional[RouteNotifier] = None,
        policy: Optional[PlannerPolicy] = None,
        geocoder: Optional[Geocoder] = None,
    ):
        self.store = store
        self.notifier = notifier or RouteNotifier()
        self.planner = RoutePlanner(store, policy=policy, geocoder=geocoder)
        self.lifecycle = RouteLifecycleManager(store)
        self.analytics = RouteAnalyticsAggregator(store)

    def _notify(self, event: str, *args) -> None:
        try:
            getattr(self.notifier, event)(*args)
        except Exception:
            # best effort: the route change is already committed
            logger.exception(f"Notification '{event}' failed")

    def plan_route(
        self,
        scope: TenantScope,
        driver_id: str,
        service_day_id: str,
        route_date,
        pickup_request_ids: Iterable[str],
        start_location,
        planned_start_time: Optional[datetime] = None,
    ) -> str:
        route = self.planner.plan_route(
            scope,
            driver_id=driver_id,
            service_day_id=service_day_id,
            route_date=route_date,
            pickup_request_ids=pickup_request_ids,
            start_location=start_location,
            planned_start_time=planned_start_time,
        )
        self._notify("route_planned", route)
        return route.id

    def get_route(self, scope: TenantScope, route_id: str) -> Route:
        return self.store.get_route(scope, route_id)

    def list_routes(
        self,
        scope: TenantScope,
        driver_id: Optional[str] = None,
        date_from=None,
        date_to=None,
    ) -> List[Route]:
        """
        Drivers asking without a driver id get their own routes.
        """
        require_scope(scope)
        if not driver_id:
            if not scope.is_driver:
                raise ValidationError("driver_id is required for route lookup")
            driver_id = scope.user_id

        date_from = coerce_route_date(date_from) if date_from is not None else None
        date_to = coerce_route_date(date_to) if date_to is not None else None
        return self.store.list_routes(scope, str(driver_id), date_from, date_to)

    def update_route_status(
        self,
        scope: TenantScope,
        route_id: str,
        status,
        actual_start_time: Optional[datetime] = None,
        actual_end_time: Optional[datetime] = None,
    ) -> Route:
        route, previous_status = self.lifecycle.transition(
            scope, route_id, status,
            actual_start_time=actual_start_time,
            actual_end_time=actual_end_time,
        )
        self._notify("route_status_changed", route, previous_status)
        return route

    def get_analytics(self, scope: TenantScope, from_date=None, to_date=None) -> RouteAnalyticsSnapshot:
        """
        Defaults to the last 30 days when no window is given.
        """
        require_scope(scope)
        today = utcnow().date()
        to_date = coerce_route_date(to_date) if to_date is not None else today
        from_date = (
            coerce_route_date(from_date) if from_date is not None
            else to_date - timedelta(days=DEFAULT_ANALYTICS_WINDOW_DAYS)
        )
        return self.analytics.get_analytics(scope, from_date, to_date)

    def is_visible_to(self, scope: TenantScope, route: Route) -> bool:
        return is_visible_to(scope, route)
