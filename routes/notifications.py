#Purpose: Outbound notification hook for route events.
#Fire-and-forget: the service calls these after the store has committed,
#and a failure here is logged, never propagated, never rolled back.

import logging
from typing import Optional

from .models import Route, RouteStatus

logger = logging.getLogger(__name__)


class RouteNotifier:
    """
    No-op base. Subclasses override the events they care about.
    """
    def route_planned(self, route: Route) -> None:
        pass

    def route_status_changed(self, route: Route, previous_status: Optional[RouteStatus]) -> None:
        pass


class LoggingRouteNotifier(RouteNotifier):
    def route_planned(self, route: Route) -> None:
        logger.info(f"[notify] driver {route.driver_id}: new route {route.id} with {route.stop_count} stops on {route.route_date}")

    def route_status_changed(self, route: Route, previous_status: Optional[RouteStatus]) -> None:
        previous = previous_status.value if previous_status else "?"
        logger.info(f"[notify] route {route.id}: {previous} -> {route.status.value}")
