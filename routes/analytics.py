"""
Purpose: Route performance analytics for one tenant and date window.
What it does:
Reads the tenant's routes in [from_date, to_date] and folds them into a
RouteAnalyticsSnapshot. Derived on every call, never stored.

Rule: Read only. Empty windows give a zeroed snapshot, never an error.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List

from tenancy.context import TenantScope

from .errors import ValidationError
from .models import Route, RouteStatus
from .store import RouteStore


@dataclass(frozen=True)
class RouteAnalyticsSnapshot:
    route_count: int = 0
    completed_count: int = 0
    cancelled_count: int = 0
    planned_count: int = 0
    in_progress_count: int = 0

    # Averages only over routes whose total distance is known.
    # average_distance_applicable is False when no route qualified (value reported as 0).
    average_distance_km: float = 0.0
    average_distance_applicable: bool = False
    completion_rate: float = 0.0

    total_distance_km: float = 0.0
    total_pickups: int = 0
    average_pickups_per_route: float = 0.0
    average_optimization_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def summarize_routes(routes: List[Route]) -> RouteAnalyticsSnapshot:
    route_count = len(routes)
    if route_count == 0:
        return RouteAnalyticsSnapshot()

    by_status = {status: 0 for status in RouteStatus}
    for route in routes:
        by_status[route.status] += 1

    distances = [route.total_distance_km for route in routes if route.total_distance_km is not None]
    scores = [route.optimization_score for route in routes if route.optimization_score is not None]
    total_pickups = sum(route.stop_count for route in routes)

    return RouteAnalyticsSnapshot(
        route_count=route_count,
        completed_count=by_status[RouteStatus.COMPLETED],
        cancelled_count=by_status[RouteStatus.CANCELLED],
        planned_count=by_status[RouteStatus.PLANNED],
        in_progress_count=by_status[RouteStatus.IN_PROGRESS],
        average_distance_km=sum(distances) / len(distances) if distances else 0.0,
        average_distance_applicable=bool(distances),
        completion_rate=by_status[RouteStatus.COMPLETED] / route_count,
        total_distance_km=sum(distances),
        total_pickups=total_pickups,
        average_pickups_per_route=total_pickups / route_count,
        average_optimization_score=sum(scores) / len(scores) if scores else 0.0,
    )


class RouteAnalyticsAggregator:
    def __init__(self, store: RouteStore):
        self.store = store

    def get_analytics(self, scope: TenantScope, from_date: date, to_date: date) -> RouteAnalyticsSnapshot:
        if from_date is None or to_date is None:
            raise ValidationError("Both from_date and to_date are required")
        if from_date > to_date:
            raise ValidationError(f"from_date {from_date} is after to_date {to_date}")

        return summarize_routes(self.store.routes_between(scope, from_date, to_date))
