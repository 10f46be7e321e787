"""
Purpose: The route planning "orchestrator" (single entry point).
What it does:

Coordinates the pipeline end-to-end:

- validates the request (ids, start location, route date)

- checks driver / service day / pickup requests exist in the tenant

- resolves pickup coordinates (address first, optional geocoder second)

- sequences the stops (sequencing.py)

- derives leg minutes, totals and the optimization score (scoring.py)

- hands the Route to the store, which creates it and claims the requests atomically

Rule: Engine is the only file other modules should call directly for planning.
"""

# routes/planner/engine.py

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from pickups.models import Address, PickupRequest
from routing.distance import Coordinates, is_valid_coordinate
from tenancy.context import TenantScope, require_scope

from ..errors import ConflictError, ValidationError
from ..models import Route, Stop
from ..state_machines.pickup_state import find_unassignable
from ..store import RouteStore
from .policy import PlannerPolicy, default_planner_policy
from .scoring import leg_minutes, optimization_score, total_distance, total_minutes
from .sequencing import PlanningCandidate, SequencedLeg, sequence_candidates

logger = logging.getLogger(__name__)

# Address -> Coordinates | None. routing.geocoding.GeocodingClient fits this shape.
Geocoder = Callable[[Address], Optional[Coordinates]]


def coerce_start_location(start_location) -> Coordinates:
    """
    Accepts Coordinates, a {"lat", "lng"} mapping or a (lat, lng) pair.
    """
    if isinstance(start_location, Coordinates):
        lat, lng = start_location.lat, start_location.lng
    elif isinstance(start_location, dict):
        lat, lng = start_location.get("lat"), start_location.get("lng")
    elif isinstance(start_location, (tuple, list)) and len(start_location) == 2:
        lat, lng = start_location
    else:
        raise ValidationError("Start location must provide lat and lng")

    if not is_valid_coordinate(lat, lng):
        raise ValidationError(f"Invalid start location coordinates: ({lat!r}, {lng!r})")
    return Coordinates(lat=float(lat), lng=float(lng))


def coerce_route_date(route_date) -> date:
    if isinstance(route_date, datetime):
        return route_date.date()
    if isinstance(route_date, date):
        return route_date
    if isinstance(route_date, str):
        try:
            return date.fromisoformat(route_date[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid route date: {route_date!r}")


def unique_request_ids(pickup_request_ids: Iterable) -> List[str]:
    """
    The input is a set: duplicates collapse, first occurrence keeps its place.
    """
    if pickup_request_ids is None or isinstance(pickup_request_ids, (str, bytes)):
        raise ValidationError("pickup_request_ids must be a collection of ids")

    seen = set()
    ordered = []
    for request_id in pickup_request_ids:
        if request_id is None or str(request_id).strip() == "":
            raise ValidationError("pickup_request_ids contains an empty id")
        request_id = str(request_id)
        if request_id not in seen:
            seen.add(request_id)
            ordered.append(request_id)

    if not ordered:
        raise ValidationError("At least one pickup request is required to plan a route")
    return ordered


class RoutePlanner:
    """
    Nearest-neighbor route planner for one driver on one service day.
    """
    def __init__(
        self,
        store: RouteStore,
        policy: Optional[PlannerPolicy] = None,
        geocoder: Optional[Geocoder] = None,
    ):
        self.store = store
        self.policy = policy or default_planner_policy()
        self.policy.validate()
        self.geocoder = geocoder

    def _locate(self, request: PickupRequest) -> Optional[Coordinates]:
        coordinates = request.address.coordinates
        if coordinates is not None or self.geocoder is None:
            return coordinates

        located = self.geocoder(request.address)
        if located is None or not is_valid_coordinate(located.lat, located.lng):
            logger.info(f"Pickup request {request.id} could not be geocoded; it will be visited last")
            return None
        return located

    def build_stops(self, legs: List[SequencedLeg]) -> List[Stop]:
        return [
            Stop(
                pickup_request_id=leg.request_id,
                position=position,
                leg_distance_km=leg.distance_km,
                leg_minutes=leg_minutes(leg.distance_km, self.policy),
                coordinates=leg.coordinates,
            )
            for position, leg in enumerate(legs)
        ]

    def plan_route(
        self,
        scope: TenantScope,
        driver_id: str,
        service_day_id: str,
        route_date,
        pickup_request_ids: Iterable[str],
        start_location,
        planned_start_time: Optional[datetime] = None,
    ) -> Route:
        """
        Compute and persist a route. Returns the stored Route (PLANNED).

        Raises ValidationError, NotFoundError, ConflictError, ScopeError.
        Nothing is written unless every request could be claimed.
        """
        organization_id = require_scope(scope)

        request_ids = unique_request_ids(pickup_request_ids)
        start = coerce_start_location(start_location)
        day = coerce_route_date(route_date)
        if not driver_id:
            raise ValidationError("driver_id is required")
        if not service_day_id:
            raise ValidationError("service_day_id is required")
        if len(request_ids) > self.policy.max_stops:
            raise ValidationError(
                f"Too many pickup requests for one route ({len(request_ids)} > {self.policy.max_stops})"
            )

        driver_id = str(driver_id)
        service_day_id = str(service_day_id)
        self.store.require_driver(scope, driver_id)
        self.store.require_service_day(scope, service_day_id)

        requests = self.store.get_pickup_requests(scope, request_ids)

        #fail fast here; the store re-checks inside its transaction
        offenders = find_unassignable(requests)
        if offenders:
            raise ConflictError(offenders)

        candidates = [
            PlanningCandidate(
                request_id=request.id,
                coordinates=self._locate(request),
                priority=request.priority,
            )
            for request in requests
        ]
        legs = sequence_candidates(start, candidates, honor_priority=self.policy.honor_priority)
        stops = self.build_stops(legs)

        total_km = total_distance(legs)
        located_count = sum(1 for leg in legs if leg.distance_km is not None)

        route = Route.new(
            organization_id=organization_id,
            driver_id=driver_id,
            service_day_id=service_day_id,
            route_date=day,
            stops=tuple(stops),
            start_location=start,
            total_distance_km=total_km,
            estimated_minutes=total_minutes(stop.leg_minutes for stop in stops),
            optimization_score=optimization_score(total_km, located_count, self.policy),
            planned_start_time=planned_start_time,
        )

        saved = self.store.save_route(scope, route)
        logger.info(
            f"Planned route {saved.id} for driver {driver_id} on {day}: "
            f"{saved.stop_count} stops, {located_count} located, total {total_km} km"
        )
        return saved
