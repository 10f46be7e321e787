from dataclasses import replace
from typing import Dict, Iterable, List

from pickups.models import PickupRequest, PickupStatus
from routes.errors import ConflictError
from routes.models import Route, Stop


def find_unassignable(requests: Iterable[PickupRequest]) -> List[str]:
    """
    Ids of requests that are not PENDING or already sit on a non-cancelled route.
    """
    return [request.id for request in requests if not request.is_assignable]


def accept_requests_for_route(requests: Iterable[PickupRequest], route: Route) -> List[PickupRequest]:
    """
    Once a route is planned, all its pickup requests are locked to ACCEPTED
    with the driver and the route set, plus the leg metrics of their stop.
    """
    requests = list(requests)
    offenders = find_unassignable(requests)
    if offenders:
        raise ConflictError(offenders)

    stops_by_request: Dict[str, Stop] = {stop.pickup_request_id: stop for stop in route.stops}
    accepted = []
    for request in requests:
        stop = stops_by_request[request.id]
        accepted.append(
            replace(
                request,
                status=PickupStatus.ACCEPTED,
                driver_id=route.driver_id,
                route_id=route.id,
                distance_km=stop.leg_distance_km,
                estimated_minutes=stop.leg_minutes,
            )
        )
    return accepted


def release_requests_from_route(requests: Iterable[PickupRequest], route_id: str) -> List[PickupRequest]:
    """
    Route cancelled: push its ACCEPTED requests back to PENDING and detach
    them so they can be planned again. Requests already moved on (completed by
    the driver, cancelled by the rider, re-attached elsewhere) are left alone.
    """
    released = []
    for request in requests:
        if request.route_id != route_id or request.status != PickupStatus.ACCEPTED:
            continue
        released.append(
            replace(
                request,
                status=PickupStatus.PENDING,
                driver_id=None,
                route_id=None,
                distance_km=None,
                estimated_minutes=None,
            )
        )
    return released
