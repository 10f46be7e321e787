"""
Purpose: Route store backed by the Django ORM.
What it does:
Implements routes.store.RouteStore on top of the transport models.
- reads are filtered by the scope's organization
- save_route locks the pickup rows (SELECT ... FOR UPDATE), re-checks the
  claim and writes route + stops + request updates in one transaction
- SQLite has no row locks: a concurrent writer surfaces as "database is
  locked". Such calls are retried, and the retried claim sees the winner's
  committed requests and raises ConflictError
- apply_transition locks the route row, applies the lifecycle transition and
  releases the pickup requests of a cancelled route in the same transaction

Rule: Maps between ORM rows and the frozen domain dataclasses; no planning
or lifecycle decisions here.
"""

import functools
import logging
import random
import time
import uuid
from typing import Dict, List, Sequence

from django.db import OperationalError, transaction

from pickups.models import Address as AddressRecord
from pickups.models import PickupRequest as PickupRecord
from pickups.models import PickupStatus
from routes.errors import NotFoundError, ValidationError
from routes.models import Route as RouteRecord
from routes.models import RouteStatus
from routes.models import Stop as StopRecord
from routes.state_machines.pickup_state import accept_requests_for_route, release_requests_from_route
from routes.store import RouteStore, check_route_for_save
from routing.distance import Coordinates
from tenancy.context import require_scope, scope_violation, security_logger
from users.models import User

from .models import Address, PickupRequest, Route, ServiceDay, Stop

logger = logging.getLogger(__name__)

DRIVER_ROLES = (User.Roles.TRANSPORTATION_TEAM, User.Roles.ADMIN)

LOCK_RETRIES = 8
LOCK_RETRY_DELAY_S = 0.05


def retry_when_locked(method):
    """
    Re-run a store call that lost a SQLite lock race.
    Each attempt is its own transaction, so a retry re-reads committed state.
    Not retried inside an outer transaction: that one is already broken.
    """
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        for attempt in range(1, LOCK_RETRIES + 1):
            try:
                return method(*args, **kwargs)
            except OperationalError as e:
                if (
                    "locked" not in str(e)
                    or attempt == LOCK_RETRIES
                    or transaction.get_connection().in_atomic_block
                ):
                    raise
                logger.warning(f"{method.__name__} hit a locked database (attempt {attempt}): {e}")
                time.sleep(LOCK_RETRY_DELAY_S * attempt * (1 + random.random()))
    return wrapper


def _int_ids(values: Sequence[str]) -> Dict[str, int]:
    """
    "12" -> 12. Ids that cannot be primary keys are simply unknown.
    """
    parsed = {}
    for value in values:
        try:
            parsed[str(value)] = int(value)
        except (TypeError, ValueError):
            raise NotFoundError(f"Pickup request(s) not found: {value}")
    return parsed


def _route_uuid(route_id) -> uuid.UUID:
    try:
        return uuid.UUID(str(route_id))
    except (TypeError, ValueError):
        raise NotFoundError(f"Route {route_id} not found")


def address_to_record(address: Address) -> AddressRecord:
    return AddressRecord(
        id=str(address.pk),
        street=address.street,
        city=address.city,
        province=address.province,
        postal_code=address.postal_code,
        country=address.country,
        latitude=address.latitude,
        longitude=address.longitude,
        is_default=address.is_default,
    )


def pickup_to_record(row: PickupRequest) -> PickupRecord:
    return PickupRecord(
        id=str(row.pk),
        organization_id=str(row.organization_id),
        user_id=str(row.user_id),
        address=address_to_record(row.address),
        service_day_id=str(row.service_day_id),
        status=PickupStatus(row.status),
        driver_id=str(row.driver_id) if row.driver_id is not None else None,
        route_id=str(row.route_id) if row.route_id is not None else None,
        distance_km=row.distance,
        estimated_minutes=row.estimated_minutes,
        priority=row.priority,
        notes=row.notes,
    )


def stop_to_record(row: Stop) -> StopRecord:
    coordinates = None
    if row.latitude is not None and row.longitude is not None:
        coordinates = Coordinates(lat=row.latitude, lng=row.longitude)
    return StopRecord(
        pickup_request_id=str(row.pickup_request_id),
        position=row.position,
        leg_distance_km=row.leg_distance,
        leg_minutes=row.leg_minutes,
        coordinates=coordinates,
    )


def route_to_record(row: Route) -> RouteRecord:
    return RouteRecord(
        id=str(row.pk),
        organization_id=str(row.organization_id),
        driver_id=str(row.driver_id),
        service_day_id=str(row.service_day_id),
        route_date=row.route_date,
        stops=tuple(stop_to_record(stop) for stop in row.stops.all()),
        start_location=Coordinates(lat=row.start_lat, lng=row.start_lng),
        total_distance_km=row.total_distance,
        estimated_minutes=row.estimated_minutes,
        optimization_score=row.optimization_score,
        status=RouteStatus(row.status),
        planned_start_time=row.planned_start_time,
        actual_start_time=row.actual_start_time,
        actual_end_time=row.actual_end_time,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DjangoRouteStore(RouteStore):

    def _routes(self, organization_id: str):
        return Route.objects.filter(organization_id=organization_id).prefetch_related("stops")

    # --- Reads ---

    @retry_when_locked
    def get_route(self, scope, route_id):
        organization_id = require_scope(scope)
        pk = _route_uuid(route_id)
        try:
            return route_to_record(self._routes(organization_id).get(pk=pk))
        except Route.DoesNotExist:
            if Route.objects.filter(pk=pk).exists():
                security_logger.warning(
                    f"Organization {organization_id} looked up route {route_id} of another organization"
                )
            raise NotFoundError(f"Route {route_id} not found")

    @retry_when_locked
    def list_routes(self, scope, driver_id, date_from=None, date_to=None):
        organization_id = require_scope(scope)

        driver_organization = (
            User.objects.filter(pk=driver_id).values_list("organization_id", flat=True).first()
            if str(driver_id).isdigit() else None
        )
        if driver_organization is not None and str(driver_organization) != organization_id:
            raise scope_violation(
                f"organization {organization_id} listed routes of driver {driver_id} "
                f"from organization {driver_organization}"
            )
        if not str(driver_id).isdigit():
            return []

        queryset = self._routes(organization_id).filter(driver_id=driver_id)
        if date_from is not None:
            queryset = queryset.filter(route_date__gte=date_from)
        if date_to is not None:
            queryset = queryset.filter(route_date__lte=date_to)

        return [route_to_record(row) for row in queryset.order_by("-route_date", "-created_at")]

    @retry_when_locked
    def routes_between(self, scope, date_from, date_to):
        organization_id = require_scope(scope)
        queryset = self._routes(organization_id).filter(route_date__gte=date_from, route_date__lte=date_to)
        return [route_to_record(row) for row in queryset.order_by("-route_date", "-created_at")]

    def _load_pickups(self, organization_id: str, request_ids: Sequence[str]) -> List[PickupRecord]:
        parsed = _int_ids(request_ids)
        rows = {
            str(row.pk): row
            for row in PickupRequest.objects.select_related("address").filter(
                pk__in=parsed.values(), organization_id=organization_id
            )
        }
        missing = [request_id for request_id in parsed if request_id not in rows]
        if missing:
            raise NotFoundError(f"Pickup request(s) not found: {', '.join(missing)}")
        return [pickup_to_record(rows[request_id]) for request_id in parsed]

    @retry_when_locked
    def get_pickup_requests(self, scope, request_ids):
        organization_id = require_scope(scope)
        return self._load_pickups(organization_id, request_ids)

    @retry_when_locked
    def require_driver(self, scope, driver_id):
        organization_id = require_scope(scope)
        if not str(driver_id).isdigit() or not User.objects.filter(
            pk=driver_id, organization_id=organization_id, role__in=DRIVER_ROLES, is_active=True
        ).exists():
            raise NotFoundError(f"Driver {driver_id} not found")

    @retry_when_locked
    def require_service_day(self, scope, service_day_id):
        organization_id = require_scope(scope)
        if not str(service_day_id).isdigit() or not ServiceDay.objects.filter(
            pk=service_day_id, organization_id=organization_id
        ).exists():
            raise NotFoundError(f"Service day {service_day_id} not found")

    @retry_when_locked
    def route_pickups(self, scope, route) -> List[PickupRequest]:
        """
        ORM rows (with rider and address) of the route's pickups, in stop order.
        """
        organization_id = require_scope(scope)
        parsed = _int_ids(route.pickup_request_ids)
        rows = {
            str(row.pk): row
            for row in PickupRequest.objects.select_related("user", "address").filter(
                pk__in=parsed.values(), organization_id=organization_id
            )
        }
        return [rows[request_id] for request_id in route.pickup_request_ids if request_id in rows]

    # --- Writes ---

    @retry_when_locked
    def save_route(self, scope, route):
        organization_id = require_scope(scope)
        check_route_for_save(organization_id, route)

        with transaction.atomic():
            parsed = _int_ids(route.pickup_request_ids)

            # lock the rows first; the claim below is decided on locked state
            list(
                PickupRequest.objects.select_for_update()
                .filter(pk__in=parsed.values(), organization_id=organization_id)
                .values_list("pk", flat=True)
            )
            requests = self._load_pickups(organization_id, route.pickup_request_ids)
            accepted = accept_requests_for_route(requests, route)

            if Route.objects.filter(pk=_route_uuid(route.id)).exists():
                raise ValidationError(f"Route {route.id} already exists")

            row = Route.objects.create(
                id=_route_uuid(route.id),
                organization_id=organization_id,
                driver_id=int(route.driver_id),
                service_day_id=int(route.service_day_id),
                route_date=route.route_date,
                status=route.status.value,
                start_lat=route.start_location.lat,
                start_lng=route.start_location.lng,
                total_distance=route.total_distance_km,
                estimated_minutes=route.estimated_minutes,
                optimization_score=route.optimization_score,
                planned_start_time=route.planned_start_time,
                created_at=route.created_at,
                updated_at=route.updated_at,
            )
            Stop.objects.bulk_create([
                Stop(
                    route=row,
                    pickup_request_id=parsed[stop.pickup_request_id],
                    position=stop.position,
                    leg_distance=stop.leg_distance_km,
                    leg_minutes=stop.leg_minutes,
                    latitude=stop.coordinates.lat if stop.coordinates else None,
                    longitude=stop.coordinates.lng if stop.coordinates else None,
                )
                for stop in route.stops
            ])
            for request in accepted:
                PickupRequest.objects.filter(pk=parsed[request.id]).update(
                    status=request.status.value,
                    driver_id=int(request.driver_id),
                    route_id=row.pk,
                    distance=request.distance_km,
                    estimated_minutes=request.estimated_minutes,
                )

        logger.info(f"Stored route {route.id} with {route.stop_count} stops for organization {organization_id}")
        return route

    @retry_when_locked
    def apply_transition(self, scope, route_id, transition):
        organization_id = require_scope(scope)
        pk = _route_uuid(route_id)

        with transaction.atomic():
            try:
                row = (
                    Route.objects.select_for_update()
                    .filter(organization_id=organization_id)
                    .prefetch_related("stops")
                    .get(pk=pk)
                )
            except Route.DoesNotExist:
                raise NotFoundError(f"Route {route_id} not found")

            updated = transition(route_to_record(row))

            row.status = updated.status.value
            row.actual_start_time = updated.actual_start_time
            row.actual_end_time = updated.actual_end_time
            row.updated_at = updated.updated_at
            row.save(update_fields=["status", "actual_start_time", "actual_end_time", "updated_at"])

            if updated.status == RouteStatus.CANCELLED:
                attached = [
                    pickup_to_record(request_row)
                    for request_row in PickupRequest.objects.select_for_update()
                    .select_related("address")
                    .filter(route_id=row.pk)
                ]
                released_ids = [int(request.id) for request in release_requests_from_route(attached, updated.id)]
                PickupRequest.objects.filter(pk__in=released_ids).update(
                    status=PickupRequest.Status.PENDING,
                    driver=None,
                    route=None,
                    distance=None,
                    estimated_minutes=None,
                )

        return updated
